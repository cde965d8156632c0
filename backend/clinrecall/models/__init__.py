from clinrecall.models.case import (
    CaseComparison,
    CaseNote,
    CaseNoteCreate,
    CaseNoteList,
    DiffOp,
    DiffToken,
    SavedCase,
    SoapNote,
)
from clinrecall.models.flashcard import (
    Flashcard,
    FlashcardCreate,
    FlashcardList,
    FlashcardUpdate,
    ReviewQuality,
    ReviewRequest,
    ReviewResult,
)

__all__ = [
    "CaseComparison",
    "CaseNote",
    "CaseNoteCreate",
    "CaseNoteList",
    "DiffOp",
    "DiffToken",
    "Flashcard",
    "FlashcardCreate",
    "FlashcardList",
    "FlashcardUpdate",
    "ReviewQuality",
    "ReviewRequest",
    "ReviewResult",
    "SavedCase",
    "SoapNote",
]
