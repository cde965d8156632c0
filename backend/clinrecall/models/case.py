from enum import Enum

from pydantic import BaseModel, Field

from clinrecall.models.flashcard import Flashcard, FlashcardCreate


class CaseNoteCreate(BaseModel):
    transcript: str = Field(min_length=1)
    ai_draft: str = Field(min_length=1)
    clinician_diagnosis: str = Field(min_length=1)
    clinician_plan: str = Field(min_length=1)
    flashcards: list[FlashcardCreate] = []
    generate_flashcards: bool = False


class CaseNote(BaseModel):
    id: str
    transcript: str
    ai_draft: str
    clinician_diagnosis: str
    clinician_plan: str
    created_at: str


class CaseNoteList(BaseModel):
    items: list[CaseNote]
    total: int


class SavedCase(BaseModel):
    case: CaseNote
    flashcards: list[Flashcard]


class SoapNote(BaseModel):
    subjective: str = ""
    objective: str = ""
    assessment: str = ""
    plan: str = ""


class DiffOp(str, Enum):
    EQUAL = "equal"
    REMOVED = "removed"
    ADDED = "added"


class DiffToken(BaseModel):
    op: DiffOp
    text: str


class CaseComparison(BaseModel):
    case_id: str
    soap: SoapNote
    clinician_diagnosis: str
    clinician_plan: str
    diagnosis_diff: list[DiffToken]  # AI assessment -> clinician diagnosis
    plan_diff: list[DiffToken]       # AI plan -> clinician plan
