from __future__ import annotations

import logging

import aiosqlite

from clinrecall.db.sqlite import create_case_note
from clinrecall.models.case import CaseNoteCreate, SavedCase
from clinrecall.services.flashcard_generator import generate_case_flashcards

logger = logging.getLogger(__name__)


async def save_case(
    db: aiosqlite.Connection,
    body: CaseNoteCreate,
    now_ms: int,
) -> SavedCase:
    """Save a case with the supplied flashcards, plus LLM-generated ones when
    `generate_flashcards` is set. Generation runs before anything is written,
    so a failed generation leaves no partial case behind."""
    cards = list(body.flashcards)
    if body.generate_flashcards:
        cards += await generate_case_flashcards(
            body.transcript,
            body.ai_draft,
            body.clinician_diagnosis,
            body.clinician_plan,
        )

    case, flashcards = await create_case_note(db, body, cards, now_ms)
    logger.info("Saved case %s with %d flashcards", case.id, len(flashcards))
    return SavedCase(case=case, flashcards=flashcards)
