"""
Case notes router.

Endpoints:
  POST   /cases/                 - save a case (+ flashcards, optionally generated)
  GET    /cases/                 - list cases, newest first (q= search)
  GET    /cases/count            - number of saved cases
  GET    /cases/{id}             - single case
  GET    /cases/{id}/flashcards  - the case's flashcards
  GET    /cases/{id}/compare     - AI draft vs clinician recall
  DELETE /cases/{id}             - delete case and its flashcards
"""
import json
import logging

import aiosqlite
from fastapi import APIRouter, Depends, HTTPException, Query

from clinrecall.db.sqlite import (
    count_case_notes,
    delete_case_note,
    get_case_note,
    get_db,
    list_case_notes,
    list_flashcards,
)
from clinrecall.models.case import (
    CaseComparison,
    CaseNote,
    CaseNoteCreate,
    CaseNoteList,
    SavedCase,
)
from clinrecall.models.flashcard import FlashcardList
from clinrecall.services.case_service import save_case
from clinrecall.services.clock import now_ms
from clinrecall.services.llm_service import LLMUnavailableError
from clinrecall.services.soap import compare_case

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=SavedCase, status_code=201)
async def create_case(
    body: CaseNoteCreate,
    db: aiosqlite.Connection = Depends(get_db),
    now: int = Depends(now_ms),
) -> SavedCase:
    try:
        return await save_case(db, body, now)
    except LLMUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
    except json.JSONDecodeError as e:
        logger.warning("Flashcard generation returned invalid JSON: %s", e)
        raise HTTPException(status_code=502, detail="Failed to generate flashcards") from e


@router.get("/", response_model=CaseNoteList)
async def list_cases(
    q: str | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
    db: aiosqlite.Connection = Depends(get_db),
) -> CaseNoteList:
    items, total = await list_case_notes(db, query=q, offset=offset, limit=limit)
    return CaseNoteList(items=items, total=total)


@router.get("/count")
async def case_count(db: aiosqlite.Connection = Depends(get_db)) -> dict:
    return {"count": await count_case_notes(db)}


@router.get("/{case_id}", response_model=CaseNote)
async def get_case(case_id: str, db: aiosqlite.Connection = Depends(get_db)) -> CaseNote:
    case = await get_case_note(db, case_id)
    if not case:
        raise HTTPException(status_code=404, detail="Case not found")
    return case


@router.get("/{case_id}/flashcards", response_model=FlashcardList)
async def case_flashcards(
    case_id: str,
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
    db: aiosqlite.Connection = Depends(get_db),
) -> FlashcardList:
    if not await get_case_note(db, case_id):
        raise HTTPException(status_code=404, detail="Case not found")
    items, total = await list_flashcards(db, case_id=case_id, offset=offset, limit=limit)
    return FlashcardList(items=items, total=total)


@router.get("/{case_id}/compare", response_model=CaseComparison)
async def compare(case_id: str, db: aiosqlite.Connection = Depends(get_db)) -> CaseComparison:
    case = await get_case_note(db, case_id)
    if not case:
        raise HTTPException(status_code=404, detail="Case not found")
    return compare_case(case)


@router.delete("/{case_id}", status_code=204)
async def delete_case(case_id: str, db: aiosqlite.Connection = Depends(get_db)) -> None:
    if not await delete_case_note(db, case_id):
        raise HTTPException(status_code=404, detail="Case not found")
