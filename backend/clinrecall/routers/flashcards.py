"""
Flashcards & spaced repetition router.

Endpoints:
  GET    /flashcards/              - list cards (optionally filtered by case_id)
  GET    /flashcards/due           - cards with next_review <= now
  GET    /flashcards/stats         - summary stats (total, due, per-case)
  GET    /flashcards/{id}          - single card
  PATCH  /flashcards/{id}          - edit question / answer
  DELETE /flashcards/{id}          - delete card
  POST   /flashcards/{id}/review   - schedule one card outside a study session
"""
from __future__ import annotations

import aiosqlite
from fastapi import APIRouter, Depends, HTTPException, Query

from clinrecall.db.sqlite import (
    delete_flashcard,
    get_db,
    get_due_flashcards,
    get_flashcard,
    get_flashcard_stats,
    list_flashcards,
    update_flashcard_content,
)
from clinrecall.models.flashcard import (
    Flashcard,
    FlashcardList,
    FlashcardUpdate,
    ReviewRequest,
    ReviewResult,
)
from clinrecall.services.clock import now_ms
from clinrecall.services.scheduler import InvalidArgumentError
from clinrecall.services.study_session import ScheduleConflictError, review_flashcard

router = APIRouter()


@router.get("/", response_model=FlashcardList)
async def list_cards(
    case_id: str | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
    db: aiosqlite.Connection = Depends(get_db),
) -> FlashcardList:
    items, total = await list_flashcards(db, case_id=case_id, offset=offset, limit=limit)
    return FlashcardList(items=items, total=total)


@router.get("/due", response_model=FlashcardList)
async def get_due(
    limit: int | None = Query(default=None, ge=1, le=500),
    case_id: str | None = Query(default=None),
    db: aiosqlite.Connection = Depends(get_db),
    now: int = Depends(now_ms),
) -> FlashcardList:
    """Return cards due now, oldest first."""
    items = await get_due_flashcards(db, now, limit=limit, case_id=case_id)
    return FlashcardList(items=items, total=len(items))


@router.get("/stats")
async def flashcard_stats(
    db: aiosqlite.Connection = Depends(get_db),
    now: int = Depends(now_ms),
) -> dict:
    return await get_flashcard_stats(db, now)


@router.get("/{card_id}", response_model=Flashcard)
async def get_card(card_id: str, db: aiosqlite.Connection = Depends(get_db)) -> Flashcard:
    card = await get_flashcard(db, card_id)
    if not card:
        raise HTTPException(status_code=404, detail="Flashcard not found")
    return card


@router.patch("/{card_id}", response_model=Flashcard)
async def edit_card(
    card_id: str,
    body: FlashcardUpdate,
    db: aiosqlite.Connection = Depends(get_db),
) -> Flashcard:
    updated = await update_flashcard_content(db, card_id, body)
    if not updated:
        raise HTTPException(status_code=404, detail="Flashcard not found")
    return updated


@router.delete("/{card_id}", status_code=204)
async def remove_card(card_id: str, db: aiosqlite.Connection = Depends(get_db)) -> None:
    if not await delete_flashcard(db, card_id):
        raise HTTPException(status_code=404, detail="Flashcard not found")


@router.post("/{card_id}/review", response_model=ReviewResult)
async def review_card(
    card_id: str,
    body: ReviewRequest,
    db: aiosqlite.Connection = Depends(get_db),
    now: int = Depends(now_ms),
) -> ReviewResult:
    try:
        card = await review_flashcard(db, card_id, body.quality, now)
    except InvalidArgumentError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except ScheduleConflictError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    if card is None:
        raise HTTPException(status_code=404, detail="Flashcard not found")
    return ReviewResult(
        id=card.id,
        interval=card.interval,
        ease_factor=card.ease_factor,
        next_review=card.next_review,
    )
