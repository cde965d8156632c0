"""
Study session router.

Endpoints:
  POST   /study/sessions                 - snapshot the due set, start a session
  GET    /study/sessions/{id}            - session state
  DELETE /study/sessions/{id}            - discard a session
  POST   /study/sessions/{id}/answer     - answer the current card
  POST   /study/sessions/{id}/practice   - replay the snapshot without scheduling
  GET    /study/practice/{id}            - practice state
  POST   /study/practice/{id}/next       - move to the next practice card
"""
from __future__ import annotations

import aiosqlite
from fastapi import APIRouter, Depends, HTTPException

from clinrecall.db.sqlite import get_db
from clinrecall.models.study import (
    AnswerRequest,
    AnswerResult,
    PracticeState,
    StartSessionRequest,
    StudySessionState,
)
from clinrecall.services import practice, study_session
from clinrecall.services.clock import now_ms
from clinrecall.services.scheduler import InvalidArgumentError
from clinrecall.services.study_session import (
    ScheduleConflictError,
    SessionNotFoundError,
    SessionStateError,
)

router = APIRouter()


@router.post("/sessions", response_model=StudySessionState, status_code=201)
async def start_session(
    body: StartSessionRequest | None = None,
    db: aiosqlite.Connection = Depends(get_db),
    now: int = Depends(now_ms),
) -> StudySessionState:
    body = body or StartSessionRequest()
    session = await study_session.start_session(
        db, now, limit=body.limit, case_id=body.case_note_id
    )
    return session.to_state()


@router.get("/sessions/{session_id}", response_model=StudySessionState)
async def get_session(session_id: str) -> StudySessionState:
    try:
        return study_session.get_session(session_id).to_state()
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Study session not found") from None


@router.delete("/sessions/{session_id}", status_code=204)
async def end_session(session_id: str) -> None:
    try:
        study_session.end_session(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Study session not found") from None


@router.post("/sessions/{session_id}/answer", response_model=AnswerResult)
async def answer(
    session_id: str,
    body: AnswerRequest,
    db: aiosqlite.Connection = Depends(get_db),
    now: int = Depends(now_ms),
) -> AnswerResult:
    try:
        return await study_session.answer_card(
            db, session_id, body.card_id, body.quality, now
        )
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Study session not found") from None
    except (SessionStateError, ScheduleConflictError) as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except InvalidArgumentError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e


@router.post("/sessions/{session_id}/practice", response_model=PracticeState, status_code=201)
async def start_practice(session_id: str) -> PracticeState:
    try:
        return practice.start_practice(session_id).to_state()
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Study session not found") from None


@router.get("/practice/{replay_id}", response_model=PracticeState)
async def get_practice(replay_id: str) -> PracticeState:
    try:
        return practice.get_practice(replay_id).to_state()
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Practice session not found") from None


@router.post("/practice/{replay_id}/next", response_model=PracticeState)
async def next_practice_card(replay_id: str) -> PracticeState:
    try:
        return practice.advance_practice(replay_id).to_state()
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Practice session not found") from None
