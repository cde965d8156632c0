"""
Study sessions over the due set.

A session snapshots the due cards once when it starts and walks them in that
order. Each answer re-reads the card, runs the scheduler with the caller's
"now" and writes the result straight back with a compare-and-swap update, so a
card answered "again" is only due again in a later session.

Sessions are kept in an in-process registry keyed by session id.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field

import aiosqlite

from clinrecall.config import settings
from clinrecall.db.sqlite import get_due_flashcards, get_flashcard, update_flashcard_schedule
from clinrecall.models.flashcard import Flashcard, ReviewQuality
from clinrecall.models.study import (
    AnswerResult,
    AnswerStatus,
    SessionCard,
    StudySessionState,
)
from clinrecall.services.scheduler import next_schedule

logger = logging.getLogger(__name__)

_MAX_SESSIONS = 256


class SessionNotFoundError(LookupError):
    """Raised when a session id is not in the registry."""


class SessionStateError(Exception):
    """Raised when an answer does not match the session's current card."""


class ScheduleConflictError(Exception):
    """Raised when a card's schedule changed between read and write."""


@dataclass
class StudySession:
    id: str
    started_at: int
    cards: list[SessionCard]
    position: int = 0
    results: list[AnswerResult] = field(default_factory=list)

    @property
    def current(self) -> SessionCard | None:
        if self.position < len(self.cards):
            return self.cards[self.position]
        return None

    @property
    def finished(self) -> bool:
        return self.position >= len(self.cards)

    def to_state(self) -> StudySessionState:
        return StudySessionState(
            id=self.id,
            started_at=self.started_at,
            total=len(self.cards),
            position=self.position,
            finished=self.finished,
            current=self.current,
            cards=list(self.cards),
            results=list(self.results),
        )


_sessions: dict[str, StudySession] = {}


def _register(session: StudySession) -> None:
    while len(_sessions) >= _MAX_SESSIONS:
        oldest = next(iter(_sessions))
        logger.info("Evicting study session %s", oldest)
        _sessions.pop(oldest, None)
    _sessions[session.id] = session


async def review_flashcard(
    db: aiosqlite.Connection,
    card_id: str,
    quality: ReviewQuality,
    now_ms: int,
) -> Flashcard | None:
    """Read -> schedule -> conditional write for one card.

    Returns the updated card, or None when the card does not exist.
    Raises ScheduleConflictError if another writer got there first.
    """
    card = await get_flashcard(db, card_id)
    if card is None:
        return None

    new = next_schedule(card.interval, card.ease_factor, quality, now_ms)
    if not await update_flashcard_schedule(db, card, new):
        if await get_flashcard(db, card_id) is None:
            return None
        raise ScheduleConflictError(f"Flashcard {card_id} was modified concurrently")

    logger.debug(
        "Card %s answered %s: interval %d -> %d, ease %.2f -> %.2f",
        card_id,
        ReviewQuality(quality).value,
        card.interval,
        new.interval,
        card.ease_factor,
        new.ease_factor,
    )
    return card.model_copy(
        update={
            "interval": new.interval,
            "ease_factor": new.ease_factor,
            "next_review": new.next_review,
        }
    )


async def start_session(
    db: aiosqlite.Connection,
    now_ms: int,
    limit: int | None = None,
    case_id: str | None = None,
) -> StudySession:
    due = await get_due_flashcards(
        db, now_ms, limit=limit or settings.study_session_limit, case_id=case_id
    )
    session = StudySession(
        id=str(uuid.uuid4()),
        started_at=now_ms,
        cards=[SessionCard(id=c.id, question=c.question, answer=c.answer) for c in due],
    )
    _register(session)
    logger.info("Study session %s started with %d due cards", session.id, len(due))
    return session


def get_session(session_id: str) -> StudySession:
    session = _sessions.get(session_id)
    if session is None:
        raise SessionNotFoundError(session_id)
    return session


def end_session(session_id: str) -> None:
    if _sessions.pop(session_id, None) is None:
        raise SessionNotFoundError(session_id)


async def answer_card(
    db: aiosqlite.Connection,
    session_id: str,
    card_id: str,
    quality: ReviewQuality,
    now_ms: int,
) -> AnswerResult:
    session = get_session(session_id)
    current = session.current
    if current is None:
        raise SessionStateError("Session is already finished")
    if current.id != card_id:
        raise SessionStateError(
            f"Expected an answer for card {current.id}, got {card_id}"
        )

    updated = await review_flashcard(db, card_id, quality, now_ms)
    if updated is None:
        logger.warning("Card %s vanished during session %s, skipping", card_id, session_id)
        result = AnswerResult(
            card_id=card_id,
            quality=quality,
            status=AnswerStatus.SKIPPED,
            detail="Flashcard not found",
        )
    else:
        result = AnswerResult(
            card_id=card_id,
            quality=quality,
            status=AnswerStatus.SCHEDULED,
            interval=updated.interval,
            ease_factor=updated.ease_factor,
            next_review=updated.next_review,
        )

    session.results.append(result)
    session.position += 1
    if session.finished:
        logger.info(
            "Study session %s complete: %d answered", session_id, len(session.results)
        )
    return result
