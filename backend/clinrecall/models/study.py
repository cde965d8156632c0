from enum import Enum

from pydantic import BaseModel, Field

from clinrecall.models.flashcard import ReviewQuality


class AnswerStatus(str, Enum):
    SCHEDULED = "scheduled"
    SKIPPED = "skipped"


class SessionCard(BaseModel):
    id: str
    question: str
    answer: str


class StartSessionRequest(BaseModel):
    limit: int | None = Field(default=None, ge=1)
    case_note_id: str | None = None


class AnswerRequest(BaseModel):
    card_id: str
    quality: ReviewQuality


class AnswerResult(BaseModel):
    card_id: str
    quality: ReviewQuality
    status: AnswerStatus
    interval: int | None = None
    ease_factor: float | None = None
    next_review: int | None = None
    detail: str | None = None


class StudySessionState(BaseModel):
    id: str
    started_at: int
    total: int
    position: int
    finished: bool
    current: SessionCard | None
    cards: list[SessionCard]
    results: list[AnswerResult]


class PracticeState(BaseModel):
    id: str
    source_session_id: str
    total: int
    position: int
    finished: bool
    current: SessionCard | None
    cards: list[SessionCard]
