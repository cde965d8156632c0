from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class ReviewQuality(str, Enum):
    AGAIN = "again"
    GOOD = "good"
    EASY = "easy"


class Flashcard(BaseModel):
    id: str
    case_note_id: str
    question: str
    answer: str
    interval: int           # days until next review, >= 1
    ease_factor: float      # 1.3–2.5; stored as int x100 in SQLite
    next_review: int        # epoch ms; due when next_review <= now
    created_at: str
    updated_at: str


class FlashcardList(BaseModel):
    items: list[Flashcard]
    total: int


class FlashcardCreate(BaseModel):
    question: str = Field(min_length=1)
    answer: str = Field(min_length=1)


class FlashcardUpdate(BaseModel):
    question: str | None = Field(default=None, min_length=1)
    answer: str | None = Field(default=None, min_length=1)


class ReviewRequest(BaseModel):
    quality: ReviewQuality


class ReviewResult(BaseModel):
    id: str
    interval: int
    ease_factor: float
    next_review: int
