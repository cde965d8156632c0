"""
Practice replay of a study session's snapshot.

Read-only: replays the question/answer pairs captured when the study session
started. Nothing here touches the database or the scheduler.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass

from clinrecall.models.study import PracticeState, SessionCard
from clinrecall.services.study_session import SessionNotFoundError, get_session

_MAX_REPLAYS = 256


@dataclass
class PracticeReplay:
    id: str
    source_session_id: str
    cards: tuple[SessionCard, ...]
    position: int = 0

    @property
    def current(self) -> SessionCard | None:
        if self.position < len(self.cards):
            return self.cards[self.position]
        return None

    @property
    def finished(self) -> bool:
        return self.position >= len(self.cards)

    def advance(self) -> None:
        if not self.finished:
            self.position += 1

    def to_state(self) -> PracticeState:
        return PracticeState(
            id=self.id,
            source_session_id=self.source_session_id,
            total=len(self.cards),
            position=self.position,
            finished=self.finished,
            current=self.current,
            cards=list(self.cards),
        )


_replays: dict[str, PracticeReplay] = {}


def start_practice(session_id: str) -> PracticeReplay:
    """Start a replay of the cards the study session snapshotted."""
    session = get_session(session_id)
    replay = PracticeReplay(
        id=str(uuid.uuid4()),
        source_session_id=session.id,
        cards=tuple(c.model_copy() for c in session.cards),
    )
    while len(_replays) >= _MAX_REPLAYS:
        _replays.pop(next(iter(_replays)), None)
    _replays[replay.id] = replay
    return replay


def get_practice(replay_id: str) -> PracticeReplay:
    replay = _replays.get(replay_id)
    if replay is None:
        raise SessionNotFoundError(replay_id)
    return replay


def advance_practice(replay_id: str) -> PracticeReplay:
    replay = get_practice(replay_id)
    replay.advance()
    return replay
