import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from clinrecall.config import settings
from clinrecall.models.case import CaseNote, CaseNoteCreate
from clinrecall.models.flashcard import Flashcard, FlashcardCreate, FlashcardUpdate
from clinrecall.services.scheduler import INITIAL_EASE, INITIAL_INTERVAL, ScheduleState

_db_path: Path | None = None

# ease_factor is stored as a fixed-point integer: 250 == 2.50
EASE_SCALE = 100

SCHEMA_SQL = """
PRAGMA journal_mode=WAL;
PRAGMA foreign_keys=ON;

CREATE TABLE IF NOT EXISTS case_notes (
    id                  TEXT PRIMARY KEY,
    transcript          TEXT NOT NULL,
    ai_draft            TEXT NOT NULL,
    clinician_diagnosis TEXT NOT NULL,
    clinician_plan      TEXT NOT NULL,
    created_at          TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_case_notes_created ON case_notes(created_at);

CREATE TABLE IF NOT EXISTS flashcards (
    id           TEXT PRIMARY KEY,
    case_note_id TEXT NOT NULL REFERENCES case_notes(id) ON DELETE CASCADE,
    question     TEXT NOT NULL,
    answer       TEXT NOT NULL,
    interval     INTEGER NOT NULL DEFAULT 1 CHECK (interval >= 1),
    ease_factor  INTEGER NOT NULL DEFAULT 250 CHECK (ease_factor BETWEEN 130 AND 250),
    next_review  INTEGER NOT NULL,
    created_at   TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at   TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_flashcards_review ON flashcards(next_review, id);
CREATE INDEX IF NOT EXISTS idx_flashcards_case ON flashcards(case_note_id);

CREATE TABLE IF NOT EXISTS schema_version (
    version    INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);
INSERT OR IGNORE INTO schema_version(version) VALUES (1);

CREATE TABLE IF NOT EXISTS settings (
    key        TEXT PRIMARY KEY,
    value      TEXT NOT NULL DEFAULT '',
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);
INSERT OR IGNORE INTO settings(key, value) VALUES ('llm_model_id', '');
INSERT OR IGNORE INTO settings(key, value) VALUES ('llm_model_path', '');
"""


async def init_sqlite(data_dir: Path) -> None:
    global _db_path
    _db_path = data_dir / settings.sqlite_filename
    async with aiosqlite.connect(_db_path) as db:
        await db.executescript(SCHEMA_SQL)
        await db.commit()


async def get_db() -> AsyncIterator[aiosqlite.Connection]:
    assert _db_path is not None, "SQLite not initialized"
    async with aiosqlite.connect(_db_path) as db:
        db.row_factory = aiosqlite.Row
        await db.execute("PRAGMA foreign_keys=ON")
        yield db


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def ease_to_db(ease_factor: float) -> int:
    return round(ease_factor * EASE_SCALE)


def ease_from_db(value: int) -> float:
    return value / EASE_SCALE


# --- Case notes ---


def _row_to_case(row: aiosqlite.Row) -> CaseNote:
    return CaseNote(**dict(row))


async def create_case_note(
    db: aiosqlite.Connection,
    case: CaseNoteCreate,
    cards: list[FlashcardCreate],
    now_ms: int,
) -> tuple[CaseNote, list[Flashcard]]:
    """Insert a case note and its flashcards in one transaction.

    New cards start at interval 1, ease 2.5 and are due immediately
    (next_review = now_ms).
    """
    case_id = str(uuid.uuid4())
    now = _now()
    card_ids: list[str] = []
    try:
        await db.execute(
            """INSERT INTO case_notes
               (id, transcript, ai_draft, clinician_diagnosis, clinician_plan, created_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (
                case_id,
                case.transcript,
                case.ai_draft,
                case.clinician_diagnosis,
                case.clinician_plan,
                now,
            ),
        )
        for card in cards:
            card_id = str(uuid.uuid4())
            card_ids.append(card_id)
            await db.execute(
                """INSERT INTO flashcards
                   (id, case_note_id, question, answer, interval, ease_factor,
                    next_review, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    card_id,
                    case_id,
                    card.question,
                    card.answer,
                    INITIAL_INTERVAL,
                    ease_to_db(INITIAL_EASE),
                    now_ms,
                    now,
                    now,
                ),
            )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    saved = await get_case_note(db, case_id)
    flashcards = [await get_flashcard(db, cid) for cid in card_ids]
    return saved, [c for c in flashcards if c is not None]  # type: ignore[return-value]


async def get_case_note(db: aiosqlite.Connection, case_id: str) -> CaseNote | None:
    cursor = await db.execute("SELECT * FROM case_notes WHERE id = ?", (case_id,))
    row = await cursor.fetchone()
    if row is None:
        return None
    return _row_to_case(row)


async def list_case_notes(
    db: aiosqlite.Connection,
    query: str | None = None,
    offset: int = 0,
    limit: int = 50,
) -> tuple[list[CaseNote], int]:
    """Newest first. `query` is a case-insensitive substring match on
    transcript, AI draft and clinician diagnosis."""
    where = ""
    params: list = []
    if query:
        # instr() avoids LIKE wildcard escaping; lower() covers ASCII case folding
        where = (
            "WHERE instr(lower(transcript), lower(?)) > 0 "
            "OR instr(lower(ai_draft), lower(?)) > 0 "
            "OR instr(lower(clinician_diagnosis), lower(?)) > 0"
        )
        params = [query, query, query]

    cursor = await db.execute(
        f"SELECT COUNT(*) FROM case_notes {where}", params  # noqa: S608
    )
    total = (await cursor.fetchone())[0]

    cursor = await db.execute(
        f"SELECT * FROM case_notes {where} "  # noqa: S608
        "ORDER BY created_at DESC, rowid DESC LIMIT ? OFFSET ?",
        params + [limit, offset],
    )
    rows = await cursor.fetchall()
    return [_row_to_case(r) for r in rows], total


async def count_case_notes(db: aiosqlite.Connection) -> int:
    cursor = await db.execute("SELECT COUNT(*) FROM case_notes")
    return (await cursor.fetchone())[0]


async def delete_case_note(db: aiosqlite.Connection, case_id: str) -> bool:
    """Delete a case; its flashcards go with it (ON DELETE CASCADE)."""
    cursor = await db.execute("DELETE FROM case_notes WHERE id = ?", (case_id,))
    await db.commit()
    return (cursor.rowcount or 0) > 0


# --- Flashcards ---


def _row_to_flashcard(row: aiosqlite.Row) -> Flashcard:
    d = dict(row)
    d["ease_factor"] = ease_from_db(d["ease_factor"])
    return Flashcard(**d)


async def get_due_flashcards(
    db: aiosqlite.Connection,
    now_ms: int,
    limit: int | None = None,
    case_id: str | None = None,
) -> list[Flashcard]:
    """Cards with next_review <= now_ms, oldest first, ties broken by id."""
    sql = "SELECT * FROM flashcards WHERE next_review <= ?"
    params: list = [now_ms]
    if case_id:
        sql += " AND case_note_id = ?"
        params.append(case_id)
    sql += " ORDER BY next_review ASC, id ASC"
    if limit is not None:
        sql += " LIMIT ?"
        params.append(limit)
    cursor = await db.execute(sql, params)
    rows = await cursor.fetchall()
    return [_row_to_flashcard(r) for r in rows]


async def get_flashcard(db: aiosqlite.Connection, card_id: str) -> Flashcard | None:
    cursor = await db.execute("SELECT * FROM flashcards WHERE id = ?", (card_id,))
    row = await cursor.fetchone()
    return _row_to_flashcard(row) if row else None


async def list_flashcards(
    db: aiosqlite.Connection,
    case_id: str | None = None,
    offset: int = 0,
    limit: int = 50,
) -> tuple[list[Flashcard], int]:
    if case_id:
        cursor = await db.execute(
            "SELECT * FROM flashcards WHERE case_note_id = ? "
            "ORDER BY created_at ASC, rowid ASC LIMIT ? OFFSET ?",
            (case_id, limit, offset),
        )
        count_cursor = await db.execute(
            "SELECT COUNT(*) FROM flashcards WHERE case_note_id = ?", (case_id,)
        )
    else:
        cursor = await db.execute(
            "SELECT * FROM flashcards ORDER BY created_at ASC, rowid ASC LIMIT ? OFFSET ?",
            (limit, offset),
        )
        count_cursor = await db.execute("SELECT COUNT(*) FROM flashcards")
    rows = await cursor.fetchall()
    count_row = await count_cursor.fetchone()
    total = count_row[0] if count_row else 0
    return [_row_to_flashcard(r) for r in rows], total


async def update_flashcard_schedule(
    db: aiosqlite.Connection,
    card: Flashcard,
    new: ScheduleState,
) -> bool:
    """Write the next scheduling state, guarded by the state `card` was read with.

    Returns False when no row matched: the card is gone or another writer
    changed its schedule since it was read.
    """
    cursor = await db.execute(
        """UPDATE flashcards
           SET interval = ?, ease_factor = ?, next_review = ?, updated_at = ?
           WHERE id = ? AND interval = ? AND ease_factor = ? AND next_review = ?""",
        (
            new.interval,
            ease_to_db(new.ease_factor),
            new.next_review,
            _now(),
            card.id,
            card.interval,
            ease_to_db(card.ease_factor),
            card.next_review,
        ),
    )
    await db.commit()
    return (cursor.rowcount or 0) > 0


async def update_flashcard_content(
    db: aiosqlite.Connection,
    card_id: str,
    update: FlashcardUpdate,
) -> Flashcard | None:
    card = await get_flashcard(db, card_id)
    if not card:
        return None
    new_q = update.question if update.question is not None else card.question
    new_a = update.answer if update.answer is not None else card.answer
    now = _now()
    await db.execute(
        "UPDATE flashcards SET question = ?, answer = ?, updated_at = ? WHERE id = ?",
        (new_q, new_a, now, card_id),
    )
    await db.commit()
    return await get_flashcard(db, card_id)


async def delete_flashcard(db: aiosqlite.Connection, card_id: str) -> bool:
    cursor = await db.execute("DELETE FROM flashcards WHERE id = ?", (card_id,))
    await db.commit()
    return (cursor.rowcount or 0) > 0


async def get_flashcard_stats(db: aiosqlite.Connection, now_ms: int) -> dict:
    """Return total cards, cards due at now_ms, and a per-case breakdown."""
    total_cursor = await db.execute("SELECT COUNT(*) FROM flashcards")
    total_row = await total_cursor.fetchone()
    total_cards: int = total_row[0] if total_row else 0

    due_cursor = await db.execute(
        "SELECT COUNT(*) FROM flashcards WHERE next_review <= ?", (now_ms,)
    )
    due_row = await due_cursor.fetchone()
    due_now: int = due_row[0] if due_row else 0

    per_case_cursor = await db.execute(
        """SELECT f.case_note_id, c.clinician_diagnosis,
                  COUNT(*) as total,
                  SUM(CASE WHEN f.next_review <= ? THEN 1 ELSE 0 END) as due
           FROM flashcards f
           LEFT JOIN case_notes c ON c.id = f.case_note_id
           GROUP BY f.case_note_id
           ORDER BY c.created_at DESC""",
        (now_ms,),
    )
    per_case_rows = await per_case_cursor.fetchall()
    per_case = [
        {
            "case_note_id": row[0],
            "diagnosis": row[1] or "",
            "total": row[2],
            "due": row[3] or 0,
        }
        for row in per_case_rows
    ]

    return {"total_cards": total_cards, "due_now": due_now, "per_case": per_case}


# --- Settings key-value store ---


async def get_setting(db: aiosqlite.Connection, key: str) -> str | None:
    cursor = await db.execute("SELECT value FROM settings WHERE key = ?", (key,))
    row = await cursor.fetchone()
    return row[0] if row else None


async def set_setting(db: aiosqlite.Connection, key: str, value: str) -> None:
    now = _now()
    await db.execute(
        "INSERT INTO settings(key, value, updated_at) VALUES (?, ?, ?) "
        "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at",
        (key, value, now),
    )
    await db.commit()


async def get_all_settings(db: aiosqlite.Connection) -> dict[str, str]:
    cursor = await db.execute("SELECT key, value FROM settings")
    rows = await cursor.fetchall()
    return {row[0]: row[1] for row in rows}
