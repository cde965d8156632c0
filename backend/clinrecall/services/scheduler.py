"""
Spaced-repetition scheduler.

Maps a card's current (interval, ease_factor) and a review quality to the next
scheduling state:

  again -> interval 1,                          ease max(1.3, ease - 0.2)
  good  -> interval round(interval * ease),       ease unchanged
  easy  -> interval round(interval * ease * 1.3), ease min(2.5, ease + 0.1)

Rounding is half away from zero on the exact decimal product, so 1 * 2.5 -> 3.
There is no upper bound on the interval.

The function is pure: "now" is passed in as epoch milliseconds and nothing is
persisted. Invalid input raises InvalidArgumentError instead of being clamped.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from clinrecall.models.flashcard import ReviewQuality

MS_PER_DAY = 86_400_000

MIN_EASE = Decimal("1.3")
MAX_EASE = Decimal("2.5")
AGAIN_EASE_PENALTY = Decimal("0.2")
EASY_EASE_BONUS = Decimal("0.1")
EASY_INTERVAL_BONUS = Decimal("1.3")

INITIAL_INTERVAL = 1
INITIAL_EASE = 2.5


class InvalidArgumentError(ValueError):
    """Raised when scheduler input violates the card invariants."""


@dataclass(frozen=True)
class ScheduleState:
    interval: int      # days
    ease_factor: float
    next_review: int   # epoch ms


def _round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _validate(interval: int, ease_factor: float, quality) -> tuple[Decimal, ReviewQuality]:
    try:
        q = ReviewQuality(quality)
    except ValueError:
        raise InvalidArgumentError(
            f"quality must be one of again, good, easy (got {quality!r})"
        ) from None

    if isinstance(interval, bool) or not isinstance(interval, int) or interval < 1:
        raise InvalidArgumentError(f"interval must be an integer >= 1 (got {interval!r})")

    if isinstance(ease_factor, bool) or not isinstance(ease_factor, (int, float)):
        raise InvalidArgumentError(f"ease_factor must be a number (got {ease_factor!r})")
    if not math.isfinite(ease_factor):
        raise InvalidArgumentError(f"ease_factor must be finite (got {ease_factor!r})")
    # str() keeps 2.3 as Decimal("2.3") rather than its binary expansion
    ease = Decimal(str(ease_factor))
    if not (MIN_EASE <= ease <= MAX_EASE):
        raise InvalidArgumentError(
            f"ease_factor must be within [{MIN_EASE}, {MAX_EASE}] (got {ease_factor!r})"
        )
    return ease, q


def next_schedule(
    interval: int,
    ease_factor: float,
    quality: ReviewQuality | str,
    now_ms: int,
) -> ScheduleState:
    """Compute the next scheduling state for one review of one card."""
    ease, q = _validate(interval, ease_factor, quality)

    if q is ReviewQuality.AGAIN:
        new_interval = 1
        new_ease = max(MIN_EASE, ease - AGAIN_EASE_PENALTY)
    elif q is ReviewQuality.GOOD:
        new_interval = _round_half_up(interval * ease)
        new_ease = ease
    else:
        new_interval = _round_half_up(interval * ease * EASY_INTERVAL_BONUS)
        new_ease = min(MAX_EASE, ease + EASY_EASE_BONUS)

    return ScheduleState(
        interval=new_interval,
        ease_factor=float(new_ease),
        next_review=now_ms + new_interval * MS_PER_DAY,
    )


def is_due(next_review: int, now_ms: int) -> bool:
    return next_review <= now_ms
