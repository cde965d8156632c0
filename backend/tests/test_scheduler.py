"""Tests for the spaced-repetition scheduler."""

import itertools

import pytest

from clinrecall.models.flashcard import ReviewQuality
from clinrecall.services.scheduler import (
    MS_PER_DAY,
    InvalidArgumentError,
    ScheduleState,
    is_due,
    next_schedule,
)

NOW = 1_700_000_000_000

INTERVALS = [1, 2, 3, 5, 13, 100, 365]
EASES = [1.3, 1.35, 1.4, 1.75, 2.0, 2.3, 2.45, 2.5]


class TestConcreteValues:
    def test_again_drops_ease_by_point_two(self):
        result = next_schedule(1, 2.5, ReviewQuality.AGAIN, NOW)
        assert result.ease_factor == 2.3
        assert result.interval == 1

    def test_again_clamps_ease_at_floor(self):
        result = next_schedule(4, 1.4, ReviewQuality.AGAIN, NOW)
        assert result.ease_factor == 1.3

    def test_good_rounds_half_away_from_zero(self):
        # 1 * 2.5 = 2.5 -> 3 (banker's rounding would give 2)
        result = next_schedule(1, 2.5, ReviewQuality.GOOD, NOW)
        assert result.interval == 3
        assert result.ease_factor == 2.5

    def test_good_half_case_on_larger_interval(self):
        # 5 * 2.5 = 12.5 -> 13
        assert next_schedule(5, 2.5, ReviewQuality.GOOD, NOW).interval == 13

    def test_good_uses_decimal_product(self):
        # 5 * 2.3 is 11.5 exactly in decimal, 11.499... in binary floats
        assert next_schedule(5, 2.3, ReviewQuality.GOOD, NOW).interval == 12

    def test_easy_caps_ease(self):
        result = next_schedule(1, 2.45, ReviewQuality.EASY, NOW)
        assert result.ease_factor == 2.5

    def test_easy_interval_formula(self):
        # round(3 * 2.0 * 1.3) = round(7.8) = 8
        result = next_schedule(3, 2.0, ReviewQuality.EASY, NOW)
        assert result.interval == 8
        assert result.ease_factor == 2.1

    def test_easy_combines_multiplier_and_ease_bonus(self):
        result = next_schedule(10, 2.0, ReviewQuality.EASY, NOW)
        assert result.interval == 26  # 10 * 2.0 * 1.3
        assert result.ease_factor == 2.1

    def test_next_review_is_now_plus_interval_days(self):
        result = next_schedule(3, 2.0, ReviewQuality.EASY, NOW)
        assert result.next_review == NOW + 8 * MS_PER_DAY

    def test_accepts_plain_string_quality(self):
        assert next_schedule(1, 2.5, "good", NOW) == next_schedule(
            1, 2.5, ReviewQuality.GOOD, NOW
        )

    def test_no_interval_cap(self):
        result = next_schedule(10_000, 2.5, ReviewQuality.EASY, NOW)
        assert result.interval == 32_500

    def test_returns_schedule_state(self):
        assert isinstance(next_schedule(1, 2.5, "again", NOW), ScheduleState)


class TestAgainResets:
    @pytest.mark.parametrize("interval", [1, 5, 100])
    @pytest.mark.parametrize("ease", EASES)
    def test_interval_is_one(self, interval, ease):
        assert next_schedule(interval, ease, ReviewQuality.AGAIN, NOW).interval == 1

    @pytest.mark.parametrize("ease", EASES)
    def test_ease_rule(self, ease):
        result = next_schedule(5, ease, ReviewQuality.AGAIN, NOW)
        assert result.ease_factor == pytest.approx(max(1.3, ease - 0.2))


class TestInvariants:
    @pytest.mark.parametrize(
        "interval,ease,quality", list(itertools.product(INTERVALS, EASES, ReviewQuality))
    )
    def test_outputs_stay_in_bounds(self, interval, ease, quality):
        result = next_schedule(interval, ease, quality, NOW)
        assert 1.3 <= result.ease_factor <= 2.5
        assert result.interval >= 1
        assert result.next_review == NOW + result.interval * MS_PER_DAY

    @pytest.mark.parametrize("ease", EASES)
    def test_good_leaves_ease_unchanged(self, ease):
        assert next_schedule(7, ease, ReviewQuality.GOOD, NOW).ease_factor == ease

    @pytest.mark.parametrize("quality", list(ReviewQuality))
    def test_deterministic(self, quality):
        first = next_schedule(13, 1.75, quality, NOW)
        for _ in range(5):
            assert next_schedule(13, 1.75, quality, NOW) == first

    def test_chained_reviews_stay_valid(self):
        interval, ease, now = 1, 2.5, NOW
        for quality in itertools.islice(itertools.cycle(ReviewQuality), 60):
            state = next_schedule(interval, ease, quality, now)
            interval, ease, now = state.interval, state.ease_factor, state.next_review
            assert 1.3 <= ease <= 2.5
            assert interval >= 1


class TestPreconditions:
    @pytest.mark.parametrize("quality", ["hard", "GOOD", "", None, 3])
    def test_rejects_unknown_quality(self, quality):
        with pytest.raises(InvalidArgumentError):
            next_schedule(1, 2.5, quality, NOW)

    @pytest.mark.parametrize("interval", [0, -1, 1.5, True, "3"])
    def test_rejects_bad_interval(self, interval):
        with pytest.raises(InvalidArgumentError):
            next_schedule(interval, 2.5, ReviewQuality.GOOD, NOW)

    @pytest.mark.parametrize(
        "ease", [1.29, 2.51, 0, 3.0, "2.5", None, float("nan"), float("inf"), float("-inf")]
    )
    def test_rejects_out_of_range_ease(self, ease):
        with pytest.raises(InvalidArgumentError):
            next_schedule(1, ease, ReviewQuality.GOOD, NOW)

    def test_does_not_clamp_bad_input(self):
        # 2.6 - 0.2 would land in range; the input must still be refused
        with pytest.raises(InvalidArgumentError):
            next_schedule(1, 2.6, ReviewQuality.AGAIN, NOW)

    def test_is_value_error(self):
        assert issubclass(InvalidArgumentError, ValueError)


class TestIsDue:
    def test_boundary_is_due(self):
        assert is_due(NOW, NOW)

    def test_past_is_due(self):
        assert is_due(NOW - 1, NOW)

    def test_future_is_not_due(self):
        assert not is_due(NOW + 1, NOW)


def test_end_to_end_good_then_again():
    t0 = NOW
    first = next_schedule(1, 2.5, ReviewQuality.GOOD, t0)
    assert (first.interval, first.ease_factor, first.next_review) == (3, 2.5, t0 + 3 * MS_PER_DAY)

    t1 = first.next_review
    second = next_schedule(first.interval, first.ease_factor, ReviewQuality.AGAIN, t1)
    assert (second.interval, second.ease_factor, second.next_review) == (1, 2.3, t1 + MS_PER_DAY)
