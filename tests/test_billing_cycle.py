"""Tests for rolling billing cycle arithmetic."""

from datetime import date, datetime, timedelta, timezone

import pytest

from reviewflow.services.billing_cycle import (
    as_utc,
    current_cycle_start,
    is_cycle_due,
    next_reset,
    to_naive_utc,
)

pytestmark = pytest.mark.unit


UTC = timezone.utc


class TestNextReset:
    """Tests for next_reset."""

    def test_documented_example(self):
        """Anchor Jan 15, 30 day cycle, now Feb 20 resets on Mar 15."""
        result = next_reset(date(2024, 1, 15), 30, date(2024, 2, 20))
        assert result == datetime(2024, 3, 15, tzinfo=UTC)

    def test_now_before_anchor_returns_anchor(self):
        result = next_reset(date(2024, 1, 15), 30, datetime(2024, 1, 10, 12, 0))
        assert result == datetime(2024, 1, 15, tzinfo=UTC)

    def test_within_first_cycle(self):
        result = next_reset(date(2024, 1, 15), 30, datetime(2024, 1, 20, 8, 30))
        assert result == datetime(2024, 2, 14, tzinfo=UTC)

    def test_now_equal_to_anchor_is_start_of_first_cycle(self):
        result = next_reset(date(2024, 1, 15), 30, datetime(2024, 1, 15))
        assert result == datetime(2024, 2, 14, tzinfo=UTC)

    def test_exactly_on_boundary_yields_following_boundary(self):
        result = next_reset(date(2024, 1, 15), 30, datetime(2024, 2, 14, 0, 0))
        assert result == datetime(2024, 3, 15, tzinfo=UTC)

    def test_several_cycles_past_anchor(self):
        """Leap year 2024: 360 days after Jan 15 is Jan 9 2025."""
        result = next_reset(date(2024, 1, 15), 30, datetime(2024, 12, 25))
        assert result == datetime(2025, 1, 9, tzinfo=UTC)

    def test_anchor_time_of_day_is_ignored(self):
        anchor = datetime(2024, 1, 15, 18, 30)
        result = next_reset(anchor, 30, datetime(2024, 2, 14, 1, 0))
        assert result == datetime(2024, 3, 15, tzinfo=UTC)

    def test_aware_now_is_converted_to_utc(self):
        # 19:00 on Feb 13 in UTC-5 is already midnight Feb 14 in UTC.
        now = datetime(2024, 2, 13, 19, 0, tzinfo=timezone(timedelta(hours=-5)))
        result = next_reset(date(2024, 1, 15), 30, now)
        assert result == datetime(2024, 3, 15, tzinfo=UTC)

    def test_result_is_aware_utc(self):
        result = next_reset(date(2024, 1, 15), 30, date(2024, 2, 20))
        assert result.tzinfo == UTC

    def test_repeated_calls_are_stable(self):
        now = datetime(2024, 6, 1, 12, 0)
        assert next_reset(date(2024, 1, 15), 30, now) == next_reset(
            date(2024, 1, 15), 30, now
        )

    def test_result_is_always_after_now(self):
        anchor = date(2024, 1, 15)
        now = datetime(2024, 1, 15)
        for _ in range(100):
            result = next_reset(anchor, 7, now)
            assert result > as_utc(now)
            assert result - as_utc(now) <= timedelta(days=7)
            now += timedelta(hours=13)

    def test_rejects_non_positive_cycle(self):
        with pytest.raises(ValueError):
            next_reset(date(2024, 1, 15), 0, date(2024, 2, 20))


class TestCurrentCycleStart:
    """Tests for current_cycle_start."""

    def test_start_of_cycle_containing_now(self):
        result = current_cycle_start(date(2024, 1, 15), 30, date(2024, 2, 20))
        assert result == datetime(2024, 2, 14, tzinfo=UTC)

    def test_on_boundary_is_that_boundary(self):
        result = current_cycle_start(date(2024, 1, 15), 30, datetime(2024, 3, 15))
        assert result == datetime(2024, 3, 15, tzinfo=UTC)

    def test_before_anchor_is_anchor(self):
        result = current_cycle_start(date(2024, 1, 15), 30, date(2024, 1, 1))
        assert result == datetime(2024, 1, 15, tzinfo=UTC)


class TestIsCycleDue:
    """Tests for is_cycle_due."""

    def test_not_due_inside_first_cycle(self):
        anchor = datetime(2024, 1, 15, 10, 0)
        assert not is_cycle_due(anchor, 30, datetime(2024, 2, 13, 23, 59))

    def test_due_at_boundary(self):
        anchor = datetime(2024, 1, 15, 10, 0)
        assert is_cycle_due(anchor, 30, datetime(2024, 2, 14))

    def test_due_well_after_boundary(self):
        assert is_cycle_due(date(2024, 1, 15), 30, date(2024, 6, 1))


class TestToNaiveUtc:
    """Tests for to_naive_utc."""

    def test_aware_value_is_shifted_and_stripped(self):
        value = datetime(2024, 1, 1, 2, 0, tzinfo=timezone(timedelta(hours=2)))
        assert to_naive_utc(value) == datetime(2024, 1, 1, 0, 0)

    def test_naive_value_is_unchanged(self):
        value = datetime(2024, 1, 1, 5, 30)
        assert to_naive_utc(value) == value
