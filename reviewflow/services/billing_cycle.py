"""Rolling billing cycle arithmetic.

Every account has its own anniversary-based cycle: the allowance resets every
``cycle_length_days`` days counted from the anchor date, with all boundaries
at midnight UTC. The rollover sweep in ``QuotaStore`` uses the same
functions, so the displayed reset date always matches the actual reset.
"""

from datetime import date, datetime, time, timedelta, timezone


def as_utc(value: date | datetime) -> datetime:
    """Interpret a date or datetime as an aware UTC datetime.

    Naive datetimes are assumed to already be in UTC (that is how they are
    stored).
    """
    if not isinstance(value, datetime):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _midnight(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def next_reset(
    anchor: date | datetime,
    cycle_length_days: int,
    now: date | datetime,
) -> datetime:
    """Return the first cycle boundary strictly after ``now``.

    The anchor is normalized to midnight UTC and advanced by whole cycles.
    A ``now`` that falls exactly on a boundary yields the following boundary.

    >>> next_reset(date(2024, 1, 15), 30, date(2024, 2, 20)).date()
    datetime.date(2024, 3, 15)
    """
    if cycle_length_days < 1:
        raise ValueError("cycle_length_days must be at least 1")

    start = _midnight(as_utc(anchor))
    current = as_utc(now)
    cycle = timedelta(days=cycle_length_days)

    if current < start:
        return start

    elapsed_cycles = (current - start) // cycle
    return start + cycle * (elapsed_cycles + 1)


def current_cycle_start(
    anchor: date | datetime,
    cycle_length_days: int,
    now: date | datetime,
) -> datetime:
    """Return the most recent cycle boundary not after ``now``."""
    start = _midnight(as_utc(anchor))
    if as_utc(now) < start:
        return start
    return next_reset(anchor, cycle_length_days, now) - timedelta(days=cycle_length_days)


def is_cycle_due(
    anchor: date | datetime,
    cycle_length_days: int,
    now: date | datetime,
) -> bool:
    """True once at least one full cycle has elapsed since the anchor."""
    start = _midnight(as_utc(anchor))
    return as_utc(now) >= start + timedelta(days=cycle_length_days)


def to_naive_utc(value: datetime) -> datetime:
    """Convert to the naive UTC form used by the database columns."""
    return as_utc(value).replace(tzinfo=None)
