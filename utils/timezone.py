"""UTC-everywhere time handling.

Timestamps are stored and compared in UTC; invoice due dates and analytics
buckets are UTC calendar dates.
"""

from datetime import date, datetime, timezone


def now_utc() -> datetime:
    """Aware current time in UTC. Never call datetime.now() without a tz."""
    return datetime.now(timezone.utc)


def today_utc() -> date:
    """Current calendar date in UTC."""
    return now_utc().date()


def to_utc(dt: datetime) -> datetime:
    """
    Normalize an aware datetime to UTC.

    Raises:
        ValueError: If dt is naive; a naive value has no defined instant
    """
    if dt.tzinfo is None:
        raise ValueError("Cannot convert naive datetime to UTC; attach a timezone first")
    return dt.astimezone(timezone.utc)


def parse_iso(iso_string: str) -> datetime:
    """
    Parse an ISO 8601 timestamp that carries an offset, returning UTC.

    Raises:
        ValueError: If the string is malformed or has no timezone offset
    """
    parsed = datetime.fromisoformat(iso_string)
    if parsed.tzinfo is None:
        raise ValueError(f"Timestamp '{iso_string}' has no timezone offset (expected e.g. 'Z' or '+00:00')")
    return to_utc(parsed)


def month_start(day: date, months_back: int = 0) -> date:
    """
    First day of the month `months_back` months before `day`'s month.

    month_start(date(2024, 3, 15), 2) == date(2024, 1, 1)
    """
    index = day.year * 12 + (day.month - 1) - months_back
    return date(index // 12, index % 12 + 1, 1)
