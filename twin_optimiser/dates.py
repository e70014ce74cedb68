"""Calendar helpers for the booking grid.

The grid is keyed by plain ``datetime.date`` values. Upstream timestamps
arrive as strings in a handful of shapes (``2024-01-01``,
``2024-01-01 14:00:00``, ISO 8601 with ``T`` and an optional ``Z``); the
helpers here turn them into ``date``/``datetime`` values and minute counts.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Iterator, List, Optional, Union

Timestamp = Union[str, date, datetime, None]


def build_date_range(start: date, days: int) -> List[date]:
    """Return ``days`` consecutive calendar dates beginning at ``start``."""
    return [start + timedelta(days=offset) for offset in range(days)]


def iter_days(first: date, stop: date) -> Iterator[date]:
    """Yield every date in the half-open interval ``[first, stop)``."""
    current = first
    while current < stop:
        yield current
        current += timedelta(days=1)


def parse_timestamp(value: Timestamp) -> Optional[datetime]:
    """Parse an upstream timestamp into a naive ``datetime``.

    Returns ``None`` for empty values. Raises ``ValueError`` when a
    non-empty string cannot be read.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime.combine(value, time())
    raw = str(value).strip()
    if not raw:
        return None
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    return datetime.fromisoformat(raw).replace(tzinfo=None)


def parse_date(value: Timestamp) -> Optional[date]:
    stamp = parse_timestamp(value)
    return stamp.date() if stamp is not None else None


def minutes_since_midnight(value: Timestamp) -> Optional[int]:
    """Return the time-of-day of ``value`` in minutes, or ``None``.

    Accepts anything ``parse_timestamp`` accepts plus a bare ``HH:MM[:SS]``.
    Unreadable values yield ``None`` rather than an error.
    """
    if isinstance(value, str) and ":" in value and "-" not in value:
        try:
            clock = time.fromisoformat(value.strip())
        except ValueError:
            return None
        return clock.hour * 60 + clock.minute
    try:
        stamp = parse_timestamp(value)
    except ValueError:
        return None
    if stamp is None:
        return None
    return stamp.hour * 60 + stamp.minute


def format_day_label(day: date) -> str:
    return day.strftime("%a")


def format_short_date(day: date) -> str:
    return day.strftime("%d/%m")
