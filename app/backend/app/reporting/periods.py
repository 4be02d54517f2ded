"""Timestamp parsing and period keys for report bucketing.

Week keys use the dashboard's historical week rule rather than ISO-8601:
``week = ceil((days_since_jan1 + weekday_of_jan1 + 1) / 7)`` with weekdays
counted from Sunday = 0. Existing period labels depend on it, so it must not
be swapped for ``date.isocalendar()``.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone

from app.reporting.types import Granularity

YEAR_ONLY_RE = re.compile(r"^\d{4}$")
ONE_DAY = timedelta(days=1)


class MalformedTimestampError(ValueError):
    """Raised when a value cannot be interpreted as a timestamp."""


def parse_timestamp(value: datetime | date | str | None) -> datetime:
    """Coerce ``value`` into a naive UTC ``datetime``.

    Accepts datetimes, dates, ISO-8601 strings (a trailing ``Z`` is allowed)
    and bare ``YYYY`` years, which resolve to January 1 00:00.
    """

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise MalformedTimestampError("empty timestamp")
        if YEAR_ONLY_RE.match(text):
            return datetime(int(text), 1, 1)
        if text.endswith(("Z", "z")):
            text = f"{text[:-1]}+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as exc:
            raise MalformedTimestampError(f"unparseable timestamp: {value!r}") from exc
    else:
        raise MalformedTimestampError(f"unsupported timestamp value: {value!r}")

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def week_number(moment: datetime) -> int:
    jan1 = datetime(moment.year, 1, 1)
    days_since_jan1 = (moment - jan1) // ONE_DAY
    # date.weekday() is Monday = 0; the week rule counts from Sunday = 0.
    weekday_of_jan1 = (jan1.weekday() + 1) % 7
    return -(-(days_since_jan1 + weekday_of_jan1 + 1) // 7)


def _key_for(moment: datetime, granularity: Granularity) -> str:
    if granularity is Granularity.YEAR:
        return f"{moment.year:04d}"
    if granularity is Granularity.MONTH:
        return f"{moment.year:04d}-{moment.month:02d}"
    return f"{moment.year:04d}-W{week_number(moment):02d}"


def period_key(value: datetime | date | str | None, granularity: Granularity) -> str:
    """Return the sortable period label of ``value`` for ``granularity``."""

    return _key_for(parse_timestamp(value), Granularity(granularity))


def period_labels(granularity: Granularity, anchor: datetime, count: int) -> list[str]:
    """Enumerate ``count`` period labels, newest first, ending at ``anchor``."""

    granularity = Granularity(granularity)
    if count <= 0:
        return []

    if granularity is Granularity.YEAR:
        return [f"{anchor.year - offset:04d}" for offset in range(count)]

    if granularity is Granularity.MONTH:
        labels: list[str] = []
        year, month = anchor.year, anchor.month
        for _ in range(count):
            labels.append(f"{year:04d}-{month:02d}")
            month -= 1
            if month == 0:
                year, month = year - 1, 12
        return labels

    # Custom weeks can be shorter than seven days around January 1, so walk
    # back one day at a time to avoid skipping a label.
    labels = []
    cursor = anchor
    while len(labels) < count:
        key = _key_for(cursor, granularity)
        if key not in labels:
            labels.append(key)
        cursor -= ONE_DAY
    return labels
