"""Change frequency heuristics for sitemap entries."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from sitemapper.models import ChangeFrequency, KindRole, RecordKind
from sitemapper.urls import parse_timestamp

SECONDS_PER_DAY = 24 * 3600

# (exclusive upper bound in days, label), checked in order
ACTIVITY_THRESHOLDS: tuple[tuple[int, ChangeFrequency], ...] = (
    (7, ChangeFrequency.DAILY),
    (30, ChangeFrequency.WEEKLY),
    (90, ChangeFrequency.MONTHLY),
)


def days_since(last_modified: Optional[datetime], now: datetime) -> int:
    """Whole days elapsed between ``last_modified`` and ``now`` (floored)."""
    if last_modified is None:
        return 0
    return int((now - last_modified).total_seconds() // SECONDS_PER_DAY)


def classify(
    kind: RecordKind | KindRole,
    last_modified: Any = None,
    now: Optional[datetime] = None,
) -> ChangeFrequency:
    """
    Map a record kind and last-modified date to a change frequency.

    Provider kinds are always ``monthly``. Activity kinds use the age of the
    record: under 7 days ``daily``, under 30 ``weekly``, under 90
    ``monthly``, otherwise ``yearly``. A missing or empty date counts as
    modified now; a date that is present but cannot be parsed is ``yearly``.

    Args:
        kind: Record kind (or its role)
        last_modified: Raw date value from the record
        now: Reference time, defaults to the current UTC time

    Returns:
        ChangeFrequency label
    """
    role = kind.role if isinstance(kind, RecordKind) else KindRole(kind)
    if role == KindRole.PROVIDER:
        return ChangeFrequency.MONTHLY

    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    if last_modified is None or last_modified == "":
        elapsed = 0
    else:
        parsed = parse_timestamp(last_modified)
        if parsed is None:
            return ChangeFrequency.YEARLY
        elapsed = days_since(parsed, now)
    for bound, frequency in ACTIVITY_THRESHOLDS:
        if elapsed < bound:
            return frequency
    return ChangeFrequency.YEARLY
