"""Staleness rules for stored analyses.

An analysis is stale when it predates the current result schema (SCHEMA_EPOCH)
or is older than FRESHNESS_WINDOW. Stale analyses may be replaced by an
authenticated resubmission.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

# Results produced before this moment use an older output schema.
SCHEMA_EPOCH = datetime(2025, 9, 10, 15, 12, 30, 949000, tzinfo=UTC)
FRESHNESS_WINDOW = timedelta(days=14)


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    parsed = value if isinstance(value, datetime) else datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def is_analysis_old(created_at: str | datetime, now: datetime | None = None) -> bool:
    """Return True if an analysis created at created_at is stale.

    Unparseable timestamps count as stale so the row can be replaced.
    """
    try:
        created = parse_timestamp(created_at)
    except (TypeError, ValueError):
        return True
    if created < SCHEMA_EPOCH:
        return True
    now = now or datetime.now(UTC)
    return now - created > FRESHNESS_WINDOW
