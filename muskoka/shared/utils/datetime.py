"""UTC time helpers.

Task and result timestamps are stored and compared as aware UTC datetimes;
cache decisions subtract them from utc_now(), which fails on naive values.
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Current time, timezone-aware UTC."""
    return datetime.now(UTC)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Normalize a datetime read back from a store to aware UTC.

    Naive values are taken to be UTC already. None passes through.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)
