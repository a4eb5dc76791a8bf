from datetime import datetime, timedelta, timezone
from fastapi import HTTPException, status


def now_utc() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_utc_naive(dt: datetime) -> datetime:
    """Normalise a datetime to naive UTC, the form timestamps are stored in.

    Naive input is assumed to already be UTC.
    """
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def isoformat_utc(dt: datetime) -> str:
    """Render a stored (naive UTC) datetime as an ISO-8601 string with a Z suffix."""
    return to_utc_naive(dt).isoformat(timespec="milliseconds") + "Z"


def parse_date_bound(value: str | None, end_of_day: bool = False) -> datetime | None:
    """Parse a start_date/end_date query value into naive UTC.

    A bare date (YYYY-MM-DD) covers the whole day: midnight for a lower
    bound, the last microsecond of the day for an upper bound.
    """
    if not value:
        return None

    try:
        day = datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        day = None
    if day is not None:
        return day + timedelta(days=1, microseconds=-1) if end_of_day else day

    try:
        return to_utc_naive(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid date '{value}'. Use YYYY-MM-DD or ISO format"
        )
