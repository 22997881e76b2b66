"""Timestamp parsing shared by the core - no I/O dependencies."""

from datetime import date, datetime, timezone


def parse_timestamp(value) -> datetime | None:
    """
    Parse an ISO-8601 timestamp into an aware UTC datetime.

    Returns None for absent, blank or unparsable values. Naive values are
    read as UTC.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_date(value) -> date | None:
    """Parse a YYYY-MM-DD calendar date. Returns None if invalid."""
    if isinstance(value, datetime):
        return None
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    # fromisoformat also accepts compact forms like 20250115
    if len(text) != 10 or text[4] != "-" or text[7] != "-":
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def to_iso(instant: datetime) -> str:
    """Format an instant as a UTC ISO string with millisecond precision."""
    utc = instant.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"
