"""Pure work-window logic - no I/O dependencies."""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from .timestamps import parse_date

DEFAULT_TIMEZONE = "America/New_York"
MAX_RANGE_DAYS = 60
DEFAULT_RANGE_DAYS = 7

# Outlook/Exchange ICS exports use Windows timezone ids
WINDOWS_TO_IANA_TIMEZONE = {
    "Eastern Standard Time": "America/New_York",
    "Central Standard Time": "America/Chicago",
    "Mountain Standard Time": "America/Denver",
    "Pacific Standard Time": "America/Los_Angeles",
    "Alaska Standard Time": "America/Anchorage",
    "Hawaiian Standard Time": "Pacific/Honolulu",
    "Atlantic Standard Time": "America/Halifax",
    "GMT Standard Time": "Europe/London",
    "W. Europe Standard Time": "Europe/Berlin",
    "Central European Standard Time": "Europe/Warsaw",
    "Romance Standard Time": "Europe/Paris",
    "Central Europe Standard Time": "Europe/Budapest",
    "E. Europe Standard Time": "Europe/Chisinau",
    "FLE Standard Time": "Europe/Kiev",
    "GTB Standard Time": "Europe/Bucharest",
    "Russian Standard Time": "Europe/Moscow",
    "India Standard Time": "Asia/Kolkata",
    "China Standard Time": "Asia/Shanghai",
    "Tokyo Standard Time": "Asia/Tokyo",
    "Korea Standard Time": "Asia/Seoul",
    "AUS Eastern Standard Time": "Australia/Sydney",
    "E. Australia Standard Time": "Australia/Brisbane",
    "Cen. Australia Standard Time": "Australia/Adelaide",
    "W. Australia Standard Time": "Australia/Perth",
    "New Zealand Standard Time": "Pacific/Auckland",
    "UTC": "UTC",
    "Coordinated Universal Time": "UTC",
}


class InvalidRange(ValueError):
    """Requested calendar range is malformed or reversed."""


def normalize_timezone_name(tzid: str) -> str:
    """Map a Windows timezone name to its IANA equivalent."""
    if "/" in tzid or tzid == "UTC":
        return tzid
    return WINDOWS_TO_IANA_TIMEZONE.get(tzid, tzid)


@dataclass(frozen=True)
class WorkdayConfig:
    """Local work hours used to build day windows."""

    timezone: str = DEFAULT_TIMEZONE
    work_start: time = time(8, 0)
    work_end: time = time(16, 30)

    def __post_init__(self):
        if self.work_end <= self.work_start:
            raise ValueError(
                f"work_end {self.work_end} must be after work_start {self.work_start}"
            )

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(normalize_timezone_name(self.timezone))

    def focus_window_minutes(self) -> int:
        start = self.work_start.hour * 60 + self.work_start.minute
        end = self.work_end.hour * 60 + self.work_end.minute
        return max(0, end - start)


@dataclass(frozen=True)
class DayWindow:
    """Work window for one local calendar day, in UTC."""

    date_local: date
    work_start_utc: datetime
    work_end_utc: datetime
    tz_name: str = DEFAULT_TIMEZONE

    def duration_minutes(self) -> int:
        return int((self.work_end_utc - self.work_start_utc).total_seconds() / 60)


@dataclass
class RangeWindows:
    """UTC bounds of a requested range plus its per-day work windows."""

    utc_range_start: datetime
    utc_range_end_exclusive: datetime
    windows: list[DayWindow]


def local_to_utc(day: date, at: time, tz: ZoneInfo) -> datetime:
    """Convert a local wall-clock time on a date to a UTC instant."""
    return datetime.combine(day, at, tzinfo=tz).astimezone(timezone.utc)


def local_date(instant: datetime, tz_name: str = DEFAULT_TIMEZONE) -> date:
    """Calendar date of an instant in the given timezone."""
    return instant.astimezone(ZoneInfo(normalize_timezone_name(tz_name))).date()


def local_day_bounds(day: date, tz_name: str = DEFAULT_TIMEZONE) -> tuple[datetime, datetime]:
    """UTC [start, end) of a local calendar day."""
    tz = ZoneInfo(normalize_timezone_name(tz_name))
    return local_to_utc(day, time(0, 0), tz), local_to_utc(day + timedelta(days=1), time(0, 0), tz)


def _parse_range_date(value, name: str) -> date:
    parsed = parse_date(value)
    if parsed is None:
        raise InvalidRange(f"{name} must be YYYY-MM-DD, got {value!r}")
    return parsed


def build_day_windows(
    range_start: str | date,
    range_end: str | date,
    config: WorkdayConfig | None = None,
) -> RangeWindows:
    """
    Build UTC range bounds and one work window per local date.

    Pure function - no I/O.

    Args:
        range_start: First local date (inclusive), YYYY-MM-DD or date
        range_end: Last local date (inclusive), YYYY-MM-DD or date
        config: Workday timezone and hours

    Raises:
        InvalidRange: if either date is invalid or range_end < range_start
    """
    config = config or WorkdayConfig()
    start = _parse_range_date(range_start, "range_start")
    end = _parse_range_date(range_end, "range_end")
    if end < start:
        raise InvalidRange("range_end must be on or after range_start")

    tz = config.zone
    windows = []
    current = start
    while current <= end:
        windows.append(
            DayWindow(
                date_local=current,
                work_start_utc=local_to_utc(current, config.work_start, tz),
                work_end_utc=local_to_utc(current, config.work_end, tz),
                tz_name=config.timezone,
            )
        )
        current += timedelta(days=1)

    return RangeWindows(
        utc_range_start=local_to_utc(start, time(0, 0), tz),
        utc_range_end_exclusive=local_to_utc(end + timedelta(days=1), time(0, 0), tz),
        windows=windows,
    )


def normalize_requested_range(
    range_start: str | None,
    range_end: str | None,
    today: date | None = None,
) -> tuple[date, date]:
    """
    Resolve an optional requested range to concrete dates.

    Missing bounds default to today through a week from today. Spans over
    MAX_RANGE_DAYS are rejected.
    """
    today = today or date.today()
    start = _parse_range_date(range_start, "range_start") if range_start else today
    end = (
        _parse_range_date(range_end, "range_end")
        if range_end
        else today + timedelta(days=DEFAULT_RANGE_DAYS)
    )

    if end < start:
        raise InvalidRange("range_end must be on or after range_start")
    if (end - start).days > MAX_RANGE_DAYS:
        raise InvalidRange(f"range may not exceed {MAX_RANGE_DAYS} days")

    return start, end
