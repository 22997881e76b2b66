"""Pure calendar domain logic - no I/O dependencies."""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from .fingerprint import build_content_hash, build_external_event_id, sanitize_body
from .timestamps import parse_date, parse_timestamp, to_iso
from .windows import DayWindow, RangeWindows, normalize_timezone_name


@dataclass(frozen=True)
class CalendarEvent:
    """A calendar event row as ingested by the collaborator."""

    source_id: str
    external_event_id: str
    start_at: datetime
    end_at: datetime
    title: str = ""
    attendees: tuple[str, ...] = ()
    body_preview: str | None = None
    is_all_day: bool = False
    content_hash: str = ""
    start_date: date | None = None
    end_date: date | None = None

    def duration_minutes(self) -> int:
        return int((self.end_at - self.start_at).total_seconds() / 60)

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """Check if this event intersects [start, end)."""
        return self.end_at > start and self.start_at < end

    def local_dates(self, tz_name: str) -> tuple[date, date]:
        """
        Local calendar days [first, last) an all-day event covers.

        Date-only rows are taken as written. Instants are read in tz_name,
        with an end past local midnight counting its own day.
        """
        if self.start_date is not None:
            last = self.end_date or self.start_date + timedelta(days=1)
            return self.start_date, max(last, self.start_date + timedelta(days=1))

        tz = ZoneInfo(normalize_timezone_name(tz_name))
        first = self.start_at.astimezone(tz).date()
        end_local = self.end_at.astimezone(tz)
        last = end_local.date()
        if end_local.time() != time(0, 0):
            last += timedelta(days=1)
        return first, max(last, first + timedelta(days=1))

    @classmethod
    def from_row(cls, row: dict) -> "CalendarEvent | None":
        """
        Create CalendarEvent from a stored row.

        Returns None when the row has no usable start/end.
        """
        start = parse_timestamp(row.get("start_at"))
        end = parse_timestamp(row.get("end_at"))
        if start is None or end is None:
            return None
        if end < start:
            start, end = end, start

        attendees = row.get("with_display") or row.get("attendees") or []
        if not isinstance(attendees, (list, tuple)):
            attendees = []

        title = row.get("title") or ""
        attendees = tuple(a for a in attendees if isinstance(a, str))
        body_preview = row.get("body_scrubbed_preview") or row.get("body_preview")

        # Rows from older ingests may lack the derived identity and hash
        external_event_id = row.get("external_event_id") or build_external_event_id(
            row.get("uid"), row.get("recurrence_id"), title, to_iso(start), to_iso(end)
        )
        content_hash = row.get("content_hash") or build_content_hash(
            title, attendees, sanitize_body(body_preview or "")
        )

        return cls(
            source_id=str(row.get("source_id") or row.get("source") or ""),
            external_event_id=str(external_event_id),
            start_at=start,
            end_at=end,
            title=title,
            attendees=attendees,
            body_preview=body_preview,
            is_all_day=bool(row.get("is_all_day", False)),
            content_hash=content_hash,
            start_date=parse_date(row.get("start_at")),
            end_date=parse_date(row.get("end_at")),
        )


@dataclass(frozen=True)
class BusyBlock:
    """A merged interval of calendar occupancy within a work window."""

    start_at: datetime
    end_at: datetime

    def duration_minutes(self) -> int:
        return int((self.end_at - self.start_at).total_seconds() / 60)

    def format(self, tz=None) -> str:
        start = self.start_at.astimezone(tz) if tz else self.start_at
        end = self.end_at.astimezone(tz) if tz else self.end_at
        return f"{start.strftime('%H:%M')}-{end.strftime('%H:%M')} ({self.duration_minutes()} min)"

    def to_dict(self) -> dict:
        return {"start_at": to_iso(self.start_at), "end_at": to_iso(self.end_at)}


@dataclass
class BusyStats:
    """Aggregate occupancy over a set of day windows."""

    busy_minutes: int = 0
    block_count: int = 0
    largest_focus_block_minutes: int = 0

    def to_dict(self) -> dict:
        return {
            "busyMinutes": self.busy_minutes,
            "blockCount": self.block_count,
            "largestFocusBlockMinutes": self.largest_focus_block_minutes,
        }


def _clip_to_window(events: list[CalendarEvent], window: DayWindow) -> list[BusyBlock]:
    intervals = []
    for event in events:
        # All-day events occupy the whole window of each local day they cover
        if event.is_all_day:
            first, last = event.local_dates(window.tz_name)
            if first <= window.date_local < last:
                intervals.append(BusyBlock(window.work_start_utc, window.work_end_utc))
            continue

        if not event.overlaps(window.work_start_utc, window.work_end_utc):
            continue

        start = max(event.start_at, window.work_start_utc)
        end = min(event.end_at, window.work_end_utc)
        if end <= start:
            continue
        intervals.append(BusyBlock(start, end))
    return intervals


def merge_intervals(intervals: list[BusyBlock]) -> list[BusyBlock]:
    """
    Merge overlapping or touching intervals.

    Sorted by (start, end) first so the result does not depend on input order.
    """
    merged: list[BusyBlock] = []
    for block in sorted(intervals, key=lambda b: (b.start_at, b.end_at)):
        if merged and block.start_at <= merged[-1].end_at:
            last = merged[-1]
            merged[-1] = BusyBlock(last.start_at, max(last.end_at, block.end_at))
        else:
            merged.append(block)
    return merged


def busy_blocks_by_day(
    events: list[CalendarEvent],
    windows: list[DayWindow],
) -> list[tuple[DayWindow, list[BusyBlock]]]:
    """Merged busy blocks for each window, in window order."""
    return [(window, merge_intervals(_clip_to_window(events, window))) for window in windows]


def merge_busy_blocks(events: list[CalendarEvent], windows: list[DayWindow]) -> list[BusyBlock]:
    """
    Merge events into disjoint busy blocks clipped to the work windows.

    Pure function - no I/O.
    """
    blocks = []
    for _, day_blocks in busy_blocks_by_day(events, windows):
        blocks.extend(day_blocks)
    return blocks


def calculate_busy_stats(events: list[CalendarEvent], windows: list[DayWindow]) -> BusyStats:
    """
    Busy minutes, block count and largest free gap across all windows.

    Pure function - no I/O. An empty event list yields zero stats.
    """
    stats = BusyStats()
    if not events:
        return stats

    for window, blocks in busy_blocks_by_day(events, windows):
        stats.block_count += len(blocks)
        stats.busy_minutes += sum(b.duration_minutes() for b in blocks)

        for gap in _free_gaps(window, blocks):
            stats.largest_focus_block_minutes = max(
                stats.largest_focus_block_minutes, gap.duration_minutes()
            )

    return stats


def _free_gaps(window: DayWindow, blocks: list[BusyBlock]) -> list[BusyBlock]:
    gaps = []
    cursor = window.work_start_utc
    for block in blocks:
        if block.start_at > cursor:
            gaps.append(BusyBlock(cursor, block.start_at))
        cursor = max(cursor, block.end_at)

    if cursor < window.work_end_utc:
        gaps.append(BusyBlock(cursor, window.work_end_utc))
    return gaps


def free_blocks(
    events: list[CalendarEvent],
    windows: list[DayWindow],
    min_duration: int = 0,
) -> list[BusyBlock]:
    """
    Free intervals between busy blocks during work hours.

    Pure function - no I/O.

    Args:
        events: Calendar events
        windows: Work windows to search
        min_duration: Minimum gap length in minutes

    Returns:
        Free intervals, in window order
    """
    result = []
    for window, blocks in busy_blocks_by_day(events, windows):
        result.extend(g for g in _free_gaps(window, blocks) if g.duration_minutes() >= min_duration)
    return result


def events_in_range(events: list[CalendarEvent], range_windows: RangeWindows) -> list[CalendarEvent]:
    """Events overlapping the UTC range, sorted by start."""
    return sorted(
        (
            e
            for e in events
            if e.end_at >= range_windows.utc_range_start
            and e.start_at < range_windows.utc_range_end_exclusive
        ),
        key=lambda e: (e.start_at, e.end_at, e.external_event_id),
    )
