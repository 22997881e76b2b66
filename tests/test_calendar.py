"""Tests for core calendar logic."""

import random
from datetime import datetime, timezone

import pytest

from dayplan.core.calendar import (
    BusyBlock,
    BusyStats,
    CalendarEvent,
    calculate_busy_stats,
    events_in_range,
    free_blocks,
    merge_busy_blocks,
    merge_intervals,
)
from dayplan.core.fingerprint import build_content_hash, sanitize_body
from dayplan.core.windows import WorkdayConfig, build_day_windows


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def windows():
    # 2026-02-17 work window is 13:00Z-21:30Z
    return build_day_windows("2026-02-17", "2026-02-17").windows


@pytest.fixture
def make_event():
    """Factory for events on 2026-02-17, times in UTC hours."""

    def _make(event_id, start_h, start_m, end_h, end_m, **kwargs):
        return CalendarEvent(
            source_id="outlook",
            external_event_id=event_id,
            start_at=utc(2026, 2, 17, start_h, start_m),
            end_at=utc(2026, 2, 17, end_h, end_m),
            **kwargs,
        )

    return _make


class TestCalendarEvent:
    def test_duration_minutes(self, make_event):
        assert make_event("a", 14, 0, 15, 30).duration_minutes() == 90

    def test_overlaps_is_exclusive_at_edges(self, make_event):
        event = make_event("a", 14, 0, 15, 0)
        assert event.overlaps(utc(2026, 2, 17, 14, 30), utc(2026, 2, 17, 16, 0))
        assert not event.overlaps(utc(2026, 2, 17, 15, 0), utc(2026, 2, 17, 16, 0))

    def test_from_row(self):
        event = CalendarEvent.from_row(
            {
                "source_id": "outlook",
                "external_event_id": "uid-1",
                "start_at": "2026-02-17T14:00:00Z",
                "end_at": "2026-02-17T15:00:00Z",
                "title": "Sync",
                "with_display": ["Ana", "Ben"],
                "content_hash": "abc",
            }
        )
        assert event.external_event_id == "uid-1"
        assert event.attendees == ("Ana", "Ben")
        assert event.duration_minutes() == 60

    def test_from_row_without_times(self):
        assert CalendarEvent.from_row({"external_event_id": "x", "start_at": "nope"}) is None

    def test_from_row_swaps_reversed_times(self):
        event = CalendarEvent.from_row(
            {"external_event_id": "x", "start_at": "2026-02-17T15:00:00Z", "end_at": "2026-02-17T14:00:00Z"}
        )
        assert event.start_at < event.end_at


class TestMergeIntervals:
    def test_touching_blocks_merge(self):
        blocks = [
            BusyBlock(utc(2026, 2, 17, 14, 0), utc(2026, 2, 17, 15, 0)),
            BusyBlock(utc(2026, 2, 17, 15, 0), utc(2026, 2, 17, 16, 0)),
        ]
        assert merge_intervals(blocks) == [BusyBlock(utc(2026, 2, 17, 14, 0), utc(2026, 2, 17, 16, 0))]

    def test_contained_block_absorbed(self):
        blocks = [
            BusyBlock(utc(2026, 2, 17, 14, 0), utc(2026, 2, 17, 17, 0)),
            BusyBlock(utc(2026, 2, 17, 15, 0), utc(2026, 2, 17, 16, 0)),
        ]
        assert merge_intervals(blocks) == [BusyBlock(utc(2026, 2, 17, 14, 0), utc(2026, 2, 17, 17, 0))]

    def test_disjoint_blocks_kept_sorted(self):
        late = BusyBlock(utc(2026, 2, 17, 18, 0), utc(2026, 2, 17, 19, 0))
        early = BusyBlock(utc(2026, 2, 17, 14, 0), utc(2026, 2, 17, 15, 0))
        assert merge_intervals([late, early]) == [early, late]


class TestMergeBusyBlocks:
    def test_clips_to_work_window(self, make_event, windows):
        blocks = merge_busy_blocks([make_event("a", 12, 0, 14, 0)], windows)
        assert blocks == [BusyBlock(utc(2026, 2, 17, 13, 0), utc(2026, 2, 17, 14, 0))]

    def test_event_outside_window_ignored(self, make_event, windows):
        assert merge_busy_blocks([make_event("a", 22, 0, 23, 0)], windows) == []

    def test_all_day_event_occupies_whole_window(self, windows):
        event = CalendarEvent(
            source_id="s",
            external_event_id="holiday",
            start_at=utc(2026, 2, 17, 5, 0),
            end_at=utc(2026, 2, 18, 5, 0),
            is_all_day=True,
        )
        blocks = merge_busy_blocks([event], windows)
        assert blocks == [BusyBlock(windows[0].work_start_utc, windows[0].work_end_utc)]

    def test_blocks_never_overlap_or_touch(self, make_event, windows):
        events = [
            make_event("a", 13, 0, 14, 0),
            make_event("b", 13, 30, 14, 30),
            make_event("c", 14, 30, 15, 0),
            make_event("d", 16, 0, 17, 0),
            make_event("e", 19, 0, 20, 0),
        ]
        blocks = merge_busy_blocks(events, windows)
        for earlier, later in zip(blocks, blocks[1:]):
            assert earlier.end_at < later.start_at
        assert len(blocks) == 3

    def test_order_independent(self, make_event, windows):
        events = [
            make_event("a", 13, 0, 14, 0),
            make_event("b", 13, 30, 14, 30),
            make_event("c", 16, 0, 17, 0),
            make_event("d", 16, 45, 18, 0),
            make_event("e", 20, 0, 22, 0),
        ]
        expected_blocks = merge_busy_blocks(events, windows)
        expected_stats = calculate_busy_stats(events, windows)

        shuffled = list(events)
        random.Random(7).shuffle(shuffled)
        assert merge_busy_blocks(shuffled, windows) == expected_blocks
        assert calculate_busy_stats(shuffled, windows) == expected_stats

    def test_multi_day_event_split_per_window(self):
        windows = build_day_windows("2026-02-17", "2026-02-18").windows
        event = CalendarEvent(
            source_id="s",
            external_event_id="offsite",
            start_at=utc(2026, 2, 17, 20, 0),
            end_at=utc(2026, 2, 18, 14, 0),
        )
        blocks = merge_busy_blocks([event], windows)
        assert blocks == [
            BusyBlock(utc(2026, 2, 17, 20, 0), utc(2026, 2, 17, 21, 30)),
            BusyBlock(utc(2026, 2, 18, 13, 0), utc(2026, 2, 18, 14, 0)),
        ]


class TestCalculateBusyStats:
    def test_empty_events_zero_stats(self, windows):
        assert calculate_busy_stats([], windows) == BusyStats(0, 0, 0)

    def test_stats_for_one_day(self, make_event, windows):
        events = [
            make_event("a", 14, 0, 15, 0),
            make_event("b", 14, 30, 15, 30),
            make_event("c", 18, 0, 18, 30),
        ]
        stats = calculate_busy_stats(events, windows)
        assert stats.busy_minutes == 120
        assert stats.block_count == 2
        # gaps: 13:00-14:00, 15:30-18:00, 18:30-21:30
        assert stats.largest_focus_block_minutes == 180

    def test_free_day_counts_as_full_focus_block(self, make_event):
        windows = build_day_windows("2026-02-17", "2026-02-18").windows
        stats = calculate_busy_stats([make_event("a", 13, 0, 21, 30)], windows)
        assert stats.busy_minutes == 510
        assert stats.largest_focus_block_minutes == 510

    def test_to_dict_keys(self):
        assert BusyStats(30, 1, 480).to_dict() == {
            "busyMinutes": 30,
            "blockCount": 1,
            "largestFocusBlockMinutes": 480,
        }


class TestFreeBlocks:
    def test_gaps_between_meetings(self, make_event, windows):
        gaps = free_blocks([make_event("a", 14, 0, 15, 0)], windows)
        assert gaps == [
            BusyBlock(utc(2026, 2, 17, 13, 0), utc(2026, 2, 17, 14, 0)),
            BusyBlock(utc(2026, 2, 17, 15, 0), utc(2026, 2, 17, 21, 30)),
        ]

    def test_min_duration_filters_short_gaps(self, make_event, windows):
        events = [make_event("a", 13, 15, 15, 0)]
        gaps = free_blocks(events, windows, min_duration=30)
        assert all(g.duration_minutes() >= 30 for g in gaps)
        assert len(gaps) == 1


class TestEventsInRange:
    def test_filters_and_sorts(self, make_event):
        range_windows = build_day_windows("2026-02-17", "2026-02-17")
        inside_late = make_event("late", 18, 0, 19, 0)
        inside_early = make_event("early", 14, 0, 15, 0)
        outside = CalendarEvent(
            source_id="s",
            external_event_id="next-day",
            start_at=utc(2026, 2, 18, 14, 0),
            end_at=utc(2026, 2, 18, 15, 0),
        )
        result = events_in_range([inside_late, outside, inside_early], range_windows)
        assert [e.external_event_id for e in result] == ["early", "late"]


class TestFromRowDerivedFields:
    def test_missing_hash_is_derived_from_content(self):
        row = {"start_at": "2026-02-17T14:00:00Z", "end_at": "2026-02-17T15:00:00Z", "title": "Sync", "uid": "u1"}
        event = CalendarEvent.from_row(row)
        assert event.external_event_id == "u1"
        assert len(event.content_hash) == 64
        assert CalendarEvent.from_row({**row, "title": "Sync v2"}).content_hash != event.content_hash

    def test_missing_uid_hashes_title_and_times(self):
        row = {"start_at": "2026-02-17T14:00:00Z", "end_at": "2026-02-17T15:00:00Z", "title": "Sync"}
        assert CalendarEvent.from_row(row).external_event_id == CalendarEvent.from_row(row).external_event_id
        assert len(CalendarEvent.from_row(row).external_event_id) == 64

    def test_fallback_hash_ignores_links_in_body(self):
        row = {"start_at": "2026-02-17T14:00:00Z", "end_at": "2026-02-17T15:00:00Z", "title": "Sync"}
        plain = CalendarEvent.from_row({**row, "body_preview": "Agenda review"})
        linked = CalendarEvent.from_row({**row, "body_preview": "Agenda review https://zoom.us/j/abc"})
        assert plain.content_hash == linked.content_hash
        assert plain.content_hash == build_content_hash("Sync", (), sanitize_body("Agenda review"))


class TestAllDayEvents:
    @pytest.fixture
    def tokyo(self):
        return WorkdayConfig(timezone="Asia/Tokyo")

    def test_date_only_row_keeps_its_dates(self):
        event = CalendarEvent.from_row({"start_at": "2026-02-17", "end_at": "2026-02-18", "is_all_day": True})
        assert event.start_date.isoformat() == "2026-02-17"
        assert event.local_dates("Asia/Tokyo") == (event.start_date, event.end_date)

    def test_date_only_row_east_of_utc_blocks_one_day(self, tokyo):
        event = CalendarEvent.from_row({"start_at": "2026-02-17", "end_at": "2026-02-18", "is_all_day": True})
        windows = build_day_windows("2026-02-17", "2026-02-18", tokyo).windows

        blocks = merge_busy_blocks([event], windows)
        assert blocks == [BusyBlock(windows[0].work_start_utc, windows[0].work_end_utc)]

        stats = calculate_busy_stats([event], windows)
        assert stats.block_count == 1
        assert stats.busy_minutes == windows[0].duration_minutes()

    def test_date_only_row_west_of_utc_blocks_one_day(self):
        event = CalendarEvent.from_row({"start_at": "2026-02-17", "end_at": "2026-02-18", "is_all_day": True})
        windows = build_day_windows("2026-02-16", "2026-02-18").windows
        blocks = merge_busy_blocks([event], windows)
        assert blocks == [BusyBlock(windows[1].work_start_utc, windows[1].work_end_utc)]

    def test_instants_read_in_window_timezone(self, tokyo):
        # Tokyo midnight to midnight on 2026-02-17
        event = CalendarEvent(
            source_id="s",
            external_event_id="holiday",
            start_at=utc(2026, 2, 16, 15, 0),
            end_at=utc(2026, 2, 17, 15, 0),
            is_all_day=True,
        )
        windows = build_day_windows("2026-02-16", "2026-02-18", tokyo).windows
        blocks = merge_busy_blocks([event], windows)
        assert blocks == [BusyBlock(windows[1].work_start_utc, windows[1].work_end_utc)]

    def test_multi_day_date_only_row(self, tokyo):
        event = CalendarEvent.from_row({"start_at": "2026-02-17", "end_at": "2026-02-19", "is_all_day": True})
        windows = build_day_windows("2026-02-16", "2026-02-19", tokyo).windows
        assert len(merge_busy_blocks([event], windows)) == 2

    def test_end_past_local_midnight_counts_its_day(self):
        event = CalendarEvent(
            source_id="s",
            external_event_id="offsite",
            start_at=utc(2026, 2, 17, 5, 0),
            end_at=utc(2026, 2, 18, 12, 0),
            is_all_day=True,
        )
        first, last = event.local_dates("America/New_York")
        assert (first.isoformat(), last.isoformat()) == ("2026-02-17", "2026-02-19")
