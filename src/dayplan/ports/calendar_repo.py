"""Calendar repository interface."""

from typing import Protocol

from dayplan.core.calendar import CalendarEvent
from dayplan.core.windows import RangeWindows


class CalendarRepository(Protocol):
    """Interface for reading ingested calendar events from any backend."""

    def fetch_events(self, range_windows: RangeWindows) -> list[CalendarEvent]:
        """Fetch events overlapping the UTC range."""
        ...
