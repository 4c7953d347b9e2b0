"""Date formatting port.

Localized date and time strings come from the UI layer; the summary engine
consumes them verbatim and never formats dates itself.
"""

from __future__ import annotations

from typing import Protocol

from meetgrid.data.models import TimeSlotKey


class DateFormatterPort(Protocol):
    def format_date_range(self, start_date: str, end_date: str) -> str: ...

    def format_time_slot(self, slot: TimeSlotKey) -> str: ...
