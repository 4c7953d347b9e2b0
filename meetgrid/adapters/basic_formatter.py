"""Basic date formatter: implements DateFormatterPort with fixed English strings.

The app injects a localized formatter; this one is the default for
shareable summaries produced outside the UI (e.g. logs, server-side shares).
"""

from __future__ import annotations

from datetime import datetime

from meetgrid.data.models import TimeSlotKey


class BasicDateFormatter:
    """English, 24h implementation of DateFormatterPort."""

    def __init__(self, date_format: str = "%a %d %b") -> None:
        self._date_format = date_format

    def _format_date(self, iso_date: str) -> str:
        return datetime.strptime(iso_date, "%Y-%m-%d").strftime(self._date_format)

    def format_date_range(self, start_date: str, end_date: str) -> str:
        if start_date == end_date:
            return self._format_date(start_date)
        return f"{self._format_date(start_date)} - {self._format_date(end_date)}"

    def format_time_slot(self, slot: TimeSlotKey) -> str:
        end_hour = (slot.hour + 1) % 24
        return f"{self._format_date(slot.date)}, {slot.hour:02d}:00-{end_hour:02d}:00"
