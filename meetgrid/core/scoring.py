"""
MeetGrid: Optimal-Slot Scoring Engine.

Given one availability record per responding member, computes for every
candidate slot who is free, who is not, and a 0-1 score. Pure functions,
no I/O.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import TYPE_CHECKING, Iterable, Sequence

from meetgrid.data.models import TimeSlotKey, validate_iso_date

if TYPE_CHECKING:
    from meetgrid.data.models import AvailabilityRecord

logger = logging.getLogger(__name__)


@dataclass
class OptimalTimeSlot:
    """One scored slot. available + conflicting always covers every respondent."""

    time_slot: TimeSlotKey
    available_user_ids: list[str] = field(default_factory=list)
    conflicting_user_ids: list[str] = field(default_factory=list)
    score: float = 0.0

    @property
    def available_count(self) -> int:
        return len(self.available_user_ids)


@dataclass
class DateAvailability:
    """Per-date rollup used by the calendar heatmap."""

    date: str
    best_hour: int | None
    best_count: int
    active_hours: int


def rolling_dates(start: str | date, days: int) -> list[str]:
    """ISO dates from start (inclusive) for the given number of days."""
    if isinstance(start, str):
        start = date.fromisoformat(validate_iso_date(start))
    return [(start + timedelta(days=offset)).isoformat() for offset in range(days)]


def candidate_slots(dates: Iterable[str], hours: Iterable[int] = range(24)) -> list[TimeSlotKey]:
    hour_list = list(hours)
    return [TimeSlotKey(d, h) for d in dates for h in hour_list]


def select_respondents(
    records: Iterable[AvailabilityRecord],
    member_ids: Sequence[str],
) -> list[AvailabilityRecord]:
    """Records of current members that have at least one entry, in member order.

    Former members' leftover records and members who never answered are
    excluded, so they neither count as available nor as conflicting.
    """
    by_user = {record.user_id: record for record in records}
    return [
        by_user[user_id]
        for user_id in member_ids
        if user_id in by_user and by_user[user_id].has_entries
    ]


def score_time_slots(
    candidates: Iterable[TimeSlotKey],
    records: Sequence[AvailabilityRecord],
) -> list[OptimalTimeSlot]:
    """Score every candidate slot against the respondents' records.

    score = available / respondents (0.0 with no respondents). Sorted by
    score descending, ties by date then hour.
    """
    total = len(records)
    available_sets = [(record.user_id, record.available_slots()) for record in records]

    scored: list[OptimalTimeSlot] = []
    for slot in candidates:
        available: list[str] = []
        conflicting: list[str] = []
        for user_id, slots in available_sets:
            (available if slot in slots else conflicting).append(user_id)
        scored.append(OptimalTimeSlot(
            time_slot=slot,
            available_user_ids=available,
            conflicting_user_ids=conflicting,
            score=len(available) / total if total else 0.0,
        ))

    scored.sort(key=lambda s: (-s.score, s.time_slot.date, s.time_slot.hour))
    logger.debug("Scored %d slot(s) across %d respondent(s)", len(scored), total)
    return scored


def best_meeting_times(
    scored: Iterable[OptimalTimeSlot],
    minimum_participants: int = 1,
    threshold: float = 0.5,
) -> list[OptimalTimeSlot]:
    """Slots at or above threshold with at least minimum_participants free."""
    return [
        slot for slot in scored
        if slot.score >= threshold and slot.available_count >= minimum_participants
    ]


def summarize_by_date(scored: Iterable[OptimalTimeSlot]) -> list[DateAvailability]:
    """Best hour per date, most available dates first."""
    by_date: dict[str, DateAvailability] = {}
    for slot in scored:
        key = slot.time_slot
        entry = by_date.setdefault(key.date, DateAvailability(key.date, None, 0, 0))
        if slot.available_count == 0:
            continue
        entry.active_hours += 1
        if (
            slot.available_count > entry.best_count
            or (slot.available_count == entry.best_count and key.hour < entry.best_hour)
        ):
            entry.best_hour = key.hour
            entry.best_count = slot.available_count

    return sorted(by_date.values(), key=lambda d: (-d.best_count, d.date))
