"""
MeetGrid: Availability Service.

Loads and saves availability records through the dual-write coordinator
and assembles a group's results (ranked slots, best times, participation
summary and per-date rollup).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, Iterable

from meetgrid.config import settings
from meetgrid.core.scoring import (
    DateAvailability,
    OptimalTimeSlot,
    best_meeting_times,
    candidate_slots,
    rolling_dates,
    score_time_slots,
    select_respondents,
    summarize_by_date,
)
from meetgrid.core.summary import ParticipationSummary, build_participation_summary
from meetgrid.data.documents import TimeRangeDocument
from meetgrid.data.models import AvailabilityRecord

if TYPE_CHECKING:
    from meetgrid.core.sync import DualWriteCoordinator, SyncResult
    from meetgrid.data.models import Group, TimeSlotKey

logger = logging.getLogger(__name__)


def availability_key(group_id: str, user_id: str) -> str:
    return f"availability/{group_id}/{user_id}"


def default_range_key(user_id: str) -> str:
    return f"user_prefs/{user_id}/default_time_range"


@dataclass
class GroupResults:
    optimal_slots: list[OptimalTimeSlot] = field(default_factory=list)
    best_times: list[OptimalTimeSlot] = field(default_factory=list)
    summary: ParticipationSummary | None = None
    by_date: list[DateAvailability] = field(default_factory=list)


class AvailabilityService:
    """Availability records and group results, on top of DualWriteCoordinator."""

    def __init__(self, coordinator: DualWriteCoordinator) -> None:
        self._coordinator = coordinator

    async def load_availability(self, user_id: str, group_id: str) -> AvailabilityRecord:
        """Stored record for (user, group), or a fresh empty one."""
        data = await self._coordinator.read(availability_key(group_id, user_id))
        if not data:
            return AvailabilityRecord(user_id, group_id)
        return AvailabilityRecord.from_plain_data(data)

    async def save_availability(self, record: AvailabilityRecord) -> SyncResult:
        result = await self._coordinator.write(
            availability_key(record.group_id, record.user_id),
            record.to_plain_data(),
        )
        logger.info(
            "Availability saved: %s/%s (%d slot(s))",
            record.group_id, record.user_id, len(record.slots),
        )
        return result

    async def remove_availability(self, user_id: str, group_id: str) -> SyncResult:
        result = await self._coordinator.remove(availability_key(group_id, user_id))
        logger.info("Availability removed: %s/%s", group_id, user_id)
        return result

    async def load_group_availabilities(self, group_id: str) -> list[AvailabilityRecord]:
        """Every record stored under the group. Unreadable documents are skipped."""
        data = await self._coordinator.read(f"availability/{group_id}")
        if not isinstance(data, dict):
            return []

        records: list[AvailabilityRecord] = []
        for user_id, doc in data.items():
            if not isinstance(doc, dict):
                logger.warning("Skipping non-document availability entry %s/%s", group_id, user_id)
                continue
            try:
                records.append(AvailabilityRecord.from_plain_data(doc))
            except ValueError as exc:
                logger.warning("Skipping invalid availability %s/%s: %s", group_id, user_id, exc)
        return records

    async def group_results(
        self,
        group: Group,
        candidates: Iterable[TimeSlotKey] | None = None,
        minimum_participants: int | None = None,
    ) -> GroupResults:
        """Rank the candidate slots for group.

        Without candidates, the rolling CALENDAR_DAYS window starting today
        is scored, all 24 hours per day.
        """
        if candidates is None:
            candidates = candidate_slots(rolling_dates(date.today(), settings.CALENDAR_DAYS))
        if minimum_participants is None:
            minimum_participants = settings.MINIMUM_PARTICIPANTS

        records = await self.load_group_availabilities(group.id)
        respondents = select_respondents(records, group.members)
        scored = score_time_slots(candidates, respondents)

        return GroupResults(
            optimal_slots=scored,
            best_times=best_meeting_times(scored, minimum_participants),
            summary=build_participation_summary(len(group.members), len(respondents), scored),
            by_date=summarize_by_date(scored),
        )

    # --- default time range ---

    async def save_default_time_range(
        self, user_id: str, start_hour: int, end_hour: int,
    ) -> SyncResult:
        """Store the user's preferred daily window [start_hour, end_hour)."""
        if not (0 <= start_hour < end_hour <= 24):
            raise ValueError(
                f"Invalid time range {start_hour}-{end_hour}: need 0 <= start < end <= 24"
            )
        doc = TimeRangeDocument(start_hour=start_hour, end_hour=end_hour)
        return await self._coordinator.write(
            default_range_key(user_id), doc.model_dump(by_alias=True),
        )

    async def get_default_time_range(self, user_id: str) -> tuple[int, int] | None:
        data = await self._coordinator.read(default_range_key(user_id))
        if not data:
            return None
        doc = TimeRangeDocument.model_validate(data)
        return doc.start_hour, doc.end_hour
