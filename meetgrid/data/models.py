"""
MeetGrid: Data Models.

The availability record is the unit of ownership: exactly one per
(user, group) pair, mutated only by its owner and read by everyone else
through the scoring engine.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, NamedTuple

from pydantic import ValidationError

from meetgrid.data.documents import (
    AvailabilityDocument,
    ChatMessageDocument,
    GroupDocument,
)

logger = logging.getLogger(__name__)

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

GROUP_CODE_LENGTH = 6
GROUP_NAME_MAX_LENGTH = 50


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def validate_iso_date(value: str) -> str:
    """Return value unchanged if it is a real YYYY-MM-DD date, else raise ValueError."""
    if not isinstance(value, str) or not _DATE_RE.match(value):
        raise ValueError(f"Date must be in YYYY-MM-DD format: {value!r}")
    datetime.strptime(value, "%Y-%m-%d")  # rejects 2026-02-30
    return value


def _is_valid_date(value: str) -> bool:
    try:
        validate_iso_date(value)
    except ValueError:
        return False
    return True


def validate_group_name(name: str | None) -> list[str]:
    name = (name or "").strip()
    if not name:
        return ["Group name is required"]
    if len(name) > GROUP_NAME_MAX_LENGTH:
        return [f"Group name must be {GROUP_NAME_MAX_LENGTH} characters or less"]
    return []


def is_valid_hour(hour: int) -> bool:
    return isinstance(hour, int) and not isinstance(hour, bool) and 0 <= hour <= 23


class TimeSlotKey(NamedTuple):
    """Join key between availability and scoring: one hour on one date."""

    date: str
    hour: int

    @property
    def slot_id(self) -> str:
        return f"{self.date}-{self.hour}"

    @classmethod
    def from_slot_id(cls, slot_id: str) -> TimeSlotKey:
        """Parse "YYYY-MM-DD-H" back into a key. Raises ValueError on garbage."""
        date_part, sep, hour_part = slot_id.rpartition("-")
        if not sep or not hour_part.isdigit():
            raise ValueError(f"Malformed slot id: {slot_id!r}")
        hour = int(hour_part)
        if not is_valid_hour(hour):
            raise ValueError(f"Hour out of range in slot id: {slot_id!r}")
        return cls(validate_iso_date(date_part), hour)


@dataclass(frozen=True)
class TimeSlot:
    """A single availability entry as exposed to callers."""

    date: str
    hour: int
    available: bool


class AvailabilityRecord:
    """Sparse (date, hour) -> available map for one user in one group.

    Entries live in a dict keyed by TimeSlotKey, so there is never more
    than one entry per slot. Absence means "not available".
    """

    def __init__(
        self,
        user_id: str,
        group_id: str,
        updated_at: str | None = None,
    ) -> None:
        self.user_id = user_id
        self.group_id = group_id
        self.updated_at = updated_at or utc_now_iso()
        self._entries: dict[TimeSlotKey, bool] = {}

    # --- mutation ---

    def set_slot(self, date: str, hour: int, available: bool) -> None:
        """Upsert one entry. Rejects hours outside 0-23 and malformed dates."""
        if not is_valid_hour(hour):
            raise ValueError(f"Hour must be an integer 0-23, got {hour!r}")
        validate_iso_date(date)
        self._entries[TimeSlotKey(date, hour)] = bool(available)
        self._touch()

    def clear_day(self, date: str) -> None:
        """Remove every entry on date."""
        self._entries = {
            key: value for key, value in self._entries.items() if key.date != date
        }
        self._touch()

    def apply_time_range(self, date: str, start_hour: int, end_hour: int) -> None:
        """Replace date's entries with [start_hour, end_hour) marked available.

        Clearing first makes re-applying the same range a no-op.
        """
        if not (0 <= start_hour < end_hour <= 24):
            raise ValueError(
                f"Invalid time range {start_hour}-{end_hour}: need 0 <= start < end <= 24"
            )
        validate_iso_date(date)
        self.clear_day(date)
        for hour in range(start_hour, end_hour):
            self._entries[TimeSlotKey(date, hour)] = True
        self._touch()

    def _touch(self) -> None:
        self.updated_at = utc_now_iso()

    # --- queries ---

    def get_slot(self, date: str, hour: int) -> bool:
        return self._entries.get(TimeSlotKey(date, hour), False)

    @property
    def slots(self) -> list[TimeSlot]:
        """All entries, sorted by date then hour."""
        return [
            TimeSlot(key.date, key.hour, value)
            for key, value in sorted(self._entries.items())
        ]

    @property
    def has_entries(self) -> bool:
        return bool(self._entries)

    def available_slots(self) -> set[TimeSlotKey]:
        return {key for key, value in self._entries.items() if value}

    def clone(self) -> AvailabilityRecord:
        """Independent copy; later mutations on either side are not shared."""
        copy = AvailabilityRecord(self.user_id, self.group_id, self.updated_at)
        copy._entries = dict(self._entries)
        return copy

    # --- serialization ---

    def to_plain_data(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "groupId": self.group_id,
            "slots": [
                {"date": s.date, "hour": s.hour, "available": s.available}
                for s in self.slots
            ],
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_plain_data(cls, data: Mapping[str, Any]) -> AvailabilityRecord:
        """Build a record from a stored document.

        This is the only way data enters the model from storage. Entries
        with an out-of-range hour or an impossible date are dropped;
        duplicate (date, hour) entries resolve to the last one.

        Raises:
            ValueError: if the document does not match the contract.
        """
        try:
            doc = AvailabilityDocument.model_validate(data)
        except ValidationError as exc:
            raise ValueError(f"Invalid availability document: {exc}") from exc

        record = cls(doc.user_id, doc.group_id, doc.updated_at or None)
        dropped = 0
        for slot in doc.slots:
            if not is_valid_hour(slot.hour) or not _is_valid_date(slot.date):
                dropped += 1
                continue
            record._entries[TimeSlotKey(slot.date, slot.hour)] = slot.available
        if dropped:
            logger.warning(
                "Dropped %d malformed slot(s) from availability %s/%s",
                dropped, doc.group_id, doc.user_id,
            )
        return record

    # --- dunder ---

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AvailabilityRecord):
            return NotImplemented
        return (
            self.user_id == other.user_id
            and self.group_id == other.group_id
            and self._entries == other._entries
            and self.updated_at == other.updated_at
        )

    def __repr__(self) -> str:
        return (
            f"AvailabilityRecord(user_id={self.user_id!r}, group_id={self.group_id!r}, "
            f"entries={len(self._entries)}, updated_at={self.updated_at!r})"
        )


@dataclass
class Group:
    """A scheduling group. Members are identified by user id."""

    id: str
    name: str
    code: str                       # 6 chars, A-Z0-9, upper-case
    admin_id: str
    members: list[str] = field(default_factory=list)
    created_at: str = field(default_factory=utc_now_iso)

    def validate(self) -> list[str]:
        """Return a list of validation errors (empty when valid)."""
        errors = validate_group_name(self.name)
        if not self.code or len(self.code) != GROUP_CODE_LENGTH:
            errors.append(f"Group code must be exactly {GROUP_CODE_LENGTH} characters")
        if not (self.admin_id or "").strip():
            errors.append("Group must have an admin")
        return errors

    def add_member(self, user_id: str) -> None:
        if user_id not in self.members:
            self.members.append(user_id)

    def remove_member(self, user_id: str) -> None:
        self.members = [m for m in self.members if m != user_id]

    def transfer_admin(self, new_admin_id: str) -> bool:
        """Make new_admin_id the admin. Returns False if they are not a member."""
        if new_admin_id not in self.members:
            return False
        self.admin_id = new_admin_id
        return True

    def is_admin(self, user_id: str) -> bool:
        return self.admin_id == user_id

    def to_document(self) -> dict[str, Any]:
        return GroupDocument(
            id=self.id,
            name=self.name,
            code=self.code,
            members=list(self.members),
            admin_id=self.admin_id,
            created_at=self.created_at,
            name_searchable=self.name.strip().lower(),
        ).model_dump(by_alias=True)

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> Group:
        doc = GroupDocument.model_validate(data)
        return cls(
            id=doc.id,
            name=doc.name,
            code=doc.code.upper(),
            admin_id=doc.admin_id,
            members=list(doc.members),
            created_at=doc.created_at or utc_now_iso(),
        )


@dataclass
class ChatMessage:
    """One message in a group's per-date chat."""

    id: str
    group_id: str
    date: str          # ISO date YYYY-MM-DD the conversation belongs to
    user_id: str
    user_name: str
    text: str
    timestamp: str     # ISO datetime, used for ordering

    def to_document(self) -> dict[str, Any]:
        return ChatMessageDocument(
            id=self.id,
            group_id=self.group_id,
            date=self.date,
            user_id=self.user_id,
            user_name=self.user_name,
            text=self.text,
            timestamp=self.timestamp,
        ).model_dump(by_alias=True)

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> ChatMessage:
        doc = ChatMessageDocument.model_validate(data)
        return cls(
            id=doc.id,
            group_id=doc.group_id,
            date=doc.date,
            user_id=doc.user_id,
            user_name=doc.user_name,
            text=doc.text,
            timestamp=doc.timestamp,
        )
