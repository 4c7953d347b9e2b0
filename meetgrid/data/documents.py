"""
MeetGrid: stored-document contract.

Shared JSON shape for everything written to the remote and local stores.
Field names are camelCase so documents stay compatible with the mobile app
that reads the same Firebase tree.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _Document(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class SlotDocument(_Document):
    """One availability entry.

    JSON example:
    {"date": "2026-02-14", "hour": 9, "available": true}
    """
    date: str      # ISO format YYYY-MM-DD
    hour: int      # 0-23, out-of-range values are dropped on load
    available: bool = False


class AvailabilityDocument(_Document):
    """A user's availability for one group.

    JSON example:
    {
        "userId": "u1",
        "groupId": "g1",
        "slots": [{"date": "2026-02-14", "hour": 9, "available": true}],
        "updatedAt": "2026-02-10T08:00:00+00:00"
    }
    """
    user_id: str = Field(alias="userId")
    group_id: str = Field(alias="groupId")
    # Firebase drops empty arrays, so a missing list means "no entries"
    slots: list[SlotDocument] = Field(default_factory=list)
    updated_at: str = Field(default="", alias="updatedAt")


class GroupDocument(_Document):
    """A scheduling group.

    nameSearchable is the lower-cased name used for uniqueness checks.
    """
    id: str
    name: str
    code: str
    members: list[str] = Field(default_factory=list)
    admin_id: str = Field(default="", alias="adminId")
    created_at: str = Field(default="", alias="createdAt")
    name_searchable: str = Field(default="", alias="nameSearchable")


class ChatMessageDocument(_Document):
    """A message in a group's per-date chat."""
    id: str
    group_id: str = Field(alias="groupId")
    date: str
    user_id: str = Field(alias="userId")
    user_name: str = Field(default="", alias="userName")
    text: str
    timestamp: str


class TimeRangeDocument(_Document):
    """A user's default daily availability window, [startHour, endHour)."""
    start_hour: int = Field(alias="startHour")
    end_hour: int = Field(alias="endHour")
