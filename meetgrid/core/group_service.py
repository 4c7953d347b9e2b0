"""
MeetGrid: Group Service.

Create, join and leave scheduling groups. Groups are dual-written like
every other document; the one exception to the local fallback is a
duplicate group name, which is always surfaced to the caller.
"""

from __future__ import annotations

import logging
import random
import re
import string
import uuid
from typing import TYPE_CHECKING, Any, Iterable

from meetgrid.data.models import (
    GROUP_CODE_LENGTH,
    AvailabilityRecord,
    Group,
    validate_group_name,
)

if TYPE_CHECKING:
    from meetgrid.core.availability_service import AvailabilityService
    from meetgrid.core.sync import DualWriteCoordinator
    from meetgrid.ports.storage_port import KeyValueStore

logger = logging.getLogger(__name__)

GROUP_CODE_ALPHABET = string.ascii_uppercase + string.digits
_CODE_RE = re.compile(rf"^[A-Z0-9]{{{GROUP_CODE_LENGTH}}}$")
_MAX_CODE_ATTEMPTS = 100


class GroupValidationError(ValueError):
    """Group input failed validation. `errors` lists every problem found."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__("; ".join(errors))


class DuplicateGroupNameError(Exception):
    """A group with the same (case-insensitive) name already exists."""


class GroupNotFoundError(LookupError):
    """No group matches the given code or id."""


def group_key(group_id: str) -> str:
    return f"groups/{group_id}"


def generate_group_code(
    rng: random.Random | None = None,
    existing_codes: Iterable[str] = (),
) -> str:
    """Random 6-char A-Z0-9 code not in existing_codes.

    Raises:
        RuntimeError: if no free code is found in 100 attempts.
    """
    rng = rng or random.SystemRandom()
    taken = {code.upper() for code in existing_codes}
    for _ in range(_MAX_CODE_ATTEMPTS):
        code = "".join(rng.choice(GROUP_CODE_ALPHABET) for _ in range(GROUP_CODE_LENGTH))
        if code not in taken:
            return code
    raise RuntimeError(f"Could not generate a unique group code in {_MAX_CODE_ATTEMPTS} attempts")


def _parse_groups(data: Any) -> list[Group]:
    if not isinstance(data, dict):
        return []
    groups: list[Group] = []
    for group_id, doc in data.items():
        try:
            groups.append(Group.from_document(doc))
        except (TypeError, ValueError) as exc:
            logger.warning("Skipping invalid group document %s: %s", group_id, exc)
    return groups


def _name_taken(groups: Iterable[Group], name: str) -> bool:
    wanted = name.strip().lower()
    return any(g.name.strip().lower() == wanted for g in groups)


class GroupService:
    """Group lifecycle on top of DualWriteCoordinator."""

    def __init__(
        self,
        coordinator: DualWriteCoordinator,
        availability_service: AvailabilityService,
        rng: random.Random | None = None,
    ) -> None:
        self._coordinator = coordinator
        self._availability = availability_service
        self._rng = rng

    async def _all_groups(self) -> list[Group]:
        return _parse_groups(await self._coordinator.read("groups"))

    async def create_group(self, name: str, admin_id: str) -> Group:
        """Create a group with admin_id as its admin and only member.

        Raises:
            GroupValidationError: the name is empty or too long.
            DuplicateGroupNameError: the name is taken, locally or remotely.
        """
        name = (name or "").strip()
        name_errors = validate_group_name(name)
        if name_errors:
            raise GroupValidationError(name_errors)

        existing = await self._all_groups()
        if _name_taken(existing, name):
            raise DuplicateGroupNameError(f'Group name "{name}" already exists')

        group = Group(
            id=uuid.uuid4().hex,
            name=name,
            code=generate_group_code(self._rng, (g.code for g in existing)),
            admin_id=admin_id,
            members=[admin_id] if admin_id else [],
        )
        errors = group.validate()
        if errors:
            raise GroupValidationError(errors)

        async def _check_remote_name(remote: KeyValueStore) -> None:
            if _name_taken(_parse_groups(await remote.get("groups")), name):
                raise DuplicateGroupNameError(
                    f'Group name "{name}" already exists in database'
                )

        await self._coordinator.write(
            group_key(group.id),
            group.to_document(),
            rethrow=(DuplicateGroupNameError,),
            guard=_check_remote_name,
        )
        await self._availability.save_availability(AvailabilityRecord(admin_id, group.id))

        logger.info("Group created: %s (%s) by %s", group.name, group.code, admin_id)
        return group

    async def join_group(self, code: str, user_id: str) -> Group:
        """Add user_id to the group with this invite code.

        Joining a group you're already in is a no-op that returns the group.
        """
        clean_code = (code or "").strip().upper()
        if not _CODE_RE.match(clean_code):
            raise GroupValidationError(
                [f"Group code must be exactly {GROUP_CODE_LENGTH} letters or digits"]
            )

        group = next((g for g in await self._all_groups() if g.code == clean_code), None)
        if group is None:
            raise GroupNotFoundError(f"Invalid group code: {clean_code}")

        if user_id in group.members:
            logger.info("User %s already in group %s", user_id, group.id)
        else:
            group.add_member(user_id)
            await self._coordinator.write(group_key(group.id), group.to_document())
            logger.info("User %s joined group %s", user_id, group.id)

        record = await self._availability.load_availability(user_id, group.id)
        if not record.has_entries:
            await self._availability.save_availability(record)
        return group

    async def leave_group(self, group_id: str, user_id: str) -> Group:
        """Remove user_id from the group and delete their availability.

        If the admin leaves, the first remaining member becomes admin.
        """
        group = await self.get_group(group_id)
        group.remove_member(user_id)
        if group.is_admin(user_id) and group.members:
            group.transfer_admin(group.members[0])
            logger.info("Admin of group %s passed to %s", group_id, group.admin_id)

        await self._coordinator.write(group_key(group_id), group.to_document())
        await self._availability.remove_availability(user_id, group_id)

        logger.info("User %s left group %s", user_id, group_id)
        return group

    async def get_group(self, group_id: str) -> Group:
        data = await self._coordinator.read(group_key(group_id))
        if not data:
            raise GroupNotFoundError(f"Group not found: {group_id}")
        return Group.from_document(data)

    async def get_user_groups(self, user_id: str) -> list[Group]:
        """Groups where user_id is a member or the admin, oldest first."""
        groups = [
            g for g in await self._all_groups()
            if user_id in g.members or g.is_admin(user_id)
        ]
        return sorted(groups, key=lambda g: (g.created_at, g.name))
