"""Tests for meetgrid.core.group_service: create, join and leave groups."""

import random

import pytest

from meetgrid.core.group_service import (
    DuplicateGroupNameError,
    GroupNotFoundError,
    GroupService,
    GroupValidationError,
    generate_group_code,
)


@pytest.fixture
def group_service(coordinator, availability_service):
    return GroupService(coordinator, availability_service, rng=random.Random(7))


# ---------------------------------------------------------------------------
# generate_group_code
# ---------------------------------------------------------------------------

class TestGenerateGroupCode:
    def test_format(self):
        code = generate_group_code(random.Random(1))
        assert len(code) == 6
        assert code.isalnum() and code.upper() == code

    def test_avoids_existing_codes(self):
        first = generate_group_code(random.Random(1))
        second = generate_group_code(random.Random(1), existing_codes=[first])
        assert second != first

    def test_gives_up_after_100_attempts(self):
        class ConstantRandom(random.Random):
            def choice(self, seq):
                return "A"

        with pytest.raises(RuntimeError, match="100 attempts"):
            generate_group_code(ConstantRandom(), existing_codes=["AAAAAA"])


# ---------------------------------------------------------------------------
# create_group
# ---------------------------------------------------------------------------

class TestCreateGroup:
    @pytest.mark.asyncio
    async def test_creates_group_and_admin_record(self, group_service, remote, local_store):
        group = await group_service.create_group("  Book Club  ", "u1")

        assert group.name == "Book Club"
        assert group.members == ["u1"]
        assert group.is_admin("u1")
        assert (await remote.get(f"groups/{group.id}"))["code"] == group.code
        assert await local_store.get(f"groups/{group.id}") is not None
        assert await local_store.get(f"availability/{group.id}/u1") is not None

    @pytest.mark.asyncio
    async def test_empty_name_rejected(self, group_service):
        with pytest.raises(GroupValidationError) as exc_info:
            await group_service.create_group("   ", "u1")
        assert exc_info.value.errors == ["Group name is required"]

    @pytest.mark.asyncio
    async def test_duplicate_name_case_insensitive(self, group_service):
        await group_service.create_group("Book Club", "u1")
        with pytest.raises(DuplicateGroupNameError):
            await group_service.create_group("book club", "u2")

    @pytest.mark.asyncio
    async def test_remote_duplicate_not_masked_by_local_fallback(
        self, coordinator, availability_service, remote, local_store,
    ):
        # Another device created the name remotely; this device's first read
        # of "groups" happened while the mirror had nothing.
        await remote.set("groups/other", {
            "id": "other", "name": "Book Club", "code": "ZZZ999", "members": ["u9"],
            "adminId": "u9", "createdAt": "2026-01-01T00:00:00+00:00",
        })

        class StaleReadCoordinator:
            def __init__(self, inner):
                self._inner = inner

            async def read(self, key):
                return None if key == "groups" else await self._inner.read(key)

            def __getattr__(self, name):
                return getattr(self._inner, name)

        service = GroupService(StaleReadCoordinator(coordinator), availability_service)

        with pytest.raises(DuplicateGroupNameError, match="already exists in database"):
            await service.create_group("Book Club", "u1")

        assert set(await local_store.get("groups") or {}) <= {"other"}

    @pytest.mark.asyncio
    async def test_offline_creation_falls_back_to_local(self, group_service, remote, local_store, coordinator):
        remote.online = False

        group = await group_service.create_group("Offline Club", "u1")

        assert await local_store.get(f"groups/{group.id}") is not None
        assert f"groups/{group.id}" in coordinator.pending_keys

    @pytest.mark.asyncio
    async def test_offline_duplicate_checked_against_local(self, group_service, remote):
        remote.online = False
        await group_service.create_group("Book Club", "u1")
        with pytest.raises(DuplicateGroupNameError):
            await group_service.create_group("BOOK CLUB", "u2")


# ---------------------------------------------------------------------------
# join_group
# ---------------------------------------------------------------------------

class TestJoinGroup:
    @pytest.mark.asyncio
    async def test_join_by_code(self, group_service, local_store):
        group = await group_service.create_group("Book Club", "u1")

        joined = await group_service.join_group(f" {group.code.lower()} ", "u2")

        assert joined.members == ["u1", "u2"]
        assert (await group_service.get_group(group.id)).members == ["u1", "u2"]
        assert await local_store.get(f"availability/{group.id}/u2") is not None

    @pytest.mark.asyncio
    async def test_join_is_idempotent(self, group_service):
        group = await group_service.create_group("Book Club", "u1")
        await group_service.join_group(group.code, "u2")
        joined = await group_service.join_group(group.code, "u2")
        assert joined.members == ["u1", "u2"]

    @pytest.mark.asyncio
    async def test_join_keeps_existing_availability(self, group_service, availability_service):
        group = await group_service.create_group("Book Club", "u1")
        await group_service.join_group(group.code, "u2")
        record = await availability_service.load_availability("u2", group.id)
        record.set_slot("2026-02-14", 9, True)
        await availability_service.save_availability(record)

        await group_service.join_group(group.code, "u2")

        reloaded = await availability_service.load_availability("u2", group.id)
        assert reloaded.get_slot("2026-02-14", 9) is True

    @pytest.mark.asyncio
    async def test_malformed_code(self, group_service):
        with pytest.raises(GroupValidationError):
            await group_service.join_group("AB-1", "u2")

    @pytest.mark.asyncio
    async def test_unknown_code(self, group_service):
        await group_service.create_group("Book Club", "u1")
        with pytest.raises(GroupNotFoundError):
            await group_service.join_group("QQQQQQ", "u2")


# ---------------------------------------------------------------------------
# leave_group / queries
# ---------------------------------------------------------------------------

class TestLeaveGroup:
    @pytest.mark.asyncio
    async def test_leave_removes_member_and_record(self, group_service, local_store, remote):
        group = await group_service.create_group("Book Club", "u1")
        await group_service.join_group(group.code, "u2")

        updated = await group_service.leave_group(group.id, "u2")

        assert updated.members == ["u1"]
        assert await local_store.get(f"availability/{group.id}/u2") is None
        assert await remote.get(f"availability/{group.id}/u2") is None

    @pytest.mark.asyncio
    async def test_admin_leaving_passes_admin_on(self, group_service):
        group = await group_service.create_group("Book Club", "u1")
        await group_service.join_group(group.code, "u2")
        await group_service.join_group(group.code, "u3")

        updated = await group_service.leave_group(group.id, "u1")

        assert updated.admin_id == "u2"
        assert (await group_service.get_group(group.id)).admin_id == "u2"

    @pytest.mark.asyncio
    async def test_leave_unknown_group(self, group_service):
        with pytest.raises(GroupNotFoundError):
            await group_service.leave_group("missing", "u1")


class TestGroupQueries:
    @pytest.mark.asyncio
    async def test_get_user_groups(self, group_service):
        club = await group_service.create_group("Book Club", "u1")
        await group_service.create_group("Chess", "u2")
        await group_service.join_group(club.code, "u3")

        assert [g.name for g in await group_service.get_user_groups("u3")] == ["Book Club"]
        assert [g.name for g in await group_service.get_user_groups("u2")] == ["Chess"]
        assert await group_service.get_user_groups("nobody") == []

    @pytest.mark.asyncio
    async def test_offline_group_visible_after_reconnect(self, group_service, remote):
        remote.online = False
        club = await group_service.create_group("Offline Club", "u1")
        remote.online = True

        assert [g.name for g in await group_service.get_user_groups("u1")] == ["Offline Club"]
        joined = await group_service.join_group(club.code, "u2")
        assert joined.members == ["u1", "u2"]
        with pytest.raises(DuplicateGroupNameError):
            await group_service.create_group("offline club", "u3")

    @pytest.mark.asyncio
    async def test_get_user_groups_offline(self, group_service, remote):
        await group_service.create_group("Book Club", "u1")
        remote.online = False
        assert [g.name for g in await group_service.get_user_groups("u1")] == ["Book Club"]
