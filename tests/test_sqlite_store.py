"""Tests for SqliteStore: leaf documents, subtree reads and subtree removal."""

import sqlite3
from unittest.mock import patch

import pytest

from meetgrid.adapters.sqlite_store import SqliteStore
from meetgrid.ports.storage_port import StorageError


class TestSqliteStoreBasics:
    @pytest.mark.asyncio
    async def test_missing_key_returns_none(self, local_store):
        assert await local_store.get("groups/nope") is None

    @pytest.mark.asyncio
    async def test_set_then_get(self, local_store):
        await local_store.set("user_prefs/u1/default_time_range", {"startHour": 9, "endHour": 17})
        assert await local_store.get("user_prefs/u1/default_time_range") == {
            "startHour": 9, "endHour": 17,
        }

    @pytest.mark.asyncio
    async def test_scalar_and_list_values(self, local_store):
        await local_store.set("a/flag", True)
        await local_store.set("a/items", [1, 2, 3])
        assert await local_store.get("a/flag") is True
        assert await local_store.get("a/items") == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_overwrite_replaces_document(self, local_store):
        await local_store.set("groups/g1", {"name": "Old", "code": "AAAAAA"})
        await local_store.set("groups/g1", {"name": "New"})
        assert await local_store.get("groups/g1") == {"name": "New"}

    @pytest.mark.asyncio
    async def test_slashes_are_trimmed(self, local_store):
        await local_store.set("/groups/g1/", {"name": "X"})
        assert await local_store.get("groups/g1") == {"name": "X"}

    @pytest.mark.asyncio
    async def test_empty_key_rejected(self, local_store):
        with pytest.raises(ValueError):
            await local_store.get("/")

    @pytest.mark.asyncio
    async def test_persists_across_instances(self, tmp_db_path):
        await SqliteStore(db_path=tmp_db_path).set("groups/g1", {"name": "X"})
        assert await SqliteStore(db_path=tmp_db_path).get("groups/g1") == {"name": "X"}

    def test_creates_parent_directory(self, tmp_path):
        SqliteStore(db_path=str(tmp_path / "nested" / "dir" / "m.db"))
        assert (tmp_path / "nested" / "dir" / "m.db").exists()


class TestSqliteStoreSubtrees:
    @pytest.mark.asyncio
    async def test_get_parent_assembles_children(self, local_store):
        await local_store.set("availability/g1/u1", {"userId": "u1"})
        await local_store.set("availability/g1/u2", {"userId": "u2"})
        await local_store.set("availability/g2/u1", {"userId": "u1"})

        assert await local_store.get("availability/g1") == {
            "u1": {"userId": "u1"},
            "u2": {"userId": "u2"},
        }

    @pytest.mark.asyncio
    async def test_prefix_does_not_match_sibling(self, local_store):
        await local_store.set("availability/g1/u1", {"userId": "u1"})
        await local_store.set("availability/g10/u1", {"userId": "u1"})
        assert set(await local_store.get("availability/g1")) == {"u1"}

    @pytest.mark.asyncio
    async def test_setting_a_tree_allows_child_reads(self, local_store):
        await local_store.set("groups", {"g1": {"name": "A"}, "g2": {"name": "B"}})
        assert await local_store.get("groups/g2") == {"name": "B"}

        await local_store.set("groups/g3", {"name": "C"})
        assert set(await local_store.get("groups")) == {"g1", "g2", "g3"}

    @pytest.mark.asyncio
    async def test_setting_a_tree_replaces_old_children(self, local_store):
        await local_store.set("groups/g1", {"name": "A"})
        await local_store.set("groups", {"g2": {"name": "B"}})
        assert await local_store.get("groups/g1") is None

    @pytest.mark.asyncio
    async def test_setting_none_deletes(self, local_store):
        await local_store.set("groups/g1", {"name": "A"})
        await local_store.set("groups/g1", None)
        assert await local_store.get("groups/g1") is None

    @pytest.mark.asyncio
    async def test_remove_subtree(self, local_store):
        await local_store.set("day_messages/g1/2026-02-14/m1", {"text": "hi"})
        await local_store.set("day_messages/g1/2026-02-15/m2", {"text": "yo"})
        await local_store.set("day_messages/g2/2026-02-14/m3", {"text": "hey"})

        await local_store.remove("day_messages/g1")

        assert await local_store.get("day_messages/g1") is None
        assert await local_store.get("day_messages/g2/2026-02-14/m3") == {"text": "hey"}

    @pytest.mark.asyncio
    async def test_remove_missing_key_is_noop(self, local_store):
        await local_store.remove("groups/nope")


class TestSqliteStoreConnections:
    @pytest.mark.asyncio
    async def test_connections_closed_after_each_call(self, local_store):
        opened = []
        real_connect = local_store._connect

        def tracking_connect():
            conn = real_connect()
            opened.append(conn)
            return conn

        with patch.object(local_store, "_connect", side_effect=tracking_connect):
            await local_store.set("groups/g1", {"name": "A"})
            assert await local_store.get("groups/g1") == {"name": "A"}
            await local_store.remove("groups/g1")

        assert len(opened) == 3
        for conn in opened:
            with pytest.raises(sqlite3.ProgrammingError):
                conn.execute("SELECT 1")


class TestSqliteStoreErrors:
    @pytest.mark.asyncio
    async def test_unserializable_value_raises_storage_error(self, local_store):
        with pytest.raises(StorageError):
            await local_store.set("groups/g1", {"when": object()})

    @pytest.mark.asyncio
    async def test_sqlite_error_wrapped(self, local_store):
        with patch.object(local_store, "_get_sync", side_effect=sqlite3.OperationalError("locked")):
            with pytest.raises(StorageError, match="Local read failed"):
                await local_store.get("groups/g1")
