"""Shared test fixtures and configuration.

Sets up environment variables before any meetgrid imports so the settings
singleton never points at a real Firebase project, and provides SQLite
stores backed by temp files.
"""

import os

# Patch env vars BEFORE any meetgrid imports
os.environ.setdefault("REMOTE_PROVIDER", "none")
os.environ.setdefault("FIREBASE_DATABASE_URL", "")
os.environ.setdefault("LOCAL_DATABASE_PATH", "data/test-meetgrid.db")
os.environ.setdefault("AUTOSAVE_DEBOUNCE_SECONDS", "0.01")

import pytest

from meetgrid.ports.storage_port import RemoteStoreError


class SwitchableRemote:
    """Remote store stand-in that can be taken offline.

    Backed by a real SqliteStore so subtree reads behave like Firebase.
    """

    def __init__(self, backing):
        self.backing = backing
        self.online = True

    def _check(self):
        if not self.online:
            raise RemoteStoreError("network unreachable")

    async def get(self, key):
        self._check()
        return await self.backing.get(key)

    async def set(self, key, value):
        self._check()
        await self.backing.set(key, value)

    async def remove(self, key):
        self._check()
        await self.backing.remove(key)


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_meetgrid.db")


@pytest.fixture
def local_store(tmp_db_path):
    """Return a SqliteStore backed by a temp file."""
    from meetgrid.adapters.sqlite_store import SqliteStore
    return SqliteStore(db_path=tmp_db_path)


@pytest.fixture
def remote(tmp_path):
    """Return a SwitchableRemote, online by default."""
    from meetgrid.adapters.sqlite_store import SqliteStore
    return SwitchableRemote(SqliteStore(db_path=str(tmp_path / "remote.db")))


@pytest.fixture
def channel():
    from meetgrid.core.notifications import NotificationChannel
    return NotificationChannel()


@pytest.fixture
def coordinator(remote, local_store, channel):
    from meetgrid.core.sync import DualWriteCoordinator
    return DualWriteCoordinator(remote, local_store, notifier=channel)


@pytest.fixture
def availability_service(coordinator):
    from meetgrid.core.availability_service import AvailabilityService
    return AvailabilityService(coordinator)
