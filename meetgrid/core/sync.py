"""
MeetGrid: Dual-Write Persistence Coordinator.

Every mutation goes to the remote store first and then, always, to the
local mirror, so the device keeps an offline-usable copy even when the
remote write succeeds. Reads prefer the remote and fall back to the mirror
on any remote error.

This is the only place in the project that swallows storage errors:
remote failures are logged, published as a notice and queued for resync.
Callers only ever see degraded (possibly stale) data. Exceptions listed in
`rethrow` are business-rule conflicts and always propagate.

Last-write-wins: there is no per-record locking or merge.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from meetgrid.ports.notification_port import Notice, NoticeLevel
from meetgrid.ports.storage_port import StorageError

if TYPE_CHECKING:
    from meetgrid.ports.notification_port import NotificationPort
    from meetgrid.ports.storage_port import KeyValueStore

logger = logging.getLogger(__name__)

RemoteGuard = Callable[["KeyValueStore"], Awaitable[None]]

_OFFLINE_MESSAGE = "Saved on this device only. Changes will sync when you're back online."


class SyncState(Enum):
    IDLE = "idle"
    REMOTE_ATTEMPT = "remote_attempt"
    REMOTE_SUCCEEDED = "remote_succeeded"
    REMOTE_FAILED = "remote_failed"
    LOCAL_MIRROR = "local_mirror"
    DONE = "done"


class ReadSource(Enum):
    REMOTE = "remote"
    LOCAL = "local"


@dataclass
class SyncResult:
    """Outcome of one dual-write."""

    key: str
    remote_ok: bool
    local_ok: bool
    states: list[SyncState] = field(default_factory=list)
    error: Exception | None = None   # the swallowed remote error, if any

    @property
    def state(self) -> SyncState:
        return self.states[-1] if self.states else SyncState.IDLE


def _is_under(key: str, prefix: str) -> bool:
    return key == prefix or key.startswith(prefix.rstrip("/") + "/")


class DualWriteCoordinator:
    """Remote-primary, local-mirrored persistence for all documents."""

    def __init__(
        self,
        remote: KeyValueStore,
        local: KeyValueStore,
        notifier: NotificationPort | None = None,
    ) -> None:
        self._remote = remote
        self._local = local
        self._notifier = notifier
        self._pending: dict[str, str] = {}   # key -> "set" | "remove"
        self.last_read_source: ReadSource | None = None

    @property
    def pending_keys(self) -> list[str]:
        """Keys whose latest mutation reached only the local mirror."""
        return sorted(self._pending)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def write(
        self,
        key: str,
        value: Any,
        rethrow: tuple[type[Exception], ...] = (),
        guard: RemoteGuard | None = None,
    ) -> SyncResult:
        """Write value to the remote store, then always to the local mirror.

        guard, if given, runs against the remote store right before the
        remote write and counts as part of the remote attempt: a guard error
        listed in rethrow aborts the whole write, any other error falls back
        to local-only like a failed write.
        """
        return await self._mutate("set", key, value, rethrow, guard)

    async def remove(
        self,
        key: str,
        rethrow: tuple[type[Exception], ...] = (),
    ) -> SyncResult:
        """Remove key (and its subtree) from both stores."""
        return await self._mutate("remove", key, None, rethrow)

    async def _mutate(
        self,
        op: str,
        key: str,
        value: Any,
        rethrow: tuple[type[Exception], ...],
        guard: RemoteGuard | None = None,
    ) -> SyncResult:
        states = [SyncState.IDLE, SyncState.REMOTE_ATTEMPT]
        remote_error: Exception | None = None

        try:
            if guard is not None:
                await guard(self._remote)
            if op == "set":
                await self._remote.set(key, value)
            else:
                await self._remote.remove(key)
        except rethrow:
            logger.warning("Remote %s rejected for %s; not falling back", op, key)
            raise
        except Exception as exc:
            remote_error = exc
            states.append(SyncState.REMOTE_FAILED)
            self._pending[key] = op
            logger.warning("Remote %s failed for %s, keeping local copy: %s", op, key, exc)
            self._publish(NoticeLevel.WARNING, _OFFLINE_MESSAGE, key)
        else:
            states.append(SyncState.REMOTE_SUCCEEDED)
            self._pending.pop(key, None)

        states.append(SyncState.LOCAL_MIRROR)
        local_ok = True
        try:
            if op == "set":
                await self._local.set(key, value)
            else:
                await self._local.remove(key)
        except Exception as exc:
            local_ok = False
            if remote_error is not None:
                logger.error(
                    "Both stores failed for %s: remote=%s local=%s", key, remote_error, exc,
                )
                self._publish(NoticeLevel.ERROR, "Could not save your changes.", key)
                raise StorageError(
                    f"Could not {op} {key}: remote and local stores both failed"
                ) from exc
            logger.error("Local mirror %s failed for %s: %s", op, key, exc)

        states.append(SyncState.DONE)
        return SyncResult(
            key=key,
            remote_ok=remote_error is None,
            local_ok=local_ok,
            states=states,
            error=remote_error,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def read(self, key: str) -> Any | None:
        """Read key from the remote store, falling back to the local mirror.

        A successful remote read refreshes the mirror. While local changes
        under key are still waiting to be synced, the mirror is left alone
        and those changes are laid over the remote value, so callers never
        see an older copy than the one on this device. Local read errors
        are raised: at that point there is no copy left to degrade to.
        """
        try:
            value = await self._remote.get(key)
        except Exception as exc:
            logger.warning("Remote read failed for %s, using local mirror: %s", key, exc)
            self.last_read_source = ReadSource.LOCAL
            return await self._local.get(key)

        if any(_is_under(key, pending) for pending in self._pending):
            # key sits inside a document that has not been synced yet
            self.last_read_source = ReadSource.LOCAL
            return await self._local.get(key)

        unsynced = [pending for pending in self._pending if _is_under(pending, key)]
        if unsynced:
            logger.debug("Overlaying %d unsynced change(s) on %s", len(unsynced), key)
            self.last_read_source = ReadSource.LOCAL
            return await self._overlay_local(key, value, unsynced)

        self.last_read_source = ReadSource.REMOTE
        if value is not None:
            await self._refresh_mirror(key, value)
        return value

    async def _overlay_local(self, key: str, value: Any, unsynced: list[str]) -> Any | None:
        """Replace each unsynced path under key in value with its local copy."""
        merged = copy.deepcopy(value) if isinstance(value, dict) else {}
        offset = len(key.rstrip("/")) + 1
        for pending in sorted(unsynced):
            local_value = await self._local.get(pending)
            parts = pending[offset:].split("/")
            node = merged
            for part in parts[:-1]:
                child = node.get(part)
                if not isinstance(child, dict):
                    child = {}
                    node[part] = child
                node = child
            if local_value is None:
                node.pop(parts[-1], None)
            else:
                node[parts[-1]] = local_value
        return merged or None

    async def _refresh_mirror(self, key: str, value: Any) -> None:
        try:
            await self._local.set(key, value)
        except Exception as exc:
            logger.warning("Failed to refresh local mirror for %s: %s", key, exc)

    # ------------------------------------------------------------------
    # Resync
    # ------------------------------------------------------------------

    async def resync(self) -> list[str]:
        """Push the local state of every pending key to the remote store.

        Returns the keys that were synced; failing keys stay pending.
        """
        synced: list[str] = []
        for key, op in list(self._pending.items()):
            try:
                value = await self._local.get(key) if op == "set" else None
                if value is None:
                    await self._remote.remove(key)
                else:
                    await self._remote.set(key, value)
            except Exception as exc:
                logger.warning("Resync of %s still failing: %s", key, exc)
                continue
            self._pending.pop(key, None)
            synced.append(key)

        if synced:
            logger.info("Resynced %d pending document(s)", len(synced))
            self._publish(NoticeLevel.INFO, "Your offline changes are now synced.")
        return synced

    def _publish(self, level: NoticeLevel, message: str, key: str | None = None) -> None:
        if self._notifier is not None:
            self._notifier.notify(Notice(level=level, message=message, key=key))
