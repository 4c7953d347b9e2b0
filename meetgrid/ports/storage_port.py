"""Storage port: abstract key-value interface shared by the remote and local stores.

Keys are slash-separated paths:

    groups/{groupId}
    availability/{groupId}/{userId}
    day_messages/{groupId}/{date}/{messageId}
    user_prefs/{userId}/default_time_range

`get` on a path that has children returns the nested subtree as a dict
(Firebase Realtime Database semantics). `remove` removes the subtree.
"""

from __future__ import annotations

from typing import Any, Protocol


class StorageError(Exception):
    """Raised when a store operation fails."""


class RemoteStoreError(StorageError):
    """Raised when the remote store is unreachable or rejects a request."""


class KeyValueStore(Protocol):
    """Abstract document store used by the sync coordinator."""

    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any) -> None: ...

    async def remove(self, key: str) -> None: ...
