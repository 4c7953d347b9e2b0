"""Firebase Realtime Database adapter: implements KeyValueStore over REST.

Each key maps to `{FIREBASE_DATABASE_URL}/{key}.json`. GET returns the whole
subtree (or null), PUT replaces it and DELETE removes it. An optional auth
token (database secret or ID token) is passed as the `auth` query parameter.

Every transport or HTTP failure is raised as RemoteStoreError so the sync
coordinator can fall back to the local mirror.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from meetgrid.config import settings
from meetgrid.ports.storage_port import RemoteStoreError

logger = logging.getLogger(__name__)

# Characters Firebase refuses in path segments
_FORBIDDEN_KEY_CHARS = set(".$#[]")


class FirebaseRestStore:
    """Firebase RTDB implementation of KeyValueStore."""

    def __init__(
        self,
        database_url: str | None = None,
        auth_token: str | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        if database_url is None:
            database_url = settings.FIREBASE_DATABASE_URL
        if auth_token is None:
            auth_token = settings.FIREBASE_AUTH_TOKEN
        if timeout_seconds is None:
            timeout_seconds = settings.REMOTE_TIMEOUT_SECONDS

        if not database_url:
            raise ValueError("FIREBASE_DATABASE_URL is required for the firebase store")

        self._base_url = database_url.rstrip("/")
        self._auth_token = auth_token
        self._timeout = timeout_seconds

    def _url(self, key: str) -> str:
        cleaned = key.strip("/")
        if not cleaned or _FORBIDDEN_KEY_CHARS & set(cleaned):
            raise ValueError(f"Invalid Firebase key: {key!r}")
        return f"{self._base_url}/{cleaned}.json"

    def _params(self) -> dict[str, str]:
        return {"auth": self._auth_token} if self._auth_token else {}

    async def _request(self, method: str, key: str, payload: Any = None) -> Any:
        url = self._url(key)
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.request(
                    method,
                    url,
                    params=self._params(),
                    json=payload if method == "PUT" else None,
                )
                resp.raise_for_status()
                return resp.json() if method == "GET" else None
        except httpx.HTTPStatusError as exc:
            raise RemoteStoreError(
                f"Firebase {method} {key} failed with HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise RemoteStoreError(f"Firebase {method} {key} failed: {exc}") from exc

    async def get(self, key: str) -> Any | None:
        return await self._request("GET", key)

    async def set(self, key: str, value: Any) -> None:
        await self._request("PUT", key, value)
        logger.debug("Remote document written: %s", key)

    async def remove(self, key: str) -> None:
        await self._request("DELETE", key)
        logger.debug("Remote document removed: %s", key)


class DisabledRemoteStore:
    """Remote store used when REMOTE_PROVIDER=none.

    Every call fails with RemoteStoreError, which routes all traffic to the
    local mirror through the normal fallback path.
    """

    async def get(self, key: str) -> Any | None:
        raise RemoteStoreError("Remote store is disabled")

    async def set(self, key: str, value: Any) -> None:
        raise RemoteStoreError("Remote store is disabled")

    async def remove(self, key: str) -> None:
        raise RemoteStoreError("Remote store is disabled")
