"""Store adapter factory: creates the remote and local stores from config."""

from __future__ import annotations

from meetgrid.config import settings
from meetgrid.ports.storage_port import KeyValueStore


def create_remote_store() -> KeyValueStore:
    """Return the remote store matching the REMOTE_PROVIDER setting."""
    provider = settings.REMOTE_PROVIDER.lower()

    if provider == "firebase":
        from meetgrid.adapters.firebase_store import FirebaseRestStore

        return FirebaseRestStore(
            database_url=settings.FIREBASE_DATABASE_URL,
            auth_token=settings.FIREBASE_AUTH_TOKEN,
            timeout_seconds=settings.REMOTE_TIMEOUT_SECONDS,
        )

    if provider == "none":
        from meetgrid.adapters.firebase_store import DisabledRemoteStore

        return DisabledRemoteStore()

    raise ValueError(f"Unknown REMOTE_PROVIDER: {provider!r}")


def create_local_store(db_path: str | None = None) -> KeyValueStore:
    """Return the SQLite mirror, at db_path or LOCAL_DATABASE_PATH."""
    from meetgrid.adapters.sqlite_store import SqliteStore

    return SqliteStore(db_path=db_path or settings.LOCAL_DATABASE_PATH)
