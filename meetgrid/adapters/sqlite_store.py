"""SQLite key-value adapter: implements KeyValueStore for the on-device mirror.

Documents are stored as JSON text, one row per leaf path. Reads of an inner
path assemble the subtree so the local mirror answers exactly like the
remote store does. The sqlite3 calls are sync and wrapped with
asyncio.to_thread.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Any

from meetgrid.data.models import utc_now_iso
from meetgrid.ports.storage_port import StorageError

logger = logging.getLogger(__name__)


def _normalize_key(key: str) -> str:
    cleaned = key.strip("/")
    if not cleaned:
        raise ValueError("Storage key must not be empty")
    return cleaned


def _flatten(key: str, value: Any) -> list[tuple[str, Any]]:
    """Split value into (path, leaf) pairs. Non-empty dicts become inner nodes.

    None and empty dicts produce no rows, matching the remote store where
    writing null deletes the path.
    """
    if value is None:
        return []
    if not isinstance(value, dict):
        return [(key, value)]
    pairs: list[tuple[str, Any]] = []
    for child, child_value in value.items():
        child_key = str(child)
        if not child_key or "/" in child_key:
            raise TypeError(f"Invalid child key {child!r} under {key}")
        pairs.extend(_flatten(f"{key}/{child_key}", child_value))
    return pairs


def _assemble_subtree(prefix: str, rows: list[sqlite3.Row]) -> dict[str, Any] | None:
    """Build a nested dict from rows whose keys start with prefix + "/"."""
    if not rows:
        return None
    tree: dict[str, Any] = {}
    offset = len(prefix) + 1
    for row in rows:
        parts = row["key"][offset:].split("/")
        node = tree
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[parts[-1]] = json.loads(row["value"])
    return tree


class SqliteStore:
    """SQLite implementation of KeyValueStore."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from meetgrid.config import settings
            db_path = settings.LOCAL_DATABASE_PATH

        self._db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        """Create the documents table if it doesn't exist."""
        with closing(self._connect()) as conn, conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS documents (
                    key        TEXT PRIMARY KEY,
                    value      TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
        logger.debug("Documents table initialized at %s", self._db_path)

    # --- sync implementations ---

    def _get_sync(self, key: str) -> Any | None:
        key = _normalize_key(key)
        prefix = key + "/"
        with closing(self._connect()) as conn, conn:
            row = conn.execute(
                "SELECT value FROM documents WHERE key = ?", (key,)
            ).fetchone()
            if row is not None:
                return json.loads(row["value"])
            rows = conn.execute(
                "SELECT key, value FROM documents "
                "WHERE substr(key, 1, ?) = ? ORDER BY key",
                (len(prefix), prefix),
            ).fetchall()
        return _assemble_subtree(key, rows)

    def _set_sync(self, key: str, value: Any) -> None:
        key = _normalize_key(key)
        prefix = key + "/"
        leaves = [
            (leaf_key, json.dumps(leaf, ensure_ascii=False, sort_keys=True), utc_now_iso())
            for leaf_key, leaf in _flatten(key, value)
        ]
        parts = key.split("/")
        ancestors = ["/".join(parts[:i]) for i in range(1, len(parts))]
        with closing(self._connect()) as conn, conn:
            # A document replaces whatever subtree was stored under its path,
            # and an ancestor leaf is turned into an inner node
            conn.execute(
                "DELETE FROM documents WHERE key = ? OR substr(key, 1, ?) = ?",
                (key, len(prefix), prefix),
            )
            conn.executemany(
                "DELETE FROM documents WHERE key = ?",
                [(a,) for a in ancestors],
            )
            conn.executemany(
                """
                INSERT INTO documents (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
                """,
                leaves,
            )

    def _remove_sync(self, key: str) -> int:
        key = _normalize_key(key)
        prefix = key + "/"
        with closing(self._connect()) as conn, conn:
            cursor = conn.execute(
                "DELETE FROM documents WHERE key = ? OR substr(key, 1, ?) = ?",
                (key, len(prefix), prefix),
            )
        return cursor.rowcount

    # --- KeyValueStore ---

    async def get(self, key: str) -> Any | None:
        try:
            return await asyncio.to_thread(self._get_sync, key)
        except sqlite3.Error as exc:
            raise StorageError(f"Local read failed for {key}: {exc}") from exc

    async def set(self, key: str, value: Any) -> None:
        try:
            await asyncio.to_thread(self._set_sync, key, value)
        except (sqlite3.Error, TypeError) as exc:
            raise StorageError(f"Local write failed for {key}: {exc}") from exc
        logger.debug("Local document written: %s", key)

    async def remove(self, key: str) -> None:
        try:
            removed = await asyncio.to_thread(self._remove_sync, key)
        except sqlite3.Error as exc:
            raise StorageError(f"Local remove failed for {key}: {exc}") from exc
        if removed:
            logger.debug("Local document(s) removed under %s: %d", key, removed)
