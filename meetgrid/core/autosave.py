"""
MeetGrid: Debounced Autosave.

Collapses a burst of edits to an availability record into one save of the
latest state. Each schedule() restarts the timer; a save that has already
started is never cancelled.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from meetgrid.config import settings

if TYPE_CHECKING:
    from meetgrid.data.models import AvailabilityRecord

logger = logging.getLogger(__name__)

SaveFn = Callable[["AvailabilityRecord"], Awaitable[Any]]


class AutosaveScheduler:
    """Debounces saves of one record. Must be used inside a running event loop."""

    def __init__(self, save: SaveFn, delay_seconds: float | None = None) -> None:
        if delay_seconds is None:
            delay_seconds = settings.AUTOSAVE_DEBOUNCE_SECONDS
        self._save = save
        self._delay = delay_seconds
        self._pending: AvailabilityRecord | None = None
        self._timer: asyncio.Task | None = None
        self._in_flight: set[asyncio.Task] = set()
        self._first_error: Exception | None = None   # later failures are only logged

    @property
    def pending(self) -> AvailabilityRecord | None:
        """Snapshot waiting for the timer, if any."""
        return self._pending

    def schedule(self, record: AvailabilityRecord) -> None:
        """Queue a snapshot of record and restart the debounce timer."""
        self._pending = record.clone()
        if self._timer is not None:
            self._timer.cancel()
        self._timer = asyncio.get_running_loop().create_task(self._wait_then_save())

    async def flush(self) -> None:
        """Save the pending snapshot now. Save errors propagate."""
        self._cancel_timer()
        record, self._pending = self._pending, None
        if record is not None:
            await self._save(record)

    def cancel(self) -> None:
        """Drop the pending snapshot without saving it."""
        self._cancel_timer()
        self._pending = None

    async def drain(self) -> None:
        """Wait for started saves and re-raise the first error they hit."""
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)
        error, self._first_error = self._first_error, None
        if error is not None:
            raise error

    async def _wait_then_save(self) -> None:
        await asyncio.sleep(self._delay)
        # From here on the save is in flight and schedule() can't cancel it
        self._timer = None
        record, self._pending = self._pending, None
        if record is None:
            return
        task = asyncio.get_running_loop().create_task(self._run_save(record))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _run_save(self, record: AvailabilityRecord) -> None:
        try:
            await self._save(record)
            logger.debug("Autosaved availability %s/%s", record.group_id, record.user_id)
        except Exception as exc:
            logger.error(
                "Autosave failed for %s/%s: %s", record.group_id, record.user_id, exc,
            )
            if self._first_error is None:
                self._first_error = exc

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
