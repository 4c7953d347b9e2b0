"""
MeetGrid: Notification Channel.

In-process pub/sub implementation of NotificationPort. One channel is
created per app session and passed explicitly to the coordinator and the
services; the UI subscribes to render notices as toasts.
"""

from __future__ import annotations

import logging
from typing import Callable

from meetgrid.ports.notification_port import Notice

logger = logging.getLogger(__name__)

Subscriber = Callable[[Notice], None]


class NotificationChannel:
    """Fan-out of notices to subscribers, with an explicit lifecycle."""

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register callback; returns a function that unsubscribes it."""
        if self._closed:
            raise RuntimeError("Cannot subscribe to a closed notification channel")
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def notify(self, notice: Notice) -> None:
        """Deliver notice to every subscriber. A failing subscriber is skipped."""
        if self._closed:
            return
        for callback in list(self._subscribers):
            try:
                callback(notice)
            except Exception as exc:
                logger.error("Notification subscriber failed on %r: %s", notice.message, exc)

    def close(self) -> None:
        self._subscribers.clear()
        self._closed = True
