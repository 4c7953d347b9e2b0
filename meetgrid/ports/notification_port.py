"""Notification port: abstract interface for user-facing notices.

Core modules publish notices (e.g. "working offline") through this protocol
and never know which UI renders them.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol


class NoticeLevel(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notice:
    level: NoticeLevel
    message: str
    key: str | None = None   # storage key the notice relates to, if any


class NotificationPort(Protocol):
    """Abstract notification interface used by core modules."""

    def notify(self, notice: Notice) -> None: ...
