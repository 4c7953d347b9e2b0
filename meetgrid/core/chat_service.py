"""
MeetGrid: Per-Date Chat Service.

Each group has a small conversation per calendar date, stored under
day_messages/{groupId}/{date}/{messageId}.
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from meetgrid.data.models import ChatMessage, utc_now_iso, validate_iso_date

if TYPE_CHECKING:
    from meetgrid.core.sync import DualWriteCoordinator

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 1000


class ChatValidationError(ValueError):
    """Message text or date is not acceptable."""


def day_messages_key(group_id: str, date: str) -> str:
    return f"day_messages/{group_id}/{date}"


class ChatService:
    def __init__(self, coordinator: DualWriteCoordinator) -> None:
        self._coordinator = coordinator

    async def send_message(
        self,
        group_id: str,
        date: str,
        user_id: str,
        user_name: str,
        text: str,
    ) -> ChatMessage:
        text = (text or "").strip()
        if not text:
            raise ChatValidationError("Message cannot be empty")
        if len(text) > MAX_MESSAGE_LENGTH:
            raise ChatValidationError(
                f"Message must be {MAX_MESSAGE_LENGTH} characters or less"
            )
        try:
            validate_iso_date(date)
        except ValueError as exc:
            raise ChatValidationError(str(exc)) from exc

        message = ChatMessage(
            id=uuid.uuid4().hex,
            group_id=group_id,
            date=date,
            user_id=user_id,
            user_name=user_name,
            text=text,
            timestamp=utc_now_iso(),
        )
        await self._coordinator.write(
            f"{day_messages_key(group_id, date)}/{message.id}", message.to_document(),
        )
        logger.info("Message sent in %s on %s by %s", group_id, date, user_id)
        return message

    async def get_date_messages(self, group_id: str, date: str) -> list[ChatMessage]:
        """Messages for one date, oldest first."""
        data = await self._coordinator.read(day_messages_key(group_id, date))
        if not isinstance(data, dict):
            return []

        messages: list[ChatMessage] = []
        for message_id, doc in data.items():
            try:
                messages.append(ChatMessage.from_document(doc))
            except ValueError as exc:
                logger.warning("Skipping invalid message %s: %s", message_id, exc)
        return sorted(messages, key=lambda m: (m.timestamp, m.id))
