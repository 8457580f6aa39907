"""In-app notification inbox — read side of the IN_APP channel."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from fortify_alerts.core.clock import Clock, utcnow
from fortify_alerts.notifications.types import InAppNotification
from fortify_alerts.storage.exceptions import NotFoundError

if TYPE_CHECKING:
    from fortify_alerts.storage.ports import InboxStore

logger = structlog.get_logger(__name__)


class Inbox:
    """Per-user listing and read-state for in-app notifications."""

    def __init__(self, store: InboxStore, clock: Clock | None = None) -> None:
        self._store = store
        self._clock = clock or utcnow

    async def list_for_user(
        self, user_id: str, unread_only: bool = False,
    ) -> list[InAppNotification]:
        return await self._store.list_notifications(user_id, unread_only=unread_only)

    async def unread_count(self, user_id: str) -> int:
        return len(await self._store.list_notifications(user_id, unread_only=True))

    async def mark_read(self, notification_id: str, user_id: str) -> InAppNotification:
        """Mark one notification read. Only the owner may do so."""
        for note in await self._store.list_notifications(user_id):
            if note.id == notification_id:
                if note.is_read:
                    return note
                note.read_at = self._clock()
                return await self._store.save_notification(note)
        raise NotFoundError(f"notification {notification_id} not found for user {user_id}")

    async def mark_all_read(self, user_id: str) -> int:
        """Mark every unread notification read; returns how many changed."""
        now = self._clock()
        unread = await self._store.list_notifications(user_id, unread_only=True)
        for note in unread:
            note.read_at = now
            await self._store.save_notification(note)
        if unread:
            logger.debug("inbox_marked_read", user_id=user_id, count=len(unread))
        return len(unread)

    async def delete(self, notification_id: str, user_id: str) -> None:
        """Delete one notification. Only the owner may do so."""
        if not await self._store.delete_notification(notification_id, user_id):
            raise NotFoundError(f"notification {notification_id} not found for user {user_id}")
        logger.debug("inbox_deleted", user_id=user_id, notification_id=notification_id)
