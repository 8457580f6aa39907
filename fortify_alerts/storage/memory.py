"""In-process implementations of the persistence and directory ports."""

from __future__ import annotations

import asyncio
import datetime
from collections.abc import Iterable, Mapping
from typing import Any

from fortify_alerts.actions.types import ActionItem, ActionItemPriority, ActionItemStatus
from fortify_alerts.alerts.types import Alert, AlertCategory, AlertSeverity, AlertStatus
from fortify_alerts.notifications.types import InAppNotification, Recipient
from fortify_alerts.storage.exceptions import ConflictError, NotFoundError
from fortify_alerts.storage.ports import AlertingStore, RoleDirectory


class InMemoryStore(AlertingStore):
    """Dict-backed store for alerts, action items and in-app notifications.

    Records are copied on the way in and out, so callers never share
    mutable state with the store. Compare-and-set writes are serialized
    by a single asyncio lock.
    """

    def __init__(self) -> None:
        self._alerts: dict[str, Alert] = {}
        self._items: dict[str, ActionItem] = {}
        self._notifications: dict[str, InAppNotification] = {}
        self._lock = asyncio.Lock()

    # ── Alerts ──────────────────────────────────────────────────

    async def insert_alert(self, alert: Alert) -> Alert:
        async with self._lock:
            if alert.id in self._alerts:
                raise ConflictError(f"alert {alert.id} already exists")
            self._alerts[alert.id] = alert.model_copy(deep=True)
        return alert.model_copy(deep=True)

    async def get_alert(self, alert_id: str) -> Alert:
        stored = self._alerts.get(alert_id)
        if stored is None:
            raise NotFoundError(f"alert {alert_id} not found")
        return stored.model_copy(deep=True)

    async def list_alerts(
        self,
        statuses: set[AlertStatus] | None = None,
        severity: AlertSeverity | None = None,
        category: AlertCategory | None = None,
        mill_id: str | None = None,
    ) -> list[Alert]:
        return [
            a.model_copy(deep=True)
            for a in self._alerts.values()
            if (statuses is None or a.status in statuses)
            and (severity is None or a.severity == severity)
            and (category is None or a.category == category)
            and (mill_id is None or a.mill_id == mill_id)
        ]

    async def save_alert(self, alert: Alert, expected_version: int) -> Alert:
        async with self._lock:
            current = self._alerts.get(alert.id)
            if current is None:
                raise NotFoundError(f"alert {alert.id} not found")
            if current.version != expected_version:
                raise ConflictError(
                    f"alert {alert.id} is at version {current.version},"
                    f" expected {expected_version}",
                )
            stored = alert.model_copy(deep=True, update={"version": expected_version + 1})
            self._alerts[alert.id] = stored
        return stored.model_copy(deep=True)

    # ── Action items ────────────────────────────────────────────

    async def insert_action_item(self, item: ActionItem) -> ActionItem:
        async with self._lock:
            if item.id in self._items:
                raise ConflictError(f"action item {item.id} already exists")
            self._items[item.id] = item.model_copy(deep=True)
        return item.model_copy(deep=True)

    async def get_action_item(self, item_id: str) -> ActionItem:
        stored = self._items.get(item_id)
        if stored is None:
            raise NotFoundError(f"action item {item_id} not found")
        return stored.model_copy(deep=True)

    async def list_action_items(
        self,
        assigned_to_id: str | None = None,
        mill_id: str | None = None,
        statuses: set[ActionItemStatus] | None = None,
        priority: ActionItemPriority | None = None,
        overdue: bool | None = None,
        due_before: datetime.datetime | None = None,
    ) -> list[ActionItem]:
        return [
            i.model_copy(deep=True)
            for i in self._items.values()
            if (assigned_to_id is None or i.assigned_to_id == assigned_to_id)
            and (mill_id is None or i.mill_id == mill_id)
            and (statuses is None or i.status in statuses)
            and (priority is None or i.priority == priority)
            and (overdue is None or i.is_overdue == overdue)
            and (due_before is None or i.due_date < due_before)
        ]

    async def save_action_item(self, item: ActionItem, expected_version: int) -> ActionItem:
        async with self._lock:
            current = self._items.get(item.id)
            if current is None:
                raise NotFoundError(f"action item {item.id} not found")
            if current.version != expected_version:
                raise ConflictError(
                    f"action item {item.id} is at version {current.version},"
                    f" expected {expected_version}",
                )
            stored = item.model_copy(deep=True, update={"version": expected_version + 1})
            self._items[item.id] = stored
        return stored.model_copy(deep=True)

    # ── In-app notifications ────────────────────────────────────

    async def insert_notification(self, notification: InAppNotification) -> InAppNotification:
        async with self._lock:
            self._notifications[notification.id] = notification.model_copy(deep=True)
        return notification.model_copy(deep=True)

    async def list_notifications(
        self, user_id: str, unread_only: bool = False,
    ) -> list[InAppNotification]:
        found = [
            n.model_copy(deep=True)
            for n in self._notifications.values()
            if n.user_id == user_id and not (unread_only and n.is_read)
        ]
        found.sort(key=lambda n: n.created_at, reverse=True)
        return found

    async def save_notification(self, notification: InAppNotification) -> InAppNotification:
        async with self._lock:
            if notification.id not in self._notifications:
                raise NotFoundError(f"notification {notification.id} not found")
            self._notifications[notification.id] = notification.model_copy(deep=True)
        return notification.model_copy(deep=True)

    async def delete_notification(self, notification_id: str, user_id: str) -> bool:
        async with self._lock:
            note = self._notifications.get(notification_id)
            if note is None or note.user_id != user_id:
                return False
            del self._notifications[notification_id]
        return True


class StaticRoleDirectory(RoleDirectory):
    """Directory backed by a fixed list of recipients.

    A recipient matches a role when ``recipient.role`` equals it and, if the
    scope names a ``mill_id``, the recipient belongs to that mill (recipients
    without a mill, such as FWGA staff, match every mill).
    """

    def __init__(self, recipients: Iterable[Recipient] = ()) -> None:
        self._recipients: list[Recipient] = list(recipients)

    @classmethod
    def from_mapping(cls, roles: Mapping[str, Iterable[Recipient]]) -> StaticRoleDirectory:
        """Build from ``{role: [recipients]}``, stamping the role onto each."""
        return cls(
            r.model_copy(update={"role": role})
            for role, members in roles.items()
            for r in members
        )

    def add(self, recipient: Recipient) -> None:
        self._recipients.append(recipient)

    async def resolve(self, role: str, scope: dict[str, Any]) -> list[Recipient]:
        mill_id = scope.get("mill_id")
        return [
            r.model_copy()
            for r in self._recipients
            if r.role == role
            and (mill_id is None or r.mill_id is None or r.mill_id == str(mill_id))
        ]
