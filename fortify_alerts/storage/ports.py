"""Persistence and directory ports consumed by the alerting core.

Concrete implementations live outside this package (a SQL repository, an
HR/identity service); :mod:`fortify_alerts.storage.memory` provides the
in-process versions used by tests and local wiring.

Writes that can race (``save_alert``, ``save_action_item``) are
conditional on the record ``version`` read by the caller: an implementation
must raise :class:`~fortify_alerts.storage.exceptions.ConflictError` when
the stored version differs, and store the record with ``version + 1``
otherwise.
"""

from __future__ import annotations

import abc
import datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from fortify_alerts.actions.types import (
        ActionItem,
        ActionItemPriority,
        ActionItemStatus,
    )
    from fortify_alerts.alerts.types import (
        Alert,
        AlertCategory,
        AlertSeverity,
        AlertStatus,
    )
    from fortify_alerts.notifications.types import InAppNotification, Recipient


class AlertStore(abc.ABC):
    """CRUD for alert records with optimistic concurrency."""

    @abc.abstractmethod
    async def insert_alert(self, alert: Alert) -> Alert:
        """Persist a new alert."""

    @abc.abstractmethod
    async def get_alert(self, alert_id: str) -> Alert:
        """Load an alert. Raises NotFoundError."""

    @abc.abstractmethod
    async def list_alerts(
        self,
        statuses: set[AlertStatus] | None = None,
        severity: AlertSeverity | None = None,
        category: AlertCategory | None = None,
        mill_id: str | None = None,
    ) -> list[Alert]:
        """Return matching alerts in no particular order."""

    @abc.abstractmethod
    async def save_alert(self, alert: Alert, expected_version: int) -> Alert:
        """Compare-and-set write. Returns the stored alert (new version)."""


class ActionItemStore(abc.ABC):
    """CRUD for action items with optimistic concurrency."""

    @abc.abstractmethod
    async def insert_action_item(self, item: ActionItem) -> ActionItem:
        """Persist a new action item."""

    @abc.abstractmethod
    async def get_action_item(self, item_id: str) -> ActionItem:
        """Load an action item. Raises NotFoundError."""

    @abc.abstractmethod
    async def list_action_items(
        self,
        assigned_to_id: str | None = None,
        mill_id: str | None = None,
        statuses: set[ActionItemStatus] | None = None,
        priority: ActionItemPriority | None = None,
        overdue: bool | None = None,
        due_before: datetime.datetime | None = None,
    ) -> list[ActionItem]:
        """Return matching action items in no particular order."""

    @abc.abstractmethod
    async def save_action_item(self, item: ActionItem, expected_version: int) -> ActionItem:
        """Compare-and-set write. Returns the stored item (new version)."""


class InboxStore(abc.ABC):
    """Storage for in-app notifications."""

    @abc.abstractmethod
    async def insert_notification(self, notification: InAppNotification) -> InAppNotification:
        """Persist a new in-app notification."""

    @abc.abstractmethod
    async def list_notifications(
        self, user_id: str, unread_only: bool = False,
    ) -> list[InAppNotification]:
        """Notifications for *user_id*, newest first."""

    @abc.abstractmethod
    async def save_notification(self, notification: InAppNotification) -> InAppNotification:
        """Overwrite an existing notification. Raises NotFoundError."""

    @abc.abstractmethod
    async def delete_notification(self, notification_id: str, user_id: str) -> bool:
        """Delete *notification_id* if *user_id* owns it; False when nothing matched."""


class AlertingStore(AlertStore, ActionItemStore, InboxStore):
    """One backend serving all three persistence ports."""


class RoleDirectory(abc.ABC):
    """Resolves a role within a mill/tenant scope to concrete recipients."""

    @abc.abstractmethod
    async def resolve(self, role: str, scope: dict[str, Any]) -> list[Recipient]:
        """Recipients holding *role* in *scope* (``mill_id``, ``tenant_id``)."""
