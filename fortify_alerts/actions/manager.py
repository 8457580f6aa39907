"""ActionItemManager — work items tied to alerts and assignees, with overdue sweep."""

from __future__ import annotations

import datetime
import uuid
from typing import TYPE_CHECKING, Any

import structlog

from fortify_alerts.actions.exceptions import (
    ActionItemNotFoundError,
    InvalidStatusTransitionError,
)
from fortify_alerts.actions.types import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    ActionItem,
    ActionItemData,
    ActionItemPriority,
    ActionItemStatus,
)
from fortify_alerts.alerts.registry import get_config, humanize
from fortify_alerts.alerts.types import Alert, AlertSeverity
from fortify_alerts.core.clock import Clock, utcnow
from fortify_alerts.core.logging import AUDIT_LOGGER_NAME
from fortify_alerts.storage.exceptions import ConflictError, NotFoundError

if TYPE_CHECKING:
    from fortify_alerts.storage.ports import ActionItemStore

logger = structlog.get_logger(__name__)
audit_logger = structlog.get_logger(AUDIT_LOGGER_NAME)

_SEVERITY_PRIORITY: dict[AlertSeverity, ActionItemPriority] = {
    AlertSeverity.CRITICAL: ActionItemPriority.CRITICAL,
    AlertSeverity.HIGH: ActionItemPriority.HIGH,
    AlertSeverity.MEDIUM: ActionItemPriority.MEDIUM,
    AlertSeverity.LOW: ActionItemPriority.LOW,
}

_TITLE_MAX = 200
_DESCRIPTION_MAX = 1000


def severity_priority(severity: AlertSeverity) -> ActionItemPriority:
    """Action-item priority matching an alert severity."""
    return _SEVERITY_PRIORITY[severity]


class ActionItemManager:
    """Creates and mutates action items and keeps their overdue flag current.

    The overdue flag is only ever *set* by :meth:`sweep_overdue`; it is
    cleared by the status change into COMPLETED / CANCELLED (or by moving the
    due date into the future), never by the sweep itself.
    """

    def __init__(
        self,
        store: ActionItemStore,
        clock: Clock | None = None,
        default_due_hours: int = 24,
    ) -> None:
        self._store = store
        self._clock = clock or utcnow
        self._default_due_hours = default_due_hours

    # ── Creation ─────────────────────────────────────────────────

    async def create(self, data: ActionItemData, now: datetime.datetime | None = None) -> ActionItem:
        now = now or self._clock()
        item = ActionItem(
            id=uuid.uuid4().hex,
            title=data.title,
            description=data.description,
            priority=data.priority,
            status=ActionItemStatus.PENDING,
            due_date=data.due_date,
            assigned_to_id=data.assigned_to_id,
            mill_id=data.mill_id,
            is_overdue=False,
            related_alert_id=data.related_alert_id,
            related_batch_id=data.related_batch_id,
            related_equipment_id=data.related_equipment_id,
            created_by=data.created_by,
            created_at=now,
            updated_at=now,
        )
        stored = await self._store.insert_action_item(item)
        audit_logger.info(
            "action_item_created",
            item_id=stored.id,
            assigned_to_id=stored.assigned_to_id,
            priority=stored.priority.value,
            related_alert_id=stored.related_alert_id,
        )
        return stored

    async def create_from_alert(
        self,
        alert: Alert,
        assigned_to_id: str,
        created_by: str,
        due_date: datetime.datetime | None = None,
    ) -> ActionItem:
        """Spawn a follow-up item for *alert*, due within the type's SLA."""
        config = get_config(alert.type)
        if due_date is None:
            hours = config.response_time_hours or self._default_due_hours
            due_date = alert.created_at + datetime.timedelta(hours=hours)

        summary = alert.context.get("summary") or alert.context.get("message") or ""
        description = f"{config.action_required}\n\n{summary}".strip()
        ctx = alert.context
        data = ActionItemData(
            title=str(ctx.get("title") or humanize(alert.type))[:_TITLE_MAX],
            description=description[:_DESCRIPTION_MAX],
            priority=severity_priority(alert.severity),
            due_date=due_date,
            assigned_to_id=assigned_to_id,
            created_by=created_by,
            mill_id=alert.mill_id,
            related_alert_id=alert.id,
            related_batch_id=ctx.get("batch_id"),
            related_equipment_id=ctx.get("equipment_id"),
        )
        return await self.create(data)

    # ── Mutation ─────────────────────────────────────────────────

    async def update_status(
        self,
        item_id: str,
        status: ActionItemStatus,
        user_id: str,
        now: datetime.datetime | None = None,
    ) -> ActionItem:
        item = await self._load(item_id)
        if item.status == status:
            return item
        if item.status in TERMINAL_STATUSES:
            raise InvalidStatusTransitionError(
                f"action item {item_id} is {item.status.value} and archived",
            )

        now = now or self._clock()
        previous = item.status
        item.status = status
        item.updated_at = now
        if status == ActionItemStatus.COMPLETED:
            item.completed_at = now
            item.completed_by = user_id
        if status in TERMINAL_STATUSES:
            item.is_overdue = False

        stored = await self._save(item)
        audit_logger.info(
            "action_item_status_changed",
            item_id=item_id,
            from_status=previous.value,
            to_status=status.value,
            user_id=user_id,
        )
        return stored

    async def update_details(
        self,
        item_id: str,
        *,
        title: str | None = None,
        description: str | None = None,
        priority: ActionItemPriority | None = None,
        due_date: datetime.datetime | None = None,
        now: datetime.datetime | None = None,
    ) -> ActionItem:
        """Edit the descriptive fields of an item.

        Moving the due date past ``now`` clears a stale overdue flag.
        """
        item = await self._load(item_id)
        now = now or self._clock()
        changes: dict[str, Any] = {}
        if title is not None:
            if not 1 <= len(title) <= _TITLE_MAX:
                raise ValueError(f"title must be 1..{_TITLE_MAX} characters")
            changes["title"] = title
        if description is not None:
            if len(description) > _DESCRIPTION_MAX:
                raise ValueError(f"description must be at most {_DESCRIPTION_MAX} characters")
            changes["description"] = description
        if priority is not None:
            changes["priority"] = priority
        if due_date is not None:
            changes["due_date"] = due_date
            if item.is_overdue and due_date >= now:
                changes["is_overdue"] = False
        if not changes:
            return item

        updated = item.model_copy(update={**changes, "updated_at": now})
        return await self._save(updated)

    async def reassign(self, item_id: str, new_assignee_id: str, actor_id: str) -> ActionItem:
        """Hand the item to someone else; status and overdue flag are untouched."""
        item = await self._load(item_id)
        previous = item.assigned_to_id
        item.assigned_to_id = new_assignee_id
        item.updated_at = self._clock()
        stored = await self._save(item)
        audit_logger.info(
            "action_item_reassigned",
            item_id=item_id,
            from_assignee=previous,
            to_assignee=new_assignee_id,
            actor_id=actor_id,
        )
        return stored

    async def sweep_overdue(self, now: datetime.datetime | None = None) -> list[str]:
        """Flag active items whose due date has passed.

        Returns the ids flipped by this call; a second call with the same
        *now* finds nothing left to flip and returns ``[]``.
        """
        now = now or self._clock()
        candidates = await self._store.list_action_items(
            statuses=set(ACTIVE_STATUSES),
            overdue=False,
            due_before=now,
        )
        flipped: list[str] = []
        for item in sorted(candidates, key=lambda i: i.due_date):
            expected = item.version
            item.is_overdue = True
            try:
                await self._store.save_action_item(item, expected)
            except ConflictError:
                # Changed underneath us; the next sweep re-evaluates it.
                logger.info("overdue_sweep_conflict", item_id=item.id)
                continue
            flipped.append(item.id)

        if flipped:
            logger.info("overdue_sweep_flagged", count=len(flipped), now=now.isoformat())
        return flipped

    # ── Queries ──────────────────────────────────────────────────

    async def get(self, item_id: str) -> ActionItem:
        return await self._load(item_id)

    async def list_for_user(
        self,
        user_id: str,
        status: ActionItemStatus | None = None,
        priority: ActionItemPriority | None = None,
        overdue_only: bool = False,
    ) -> list[ActionItem]:
        items = await self._store.list_action_items(
            assigned_to_id=user_id,
            statuses={status} if status else None,
            priority=priority,
            overdue=True if overdue_only else None,
        )
        return sorted(items, key=ActionItem.sort_key)

    async def list_for_mill(
        self,
        mill_id: str,
        status: ActionItemStatus | None = None,
        priority: ActionItemPriority | None = None,
        overdue_only: bool = False,
    ) -> list[ActionItem]:
        items = await self._store.list_action_items(
            mill_id=mill_id,
            statuses={status} if status else None,
            priority=priority,
            overdue=True if overdue_only else None,
        )
        return sorted(items, key=ActionItem.sort_key)

    async def count_overdue(
        self,
        user_id: str | None = None,
        mill_id: str | None = None,
        status: ActionItemStatus | None = None,
        priority: ActionItemPriority | None = None,
    ) -> int:
        """Overdue items, optionally scoped to an assignee or mill.

        Without *status* only active (pending or in-progress) items count.
        """
        items = await self._store.list_action_items(
            assigned_to_id=user_id,
            mill_id=mill_id,
            statuses={status} if status else set(ACTIVE_STATUSES),
            priority=priority,
            overdue=True,
        )
        return len(items)

    # ── Internals ────────────────────────────────────────────────

    async def _load(self, item_id: str) -> ActionItem:
        try:
            return await self._store.get_action_item(item_id)
        except NotFoundError as exc:
            raise ActionItemNotFoundError(f"action item {item_id} not found") from exc

    async def _save(self, item: ActionItem) -> ActionItem:
        return await self._store.save_action_item(item, item.version)
