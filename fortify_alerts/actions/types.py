"""Domain types for action items."""

from __future__ import annotations

import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class ActionItemPriority(StrEnum):
    """Action item priority."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        """Sort rank — higher is more urgent."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK: dict[ActionItemPriority, int] = {
    ActionItemPriority.LOW: 0,
    ActionItemPriority.MEDIUM: 1,
    ActionItemPriority.HIGH: 2,
    ActionItemPriority.CRITICAL: 3,
}


class ActionItemStatus(StrEnum):
    """Action item lifecycle status."""

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


ACTIVE_STATUSES: frozenset[ActionItemStatus] = frozenset(
    {ActionItemStatus.PENDING, ActionItemStatus.IN_PROGRESS},
)
TERMINAL_STATUSES: frozenset[ActionItemStatus] = frozenset(
    {ActionItemStatus.COMPLETED, ActionItemStatus.CANCELLED},
)


class ActionItemData(BaseModel):
    """Input for creating an action item."""

    title: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=1000)
    priority: ActionItemPriority = ActionItemPriority.MEDIUM
    due_date: datetime.datetime
    assigned_to_id: str
    created_by: str
    mill_id: str | None = None
    related_alert_id: str | None = None
    related_batch_id: str | None = None
    related_equipment_id: str | None = None


class ActionItem(BaseModel):
    """A trackable task, optionally derived from an alert."""

    id: str
    title: str
    description: str = ""
    priority: ActionItemPriority
    status: ActionItemStatus = ActionItemStatus.PENDING
    due_date: datetime.datetime
    assigned_to_id: str
    mill_id: str | None = None
    is_overdue: bool = False
    related_alert_id: str | None = None
    related_batch_id: str | None = None
    related_equipment_id: str | None = None
    created_by: str
    created_at: datetime.datetime
    updated_at: datetime.datetime
    completed_at: datetime.datetime | None = None
    completed_by: str | None = None
    version: int = 0

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def sort_key(self) -> tuple[bool, int, datetime.datetime]:
        """Overdue first, then priority high→low, then earliest due date."""
        return (not self.is_overdue, -self.priority.rank, self.due_date)
