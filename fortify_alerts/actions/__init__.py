"""Action items — creation, status lifecycle, overdue sweep and queries."""

from fortify_alerts.actions.exceptions import (
    ActionItemError,
    ActionItemNotFoundError,
    InvalidStatusTransitionError,
)
from fortify_alerts.actions.manager import ActionItemManager, severity_priority
from fortify_alerts.actions.types import (
    ActionItem,
    ActionItemData,
    ActionItemPriority,
    ActionItemStatus,
)

__all__ = [
    "ActionItem",
    "ActionItemData",
    "ActionItemError",
    "ActionItemManager",
    "ActionItemNotFoundError",
    "ActionItemPriority",
    "ActionItemStatus",
    "InvalidStatusTransitionError",
    "severity_priority",
]
