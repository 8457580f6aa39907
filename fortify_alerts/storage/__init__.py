"""Persistence ports and in-memory implementations."""

from fortify_alerts.storage.exceptions import ConflictError, NotFoundError, PersistenceError
from fortify_alerts.storage.memory import InMemoryStore, StaticRoleDirectory
from fortify_alerts.storage.ports import (
    ActionItemStore,
    AlertingStore,
    AlertStore,
    InboxStore,
    RoleDirectory,
)

__all__ = [
    "ActionItemStore",
    "AlertingStore",
    "AlertStore",
    "ConflictError",
    "InMemoryStore",
    "InboxStore",
    "NotFoundError",
    "PersistenceError",
    "RoleDirectory",
    "StaticRoleDirectory",
]
