"""Action-item exceptions."""

from __future__ import annotations


class ActionItemError(Exception):
    """Base exception for action-item errors."""


class ActionItemNotFoundError(ActionItemError):
    """No action item exists with the requested id."""


class InvalidStatusTransitionError(ActionItemError):
    """The item is archived and its status can no longer change."""
