"""Alert lifecycle exceptions."""

from __future__ import annotations


class AlertError(Exception):
    """Base exception for alert lifecycle errors."""


class RegistryError(AlertError):
    """The alert configuration table is incomplete or inconsistent."""


class AlertNotFoundError(AlertError):
    """No alert exists with the requested id."""


class InvalidTransitionError(AlertError):
    """The requested status change is not allowed from the current status."""
