"""Persistence-port exceptions."""

from __future__ import annotations


class PersistenceError(Exception):
    """Base exception for persistence failures."""


class NotFoundError(PersistenceError):
    """The requested record does not exist."""


class ConflictError(PersistenceError):
    """A conditional write lost against a concurrent update."""
