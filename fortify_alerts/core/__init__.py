"""Core module — config, logging, clock."""

from fortify_alerts.core.clock import Clock, utcnow
from fortify_alerts.core.config import Settings, get_settings, load_settings, reset_settings
from fortify_alerts.core.logging import AUDIT_LOGGER_NAME, setup_logging

__all__ = [
    "AUDIT_LOGGER_NAME",
    "Clock",
    "Settings",
    "get_settings",
    "load_settings",
    "reset_settings",
    "setup_logging",
    "utcnow",
]
