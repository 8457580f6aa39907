"""Alert taxonomy, per-type configuration and message rendering."""

from fortify_alerts.alerts import contexts
from fortify_alerts.alerts.exceptions import (
    AlertError,
    AlertNotFoundError,
    InvalidTransitionError,
    RegistryError,
)
from fortify_alerts.alerts.registry import ALERT_CONFIGS, format_message, get_config, humanize
from fortify_alerts.alerts.types import (
    Alert,
    AlertCategory,
    AlertConfig,
    AlertSeverity,
    AlertStatus,
    AlertType,
    Channel,
    EscalationLevel,
    EscalationRecord,
    TickReport,
)

__all__ = [
    "ALERT_CONFIGS",
    "Alert",
    "AlertCategory",
    "AlertConfig",
    "AlertError",
    "AlertNotFoundError",
    "AlertSeverity",
    "AlertStatus",
    "AlertType",
    "Channel",
    "EscalationLevel",
    "EscalationRecord",
    "InvalidTransitionError",
    "RegistryError",
    "TickReport",
    "contexts",
    "format_message",
    "get_config",
    "humanize",
]
