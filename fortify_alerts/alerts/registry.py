"""Alert configuration registry and channel-specific message rendering.

``ALERT_CONFIGS`` is the single source of severity, channels and escalation
ladder for every :class:`AlertType`. The table is checked for completeness
when this module is imported, so a missing entry breaks the import (and the
test suite) instead of surfacing as a failed lookup in production.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from fortify_alerts.alerts.exceptions import RegistryError
from fortify_alerts.alerts.types import (
    AlertCategory,
    AlertConfig,
    AlertSeverity,
    AlertType,
    Channel,
    EscalationLevel,
)

SMS_MAX_LENGTH = 160

_PUSH, _SMS, _EMAIL = Channel.PUSH, Channel.SMS, Channel.EMAIL


def _lvl(level: int, roles: tuple[str, ...], minutes: int, ack: bool) -> EscalationLevel:
    return EscalationLevel(
        level=level,
        roles=frozenset(roles),
        timeout_minutes=minutes,
        requires_acknowledgment=ack,
    )


def _cfg(
    alert_type: AlertType,
    severity: AlertSeverity,
    category: AlertCategory,
    channels: tuple[Channel, ...],
    levels: tuple[EscalationLevel, ...],
    action_required: str,
    response_time_hours: int | None = None,
) -> AlertConfig:
    return AlertConfig(
        type=alert_type,
        severity=severity,
        category=category,
        channels=channels,
        escalation_levels=levels,
        action_required=action_required,
        response_time_hours=response_time_hours,
    )


_S, _C = AlertSeverity, AlertCategory

_CONFIGS: tuple[AlertConfig, ...] = (
    # ── Quality & safety ─────────────────────────────────────────
    _cfg(
        AlertType.QC_FAILURE, _S.CRITICAL, _C.QUALITY_SAFETY, (_PUSH, _SMS, _EMAIL),
        (
            _lvl(1, ("MILL_OPERATOR",), 30, True),
            _lvl(2, ("MILL_MANAGER",), 120, True),
            _lvl(3, ("FWGA_INSPECTOR",), 1440, True),
        ),
        "Root cause analysis and corrective action within 24 hours", 24,
    ),
    _cfg(
        AlertType.CONTAMINATION_RISK, _S.CRITICAL, _C.QUALITY_SAFETY, (_PUSH, _SMS, _EMAIL),
        (
            _lvl(1, ("MILL_MANAGER",), 15, True),
            _lvl(2, ("FWGA_INSPECTOR",), 60, True),
        ),
        "Immediate batch quarantine and investigation", 1,
    ),
    _cfg(
        AlertType.PREMIX_EXPIRY, _S.CRITICAL, _C.QUALITY_SAFETY, (_PUSH, _EMAIL),
        (_lvl(1, ("MILL_MANAGER",), 240, True),),
        "Stop using expired premix and source replacement", 4,
    ),
    # ── Compliance ───────────────────────────────────────────────
    _cfg(
        AlertType.CRITICAL_NON_COMPLIANCE, _S.HIGH, _C.COMPLIANCE, (_PUSH, _EMAIL),
        (
            _lvl(1, ("MILL_MANAGER",), 480, True),
            _lvl(2, ("FWGA_INSPECTOR",), 10080, True),
        ),
        "Corrective action plan within 7 days", 168,
    ),
    _cfg(
        AlertType.COMPLIANCE_SCORE_DROP, _S.HIGH, _C.COMPLIANCE, (_EMAIL,),
        (
            _lvl(1, ("MILL_MANAGER",), 1440, False),
            _lvl(2, ("FWGA_PROGRAM_MANAGER",), 10080, False),
        ),
        "Review and investigation", 168,
    ),
    _cfg(
        AlertType.CERTIFICATION_EXPIRY, _S.HIGH, _C.COMPLIANCE, (_EMAIL,),
        (_lvl(1, ("MILL_MANAGER",), 20160, False),),
        "Schedule renewal audit", 720,
    ),
    # ── Maintenance ──────────────────────────────────────────────
    _cfg(
        AlertType.CALIBRATION_DUE, _S.MEDIUM, _C.MAINTENANCE, (_PUSH, _EMAIL),
        (
            _lvl(1, ("MILL_TECHNICIAN",), 2880, False),
            _lvl(2, ("MILL_MANAGER",), 10080, False),
        ),
        "Schedule calibration", 336,
    ),
    _cfg(
        AlertType.CALIBRATION_OVERDUE, _S.HIGH, _C.MAINTENANCE, (_PUSH, _SMS, _EMAIL),
        (
            _lvl(1, ("MILL_MANAGER",), 60, True),
            _lvl(2, ("FWGA_INSPECTOR",), 480, True),
        ),
        "Immediate calibration, production hold if critical equipment", 8,
    ),
    _cfg(
        AlertType.EQUIPMENT_DRIFT, _S.MEDIUM, _C.MAINTENANCE, (_PUSH, _SMS),
        (
            _lvl(1, ("MILL_OPERATOR",), 60, True),
            _lvl(2, ("MILL_MANAGER",), 240, True),
        ),
        "Investigate and recalibrate", 4,
    ),
    # ── Production ───────────────────────────────────────────────
    _cfg(
        AlertType.PREMIX_USAGE_ANOMALY, _S.MEDIUM, _C.PRODUCTION, (_PUSH, _EMAIL),
        (
            _lvl(1, ("MILL_OPERATOR",), 120, False),
            _lvl(2, ("MILL_MANAGER",), 480, False),
        ),
        "Verify measurements and check equipment", 8,
    ),
    _cfg(
        AlertType.LOW_PREMIX_INVENTORY, _S.MEDIUM, _C.PRODUCTION, (_EMAIL,),
        (_lvl(1, ("MILL_MANAGER",), 1440, False),),
        "Place order for premix", 48,
    ),
    _cfg(
        AlertType.PRODUCTION_TARGET_MISS, _S.MEDIUM, _C.PRODUCTION, (_EMAIL,),
        (_lvl(1, ("MILL_MANAGER",), 1440, False),),
        "Review reasons and adjust plan", 24,
    ),
    # ── Procurement ──────────────────────────────────────────────
    _cfg(
        AlertType.NEW_RFP_MATCH, _S.MEDIUM, _C.PROCUREMENT, (_PUSH, _EMAIL),
        (_lvl(1, ("MILL_MANAGER",), 2880, False),),
        "Review and consider bidding", 72,
    ),
    _cfg(
        AlertType.BID_DEADLINE_APPROACHING, _S.MEDIUM, _C.PROCUREMENT, (_PUSH, _EMAIL),
        (_lvl(1, ("MILL_MANAGER",), 120, False),),
        "Submit bid or skip", 24,
    ),
    _cfg(
        AlertType.DELIVERY_DELAY, _S.MEDIUM, _C.PROCUREMENT, (_SMS, _PUSH),
        (_lvl(1, ("MILL_MANAGER", "INSTITUTIONAL_BUYER"), 60, False),),
        "Communication and contingency planning", 2,
    ),
    _cfg(
        AlertType.DELIVERY_ISSUE, _S.MEDIUM, _C.PROCUREMENT, (_PUSH, _EMAIL),
        (_lvl(1, ("MILL_MANAGER",), 240, True),),
        "Investigate and resolve", 24,
    ),
    # ── Training ─────────────────────────────────────────────────
    _cfg(
        AlertType.TRAINING_OVERDUE, _S.LOW, _C.TRAINING, (_EMAIL,),
        (
            _lvl(1, ("MILL_OPERATOR", "MILL_TECHNICIAN"), 10080, False),
            _lvl(2, ("MILL_MANAGER",), 20160, False),
        ),
        "Complete training", 336,
    ),
    # Informational: a single notify-only rung for the trainees themselves.
    _cfg(
        AlertType.NEW_TRAINING_AVAILABLE, _S.LOW, _C.TRAINING, (_PUSH,),
        (_lvl(1, ("MILL_OPERATOR", "MILL_TECHNICIAN"), 10080, False),),
        "Review and enroll if interested",
    ),
)


def _build_table(configs: tuple[AlertConfig, ...]) -> Mapping[AlertType, AlertConfig]:
    table: dict[AlertType, AlertConfig] = {}
    for cfg in configs:
        if cfg.type in table:
            raise RegistryError(f"duplicate alert config for {cfg.type}")
        table[cfg.type] = cfg
    missing = [t.value for t in AlertType if t not in table]
    if missing:
        raise RegistryError(f"alert types without config: {', '.join(missing)}")
    return MappingProxyType(table)


ALERT_CONFIGS: Mapping[AlertType, AlertConfig] = _build_table(_CONFIGS)


def get_config(alert_type: AlertType) -> AlertConfig:
    """Return the configuration for *alert_type*."""
    return ALERT_CONFIGS[alert_type]


def humanize(alert_type: AlertType) -> str:
    """``QC_FAILURE`` -> ``QC FAILURE``."""
    return alert_type.value.replace("_", " ")


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 3].rstrip() + "..."


def format_message(
    alert_type: AlertType,
    context: Mapping[str, Any],
    channel: Channel,
) -> str:
    """Render the notification text for one channel.

    SMS is a one-liner capped at 160 characters, PUSH carries only the
    severity and a short title, EMAIL and IN_APP get the full message plus
    the required action and any deadline found in *context*.
    """
    config = get_config(alert_type)
    label = humanize(alert_type)

    if channel == Channel.SMS:
        summary = " ".join(str(context.get("summary") or "Action required").split())
        link = context.get("link") or "app"
        prefix = f"{config.severity.value}: {label} - "
        suffix = f". View: {link}"
        room = SMS_MAX_LENGTH - len(prefix) - len(suffix)
        if room > len("..."):
            return f"{prefix}{_truncate(summary, room)}{suffix}"
        # Link alone overflows the SMS; nothing left to preserve.
        return _truncate(f"{prefix}{summary}{suffix}", SMS_MAX_LENGTH)

    if channel == Channel.PUSH:
        title = context.get("title") or label
        return f"{config.severity.value} Alert: {title}"

    body = context.get("message") or context.get("summary") or label
    lines = [str(body), "", f"Action required: {config.action_required}"]
    deadline = context.get("deadline")
    if deadline:
        lines.append(f"Deadline: {deadline}")
    return "\n".join(lines)
