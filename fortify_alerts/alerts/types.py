"""Domain types for alerts — taxonomy, escalation ladder, alert records."""

from __future__ import annotations

import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class AlertSeverity(StrEnum):
    """Alert severity."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class AlertCategory(StrEnum):
    """Functional area an alert belongs to."""

    QUALITY_SAFETY = "QUALITY_SAFETY"
    COMPLIANCE = "COMPLIANCE"
    MAINTENANCE = "MAINTENANCE"
    PRODUCTION = "PRODUCTION"
    PROCUREMENT = "PROCUREMENT"
    TRAINING = "TRAINING"


class AlertType(StrEnum):
    """Closed set of alert types raised by the mill dashboard."""

    # Quality & safety
    QC_FAILURE = "QC_FAILURE"
    CONTAMINATION_RISK = "CONTAMINATION_RISK"
    PREMIX_EXPIRY = "PREMIX_EXPIRY"

    # Compliance
    CRITICAL_NON_COMPLIANCE = "CRITICAL_NON_COMPLIANCE"
    COMPLIANCE_SCORE_DROP = "COMPLIANCE_SCORE_DROP"
    CERTIFICATION_EXPIRY = "CERTIFICATION_EXPIRY"

    # Maintenance
    CALIBRATION_DUE = "CALIBRATION_DUE"
    CALIBRATION_OVERDUE = "CALIBRATION_OVERDUE"
    EQUIPMENT_DRIFT = "EQUIPMENT_DRIFT"

    # Production
    PREMIX_USAGE_ANOMALY = "PREMIX_USAGE_ANOMALY"
    LOW_PREMIX_INVENTORY = "LOW_PREMIX_INVENTORY"
    PRODUCTION_TARGET_MISS = "PRODUCTION_TARGET_MISS"

    # Procurement
    NEW_RFP_MATCH = "NEW_RFP_MATCH"
    BID_DEADLINE_APPROACHING = "BID_DEADLINE_APPROACHING"
    DELIVERY_DELAY = "DELIVERY_DELAY"
    DELIVERY_ISSUE = "DELIVERY_ISSUE"

    # Training
    TRAINING_OVERDUE = "TRAINING_OVERDUE"
    NEW_TRAINING_AVAILABLE = "NEW_TRAINING_AVAILABLE"


class Channel(StrEnum):
    """Notification delivery medium."""

    PUSH = "PUSH"
    SMS = "SMS"
    EMAIL = "EMAIL"
    IN_APP = "IN_APP"


class AlertStatus(StrEnum):
    """Alert lifecycle status."""

    PENDING = "PENDING"
    ACKNOWLEDGED = "ACKNOWLEDGED"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    ESCALATED = "ESCALATED"


# Statuses the escalation tick still considers.
OPEN_STATUSES: frozenset[AlertStatus] = frozenset(
    {AlertStatus.PENDING, AlertStatus.ESCALATED},
)


# ── Configuration ────────────────────────────────────────────────


class EscalationLevel(BaseModel):
    """One rung of an alert's response ladder."""

    model_config = ConfigDict(frozen=True)

    level: int = Field(ge=1)
    roles: frozenset[str]
    timeout_minutes: int = Field(gt=0)
    requires_acknowledgment: bool

    @field_validator("roles")
    @classmethod
    def _roles_not_empty(cls, v: frozenset[str]) -> frozenset[str]:
        if not v:
            raise ValueError("escalation level needs at least one role")
        return v

    @property
    def timeout(self) -> datetime.timedelta:
        return datetime.timedelta(minutes=self.timeout_minutes)


class AlertConfig(BaseModel):
    """Severity, channels and escalation ladder for one alert type."""

    model_config = ConfigDict(frozen=True)

    type: AlertType
    severity: AlertSeverity
    category: AlertCategory
    channels: tuple[Channel, ...]
    escalation_levels: tuple[EscalationLevel, ...]
    action_required: str
    response_time_hours: int | None = None

    @field_validator("channels")
    @classmethod
    def _channels_ordered_set(cls, v: tuple[Channel, ...]) -> tuple[Channel, ...]:
        if not v:
            raise ValueError("at least one channel is required")
        if len(set(v)) != len(v):
            raise ValueError("channels must not repeat")
        return v

    @model_validator(mode="after")
    def _levels_contiguous(self) -> AlertConfig:
        levels = [lvl.level for lvl in self.escalation_levels]
        if levels != list(range(1, len(levels) + 1)):
            raise ValueError(
                f"{self.type}: escalation levels must be 1..N contiguous, got {levels}",
            )
        return self

    @property
    def max_level(self) -> int:
        return len(self.escalation_levels)

    def level(self, number: int) -> EscalationLevel:
        """Return the 1-based escalation level."""
        return self.escalation_levels[number - 1]


# ── Alert records ────────────────────────────────────────────────


class EscalationRecord(BaseModel):
    """Audit entry appended each time a level is notified."""

    level: int
    notified_at: datetime.datetime
    roles: list[str]
    recipients: int = 0
    deliveries: dict[str, dict[Channel, bool]] = Field(default_factory=dict)


class Alert(BaseModel):
    """A raised alert and its escalation state."""

    id: str
    type: AlertType
    severity: AlertSeverity
    category: AlertCategory
    status: AlertStatus = AlertStatus.PENDING
    current_level: int = 1
    created_at: datetime.datetime
    last_level_notified_at: datetime.datetime
    acknowledged_at: datetime.datetime | None = None
    acknowledged_by: str | None = None
    started_by: str | None = None
    resolved_at: datetime.datetime | None = None
    resolved_by: str | None = None
    resolution_notes: str | None = None
    context: dict[str, Any] = Field(default_factory=dict)
    escalation_history: list[EscalationRecord] = Field(default_factory=list)
    version: int = 0

    @property
    def is_open(self) -> bool:
        """Whether the escalation tick still considers this alert."""
        return self.status in OPEN_STATUSES

    @property
    def mill_id(self) -> str | None:
        mill = self.context.get("mill_id")
        return str(mill) if mill is not None else None


class TickReport(BaseModel):
    """Outcome of one scheduler tick, for observability."""

    now: datetime.datetime
    evaluated: int = 0
    escalated: list[str] = Field(default_factory=list)
    superseded: list[str] = Field(default_factory=list)
    errors: dict[str, str] = Field(default_factory=dict)
