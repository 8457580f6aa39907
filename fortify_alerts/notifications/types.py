"""Domain types for notification delivery."""

from __future__ import annotations

import datetime
from typing import Any

from pydantic import BaseModel, Field

from fortify_alerts.alerts.types import AlertType


class Recipient(BaseModel):
    """A concrete person resolved from a role, with channel contact data."""

    id: str
    name: str = ""
    email: str | None = None
    phone: str | None = None
    push_token: str | None = None
    role: str | None = None
    mill_id: str | None = None


class NotificationPayload(BaseModel):
    """Everything a channel adapter needs to deliver one notification."""

    recipient_id: str
    recipient_email: str | None = None
    recipient_phone: str | None = None
    recipient_push_token: str | None = None
    alert_type: AlertType
    alert_id: str | None = None
    title: str
    message: str
    link: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def for_recipient(
        cls,
        recipient: Recipient,
        *,
        alert_type: AlertType,
        title: str,
        message: str,
        alert_id: str | None = None,
        link: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> NotificationPayload:
        return cls(
            recipient_id=recipient.id,
            recipient_email=recipient.email,
            recipient_phone=recipient.phone,
            recipient_push_token=recipient.push_token,
            alert_type=alert_type,
            alert_id=alert_id,
            title=title,
            message=message,
            link=link,
            metadata=dict(metadata or {}),
        )

    def render_context(self) -> dict[str, Any]:
        """Context dict for ``format_message``; explicit fields win over metadata."""
        ctx: dict[str, Any] = dict(self.metadata)
        ctx["title"] = self.title
        ctx["message"] = self.message
        if self.link:
            ctx["link"] = self.link
        return ctx


class InAppNotification(BaseModel):
    """Record persisted by the in-app channel and read by the inbox."""

    id: str
    user_id: str
    alert_id: str | None = None
    alert_type: AlertType
    title: str
    message: str
    priority: str = "MEDIUM"
    link: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime.datetime
    read_at: datetime.datetime | None = None

    @property
    def is_read(self) -> bool:
        return self.read_at is not None
