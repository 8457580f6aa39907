"""Multi-channel notification delivery and the in-app inbox."""

from fortify_alerts.notifications.channels import (
    ChannelAdapter,
    EmailChannel,
    InAppChannel,
    PushGatewayChannel,
    SmsGatewayChannel,
)
from fortify_alerts.notifications.dispatcher import NotificationDispatcher
from fortify_alerts.notifications.inbox import Inbox
from fortify_alerts.notifications.templates import render_email_html
from fortify_alerts.notifications.types import InAppNotification, NotificationPayload, Recipient

__all__ = [
    "ChannelAdapter",
    "EmailChannel",
    "InAppChannel",
    "InAppNotification",
    "Inbox",
    "NotificationDispatcher",
    "NotificationPayload",
    "PushGatewayChannel",
    "Recipient",
    "SmsGatewayChannel",
    "render_email_html",
]
