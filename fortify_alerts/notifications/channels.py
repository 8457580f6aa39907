"""Channel adapters — push gateway, SMS gateway, e-mail API and in-app inbox."""

from __future__ import annotations

import abc
import uuid
from typing import TYPE_CHECKING, Any

import aiohttp
import structlog

from fortify_alerts.alerts.registry import format_message
from fortify_alerts.alerts.types import Channel
from fortify_alerts.core.clock import Clock, utcnow
from fortify_alerts.core.config import EmailConfig, PushConfig, SmsConfig
from fortify_alerts.notifications.templates import render_email_html
from fortify_alerts.notifications.types import InAppNotification, NotificationPayload

if TYPE_CHECKING:
    from fortify_alerts.storage.ports import InboxStore

logger = structlog.get_logger(__name__)


class ChannelAdapter(abc.ABC):
    """Base class for notification delivery channels."""

    channel: Channel

    @abc.abstractmethod
    async def send(self, payload: NotificationPayload) -> bool:
        """Deliver one notification. Returns True on success."""

    async def close(self) -> None:
        """Release resources (HTTP sessions, etc.)."""


class _HttpChannel(ChannelAdapter):
    """Shared aiohttp session handling for gateway-backed channels."""

    _ok_statuses: frozenset[int] = frozenset({200})

    def __init__(self, timeout_secs: float = 10.0) -> None:
        self._timeout = aiohttp.ClientTimeout(total=timeout_secs)
        self._session: aiohttp.ClientSession | None = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def _post(self, url: str, event: str, **kwargs: Any) -> bool:
        try:
            session = self._get_session()
            async with session.post(url, **kwargs) as resp:
                if resp.status in self._ok_statuses:
                    return True
                body = await resp.text()
                logger.warning(f"{event}_failed", status=resp.status, body=body[:200])
                return False
        except Exception:
            logger.exception(f"{event}_error")
            return False

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None


class PushGatewayChannel(_HttpChannel):
    """Delivers push notifications through an FCM-style HTTP gateway."""

    channel = Channel.PUSH

    def __init__(self, config: PushConfig, timeout_secs: float = 10.0) -> None:
        super().__init__(timeout_secs)
        self._url = config.gateway_url
        self._server_key = config.server_key.get_secret_value()

    async def send(self, payload: NotificationPayload) -> bool:
        if not payload.recipient_push_token:
            logger.warning("push_missing_token", recipient_id=payload.recipient_id)
            return False

        body = format_message(payload.alert_type, payload.render_context(), Channel.PUSH)
        message = {
            "to": payload.recipient_push_token,
            "notification": {"title": payload.title, "body": body},
            "data": {
                "alert_type": payload.alert_type.value,
                "alert_id": payload.alert_id or "",
                "link": payload.link or "",
            },
        }
        return await self._post(
            self._url,
            "push_send",
            json=message,
            headers={"Authorization": f"key={self._server_key}"},
        )


class SmsGatewayChannel(_HttpChannel):
    """Delivers SMS through a Twilio-style REST gateway."""

    channel = Channel.SMS
    _ok_statuses = frozenset({200, 201})

    def __init__(self, config: SmsConfig, timeout_secs: float = 10.0) -> None:
        super().__init__(timeout_secs)
        self._url = f"{config.api_url.rstrip('/')}/Accounts/{config.account_sid}/Messages.json"
        self._auth = aiohttp.BasicAuth(config.account_sid, config.auth_token.get_secret_value())
        self._from = config.from_number

    async def send(self, payload: NotificationPayload) -> bool:
        if not payload.recipient_phone:
            logger.warning("sms_missing_phone", recipient_id=payload.recipient_id)
            return False

        text = format_message(payload.alert_type, payload.render_context(), Channel.SMS)
        return await self._post(
            self._url,
            "sms_send",
            data={"To": payload.recipient_phone, "From": self._from, "Body": text},
            auth=self._auth,
        )


class EmailChannel(_HttpChannel):
    """Delivers e-mail through a SendGrid-style JSON API (text + HTML parts)."""

    channel = Channel.EMAIL
    _ok_statuses = frozenset({200, 202})

    def __init__(self, config: EmailConfig, timeout_secs: float = 10.0) -> None:
        super().__init__(timeout_secs)
        self._url = config.api_url
        self._api_key = config.api_key.get_secret_value()
        self._from = {"email": config.from_address, "name": config.from_name}

    async def send(self, payload: NotificationPayload) -> bool:
        if not payload.recipient_email:
            logger.warning("email_missing_address", recipient_id=payload.recipient_id)
            return False

        text = format_message(payload.alert_type, payload.render_context(), Channel.EMAIL)
        message = {
            "personalizations": [{"to": [{"email": payload.recipient_email}]}],
            "from": self._from,
            "subject": payload.title,
            "content": [
                {"type": "text/plain", "value": text},
                {"type": "text/html", "value": render_email_html(payload, payload.message)},
            ],
        }
        return await self._post(
            self._url,
            "email_send",
            json=message,
            headers={"Authorization": f"Bearer {self._api_key}"},
        )


class InAppChannel(ChannelAdapter):
    """Persists an in-app notification record instead of calling a transport."""

    channel = Channel.IN_APP

    def __init__(self, store: InboxStore, clock: Clock | None = None) -> None:
        self._store = store
        self._clock = clock or utcnow

    async def send(self, payload: NotificationPayload) -> bool:
        record = InAppNotification(
            id=uuid.uuid4().hex,
            user_id=payload.recipient_id,
            alert_id=payload.alert_id,
            alert_type=payload.alert_type,
            title=payload.title,
            message=format_message(payload.alert_type, payload.render_context(), Channel.IN_APP),
            priority=str(payload.metadata.get("severity", "MEDIUM")),
            link=payload.link,
            metadata=payload.metadata,
            created_at=self._clock(),
        )
        try:
            await self._store.insert_notification(record)
        except Exception:
            logger.exception("in_app_store_error", recipient_id=payload.recipient_id)
            return False
        return True
