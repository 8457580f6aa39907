"""Multi-channel notification dispatcher — concurrent fan-out with per-channel isolation."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable

import structlog

from fortify_alerts.alerts.types import Channel
from fortify_alerts.notifications.channels import ChannelAdapter
from fortify_alerts.notifications.types import NotificationPayload

logger = structlog.get_logger(__name__)


class NotificationDispatcher:
    """Routes a payload to one adapter per channel.

    - ``send`` never raises: adapter errors, timeouts and unconfigured
      channels all come back as ``False``.
    - ``send_multi`` fans out to every channel concurrently and joins them
      all before returning; one slow or failing channel never cancels the
      others.
    - Every adapter call is bounded by *timeout_secs*.
    """

    def __init__(
        self,
        adapters: Iterable[ChannelAdapter] = (),
        timeout_secs: float = 10.0,
    ) -> None:
        self._adapters: dict[Channel, ChannelAdapter] = {}
        for adapter in adapters:
            self.register(adapter)
        self._timeout_secs = timeout_secs

    @property
    def channels(self) -> frozenset[Channel]:
        """Channels that have an adapter registered."""
        return frozenset(self._adapters)

    def register(self, adapter: ChannelAdapter) -> None:
        """Install (or replace) the adapter for ``adapter.channel``."""
        self._adapters[adapter.channel] = adapter

    async def send(self, channel: Channel, payload: NotificationPayload) -> bool:
        adapter = self._adapters.get(channel)
        if adapter is None:
            logger.warning(
                "channel_not_configured",
                channel=channel.value,
                recipient_id=payload.recipient_id,
            )
            return False

        try:
            delivered = await asyncio.wait_for(adapter.send(payload), self._timeout_secs)
        except TimeoutError:
            logger.warning(
                "channel_send_timeout",
                channel=channel.value,
                recipient_id=payload.recipient_id,
                timeout_secs=self._timeout_secs,
            )
            return False
        except Exception:
            logger.exception(
                "channel_send_error",
                channel=channel.value,
                recipient_id=payload.recipient_id,
                alert_type=payload.alert_type.value,
            )
            return False

        if not delivered:
            logger.info(
                "channel_send_failed",
                channel=channel.value,
                recipient_id=payload.recipient_id,
            )
        return bool(delivered)

    async def send_multi(
        self,
        channels: Iterable[Channel],
        payload: NotificationPayload,
    ) -> dict[Channel, bool]:
        targets = list(dict.fromkeys(channels))
        results = await asyncio.gather(*(self.send(ch, payload) for ch in targets))
        return dict(zip(targets, results))

    # ── Lifecycle ───────────────────────────────────────────────

    async def close(self) -> None:
        for adapter in self._adapters.values():
            try:
                await adapter.close()
            except Exception:
                logger.exception("channel_close_error", channel=adapter.channel.value)
