"""Convenience factory for wiring the alerting stack."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from fortify_alerts.actions.manager import ActionItemManager
from fortify_alerts.core.clock import Clock, utcnow
from fortify_alerts.core.config import Settings, get_settings
from fortify_alerts.escalation.scheduler import AlertEscalationScheduler, base_url_links
from fortify_alerts.escalation.ticker import EscalationTicker
from fortify_alerts.notifications.channels import (
    ChannelAdapter,
    EmailChannel,
    InAppChannel,
    PushGatewayChannel,
    SmsGatewayChannel,
)
from fortify_alerts.notifications.dispatcher import NotificationDispatcher
from fortify_alerts.notifications.inbox import Inbox
from fortify_alerts.storage.memory import InMemoryStore, StaticRoleDirectory

if TYPE_CHECKING:
    from fortify_alerts.storage.ports import (
        ActionItemStore,
        AlertingStore,
        AlertStore,
        InboxStore,
        RoleDirectory,
    )


@dataclass
class AlertingStack:
    """Everything a host application needs to raise and manage alerts."""

    dispatcher: NotificationDispatcher
    scheduler: AlertEscalationScheduler
    action_items: ActionItemManager
    inbox: Inbox
    ticker: EscalationTicker

    async def close(self) -> None:
        await self.ticker.stop()
        await self.dispatcher.close()


def create_alerting_stack(
    settings: Settings | None = None,
    store: AlertingStore | None = None,
    directory: RoleDirectory | None = None,
    *,
    alert_store: AlertStore | None = None,
    action_store: ActionItemStore | None = None,
    inbox_store: InboxStore | None = None,
    clock: Clock | None = None,
) -> AlertingStack:
    """Build adapters for the enabled channels, then the services on top.

    *store* backs all three persistence ports at once; the keyword-only
    stores override it per port. With neither, an :class:`InMemoryStore`
    is used.
    """
    settings = settings or get_settings()
    clock = clock or utcnow
    shared = store or InMemoryStore()
    alerts = alert_store or shared
    actions = action_store or shared
    notes = inbox_store or shared
    directory = directory or StaticRoleDirectory()

    channels_cfg = settings.channels
    timeout = channels_cfg.send_timeout_secs
    adapters: list[ChannelAdapter] = []

    if channels_cfg.push.enabled:
        adapters.append(PushGatewayChannel(channels_cfg.push, timeout_secs=timeout))

    if channels_cfg.sms.enabled:
        adapters.append(SmsGatewayChannel(channels_cfg.sms, timeout_secs=timeout))

    if channels_cfg.email.enabled:
        adapters.append(EmailChannel(channels_cfg.email, timeout_secs=timeout))

    if channels_cfg.in_app.enabled:
        adapters.append(InAppChannel(notes, clock=clock))

    dispatcher = NotificationDispatcher(adapters=adapters, timeout_secs=timeout)

    scheduler = AlertEscalationScheduler(
        store=alerts,
        directory=directory,
        dispatcher=dispatcher,
        config=settings.escalation,
        clock=clock,
        link_builder=base_url_links(settings.app.base_url),
    )
    action_items = ActionItemManager(
        actions,
        clock=clock,
        default_due_hours=settings.escalation.default_action_due_hours,
    )
    ticker = EscalationTicker(
        scheduler,
        action_items,
        tick_interval_secs=settings.escalation.tick_interval_secs,
        sweep_interval_secs=settings.escalation.overdue_sweep_interval_secs,
        clock=clock,
    )

    return AlertingStack(
        dispatcher=dispatcher,
        scheduler=scheduler,
        action_items=action_items,
        inbox=Inbox(notes, clock=clock),
        ticker=ticker,
    )
