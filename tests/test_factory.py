"""Tests for the alerting factory — wiring logic with various config combinations."""

from __future__ import annotations

import datetime

from pydantic import SecretStr

from fortify_alerts.alerts.types import AlertType, Channel
from fortify_alerts.core.config import (
    ChannelsConfig,
    EmailConfig,
    EscalationConfig,
    InAppConfig,
    PushConfig,
    Settings,
    SmsConfig,
)
from fortify_alerts.escalation.scheduler import AlertEscalationScheduler
from fortify_alerts.escalation.ticker import EscalationTicker
from fortify_alerts.factory import AlertingStack, create_alerting_stack
from fortify_alerts.notifications.channels import (
    EmailChannel,
    InAppChannel,
    PushGatewayChannel,
    SmsGatewayChannel,
)
from fortify_alerts.notifications.types import Recipient
from fortify_alerts.storage.memory import InMemoryStore, StaticRoleDirectory
from fortify_alerts.storage.ports import AlertingStore

T0 = datetime.datetime(2026, 3, 2, 8, 0, tzinfo=datetime.UTC)


# ── Helpers ─────────────────────────────────────────────────────


def _settings(**kw: object) -> Settings:
    defaults: dict[str, object] = {}
    defaults.update(kw)
    return Settings(**defaults)  # type: ignore[arg-type]


def _adapter_types(stack: AlertingStack) -> set[type]:
    return {type(a) for a in stack.dispatcher._adapters.values()}


# ── Config Combinations ────────────────────────────────────────


class TestFactoryWiring:
    def test_defaults_in_app_only(self) -> None:
        stack = create_alerting_stack(_settings())
        assert isinstance(stack.scheduler, AlertEscalationScheduler)
        assert isinstance(stack.ticker, EscalationTicker)
        assert stack.dispatcher.channels == frozenset({Channel.IN_APP})
        assert _adapter_types(stack) == {InAppChannel}

    def test_all_channels_enabled(self) -> None:
        settings = _settings(
            channels=ChannelsConfig(
                push=PushConfig(enabled=True, server_key=SecretStr("k")),
                sms=SmsConfig(enabled=True, account_sid="AC1", auth_token=SecretStr("t")),
                email=EmailConfig(enabled=True, api_key=SecretStr("e")),
            ),
        )
        stack = create_alerting_stack(settings)
        assert _adapter_types(stack) == {
            PushGatewayChannel,
            SmsGatewayChannel,
            EmailChannel,
            InAppChannel,
        }

    def test_everything_disabled(self) -> None:
        settings = _settings(channels=ChannelsConfig(in_app=InAppConfig(enabled=False)))
        stack = create_alerting_stack(settings)
        assert stack.dispatcher.channels == frozenset()

    def test_escalation_settings_propagate(self) -> None:
        settings = _settings(
            escalation=EscalationConfig(
                tick_interval_secs=5, overdue_sweep_interval_secs=30, default_action_due_hours=8,
            ),
        )
        stack = create_alerting_stack(settings)
        assert stack.ticker._tick_interval == 5
        assert stack.ticker._sweep_interval == datetime.timedelta(seconds=30)
        assert stack.action_items._default_due_hours == 8
        assert stack.scheduler._config.tick_interval_secs == 5

    def test_shared_store_backs_every_port(self) -> None:
        store = InMemoryStore()
        assert isinstance(store, AlertingStore)
        stack = create_alerting_stack(_settings(), store=store)
        assert stack.scheduler._store is store
        assert stack.action_items._store is store
        assert stack.inbox._store is store


class TestFactoryEndToEnd:
    async def test_alert_lands_in_inbox(self) -> None:
        store = InMemoryStore()
        directory = StaticRoleDirectory([
            Recipient(id="mgr1", role="MILL_MANAGER", mill_id="m1"),
        ])
        stack = create_alerting_stack(
            _settings(), store=store, directory=directory, clock=lambda: T0,
        )

        alert_id = await stack.scheduler.raise_alert(
            AlertType.NEW_RFP_MATCH, {"mill_id": "m1", "link": "/rfps/9"},
        )
        [note] = await stack.inbox.list_for_user("mgr1")
        assert note.alert_id == alert_id
        assert note.link == "http://localhost:3000/rfps/9"
        assert await stack.inbox.unread_count("mgr1") == 1

        await stack.close()

    async def test_action_item_from_alert_shares_store(self) -> None:
        store = InMemoryStore()
        stack = create_alerting_stack(_settings(), store=store, clock=lambda: T0)
        alert_id = await stack.scheduler.raise_alert(AlertType.QC_FAILURE, {"mill_id": "m1"})
        alert = await stack.scheduler.get_alert(alert_id)

        item = await stack.action_items.create_from_alert(alert, "mgr1", "insp1")
        assert (await store.get_action_item(item.id)).related_alert_id == alert_id
        await stack.close()
