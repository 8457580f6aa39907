"""AlertEscalationScheduler — alert lifecycle and timeout-driven escalation.

State lives entirely in the :class:`AlertStore`; the scheduler holds none
between calls, so a restart loses no escalation progress. Every write is a
compare-and-set on ``Alert.version``:

- ``acknowledge`` / ``begin_work`` / ``resolve`` re-read and re-apply on a
  conflict, so a human action always lands.
- ``tick`` re-reads each alert before paging the next level, dispatches,
  then re-reads again and writes only if nothing changed in between; an
  acknowledgment that got persisted first wins and the escalation is
  dropped as *superseded*.
"""

from __future__ import annotations

import asyncio
import datetime
import uuid
from collections.abc import Callable
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import structlog

from fortify_alerts.alerts.exceptions import AlertNotFoundError, InvalidTransitionError
from fortify_alerts.alerts.registry import get_config, humanize
from fortify_alerts.alerts.types import (
    OPEN_STATUSES,
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
from fortify_alerts.core.clock import Clock, utcnow
from fortify_alerts.core.config import EscalationConfig
from fortify_alerts.core.logging import AUDIT_LOGGER_NAME
from fortify_alerts.notifications.dispatcher import NotificationDispatcher
from fortify_alerts.notifications.types import NotificationPayload, Recipient
from fortify_alerts.storage.exceptions import ConflictError, NotFoundError

if TYPE_CHECKING:
    from fortify_alerts.storage.ports import AlertStore, RoleDirectory

logger = structlog.get_logger(__name__)
audit_logger = structlog.get_logger(AUDIT_LOGGER_NAME)

Deliveries = dict[str, dict[Channel, bool]]
LinkBuilder = Callable[[str], str]


def base_url_links(base_url: str) -> LinkBuilder:
    """Link builder that prefixes app-relative paths with *base_url*."""
    root = base_url.rstrip("/")

    def build(link: str) -> str:
        if root and link.startswith("/"):
            return f"{root}{link}"
        return link

    return build


class _Outcome(StrEnum):
    NOT_DUE = "NOT_DUE"
    AT_CEILING = "AT_CEILING"
    ESCALATED = "ESCALATED"
    SUPERSEDED = "SUPERSEDED"


class AlertEscalationScheduler:
    """Owns alert state transitions and the periodic escalation step.

    Usage::

        scheduler = AlertEscalationScheduler(store, directory, dispatcher)
        alert_id = await scheduler.raise_alert(AlertType.QC_FAILURE, ctx)
        await scheduler.tick()            # from a cron / EscalationTicker
        await scheduler.acknowledge(alert_id, user_id)
    """

    def __init__(
        self,
        store: AlertStore,
        directory: RoleDirectory,
        dispatcher: NotificationDispatcher,
        config: EscalationConfig | None = None,
        clock: Clock | None = None,
        link_builder: LinkBuilder | None = None,
    ) -> None:
        self._store = store
        self._directory = directory
        self._dispatcher = dispatcher
        self._config = config or EscalationConfig()
        self._clock = clock or utcnow
        self._link_builder = link_builder or (lambda link: link)

    # ── Raising ──────────────────────────────────────────────────

    async def raise_alert(
        self,
        alert_type: AlertType,
        context: dict[str, Any] | None = None,
        now: datetime.datetime | None = None,
    ) -> str:
        """Persist a new alert at level 1 and notify the level-1 roles.

        Persistence errors propagate; notification failures never do.
        """
        now = now or self._clock()
        config = get_config(alert_type)
        first = config.level(1)
        alert = Alert(
            id=uuid.uuid4().hex,
            type=alert_type,
            severity=config.severity,
            category=config.category,
            status=AlertStatus.PENDING,
            current_level=1,
            created_at=now,
            last_level_notified_at=now,
            context=dict(context or {}),
            escalation_history=[
                EscalationRecord(level=1, notified_at=now, roles=sorted(first.roles)),
            ],
        )
        stored = await self._store.insert_alert(alert)
        audit_logger.info(
            "alert_raised",
            alert_id=stored.id,
            alert_type=alert_type.value,
            severity=config.severity.value,
            mill_id=stored.mill_id,
        )

        recipients, deliveries = await self._notify(stored, config, first)
        await self._record_first_deliveries(stored, recipients, deliveries)
        return stored.id

    async def _record_first_deliveries(
        self, alert: Alert, recipients: int, deliveries: Deliveries,
    ) -> None:
        alert.escalation_history[0].recipients = recipients
        alert.escalation_history[0].deliveries = deliveries
        try:
            await self._store.save_alert(alert, alert.version)
        except ConflictError:
            # Already acknowledged or escalated; the delivery log is informational.
            logger.info("delivery_record_skipped", alert_id=alert.id)
        except Exception:
            logger.exception("delivery_record_failed", alert_id=alert.id)

    # ── Human transitions ────────────────────────────────────────

    async def acknowledge(
        self, alert_id: str, user_id: str, now: datetime.datetime | None = None,
    ) -> Alert:
        """PENDING / ESCALATED -> ACKNOWLEDGED. Repeating it is a no-op."""
        at = now or self._clock()

        def apply(alert: Alert) -> bool:
            if alert.status == AlertStatus.ACKNOWLEDGED:
                return False
            if alert.status not in OPEN_STATUSES:
                raise InvalidTransitionError(
                    f"cannot acknowledge alert {alert.id} in status {alert.status.value}",
                )
            alert.status = AlertStatus.ACKNOWLEDGED
            alert.acknowledged_at = at
            alert.acknowledged_by = user_id
            return True

        return await self._transition(alert_id, user_id, "alert_acknowledged", apply)

    async def begin_work(
        self, alert_id: str, user_id: str, now: datetime.datetime | None = None,
    ) -> Alert:
        """Any non-terminal status -> IN_PROGRESS (implies acknowledgment)."""
        at = now or self._clock()

        def apply(alert: Alert) -> bool:
            if alert.status == AlertStatus.IN_PROGRESS:
                return False
            if alert.status == AlertStatus.RESOLVED:
                raise InvalidTransitionError(f"alert {alert.id} is already resolved")
            if alert.acknowledged_at is None:
                alert.acknowledged_at = at
                alert.acknowledged_by = user_id
            alert.status = AlertStatus.IN_PROGRESS
            alert.started_by = user_id
            return True

        return await self._transition(alert_id, user_id, "alert_work_started", apply)

    async def resolve(
        self,
        alert_id: str,
        user_id: str,
        notes: str | None = None,
        now: datetime.datetime | None = None,
    ) -> Alert:
        """Any non-terminal status -> RESOLVED. Repeating it is a no-op."""
        at = now or self._clock()

        def apply(alert: Alert) -> bool:
            if alert.status == AlertStatus.RESOLVED:
                return False
            alert.status = AlertStatus.RESOLVED
            alert.resolved_at = at
            alert.resolved_by = user_id
            if notes:
                alert.resolution_notes = notes
            return True

        return await self._transition(alert_id, user_id, "alert_resolved", apply)

    async def _transition(
        self,
        alert_id: str,
        user_id: str,
        event: str,
        apply: Callable[[Alert], bool],
    ) -> Alert:
        for attempt in range(1, self._config.cas_retries + 1):
            alert = await self._load(alert_id)
            previous = alert.status
            if not apply(alert):
                return alert
            try:
                stored = await self._store.save_alert(alert, alert.version)
            except ConflictError:
                logger.info("alert_write_conflict", alert_id=alert_id, attempt=attempt)
                continue
            audit_logger.info(
                event,
                alert_id=alert_id,
                user_id=user_id,
                from_status=previous.value,
                to_status=stored.status.value,
                level=stored.current_level,
            )
            return stored
        raise ConflictError(
            f"alert {alert_id} kept changing; gave up after {self._config.cas_retries} attempts",
        )

    # ── Tick ─────────────────────────────────────────────────────

    async def tick(self, now: datetime.datetime | None = None) -> TickReport:
        """Escalate every open alert whose current level has timed out.

        Alerts are taken in ``created_at`` order and evaluated independently
        (up to ``max_concurrent_alerts`` at once); a failure on one alert is
        recorded in the report and never stops the others.
        """
        now = now or self._clock()
        report = TickReport(now=now)

        open_alerts = await self._store.list_alerts(statuses=set(OPEN_STATUSES))
        open_alerts.sort(key=lambda a: (a.created_at, a.id))
        report.evaluated = len(open_alerts)

        limiter = asyncio.Semaphore(self._config.max_concurrent_alerts)
        results = await asyncio.gather(
            *(self._evaluate(alert, now, limiter) for alert in open_alerts),
        )

        for alert, (outcome, error) in zip(open_alerts, results):
            if error is not None:
                report.errors[alert.id] = error
            elif outcome == _Outcome.ESCALATED:
                report.escalated.append(alert.id)
            elif outcome == _Outcome.SUPERSEDED:
                report.superseded.append(alert.id)

        if report.escalated or report.errors:
            logger.info(
                "escalation_tick",
                now=now.isoformat(),
                evaluated=report.evaluated,
                escalated=len(report.escalated),
                superseded=len(report.superseded),
                errors=len(report.errors),
            )
        return report

    async def _evaluate(
        self, alert: Alert, now: datetime.datetime, limiter: asyncio.Semaphore,
    ) -> tuple[_Outcome | None, str | None]:
        async with limiter:
            try:
                return await self._escalate_if_due(alert, now), None
            except Exception as exc:
                logger.exception("escalation_failed", alert_id=alert.id)
                return None, f"{type(exc).__name__}: {exc}"

    async def _escalate_if_due(self, snapshot: Alert, now: datetime.datetime) -> _Outcome:
        # The tick's listing may be stale by the time this alert gets a slot.
        alert = await self._store.get_alert(snapshot.id)
        if alert.version != snapshot.version or not alert.is_open:
            logger.info(
                "escalation_superseded",
                alert_id=alert.id,
                status=alert.status.value,
                reason="changed_before_notify",
            )
            return _Outcome.SUPERSEDED

        config = get_config(alert.type)
        if alert.current_level >= config.max_level:
            return _Outcome.AT_CEILING

        # Only unacknowledged (open) alerts get here, so a level that requires
        # acknowledgment and one that does not both escalate on timeout.
        level = config.level(alert.current_level)
        if now - alert.last_level_notified_at < level.timeout:
            return _Outcome.NOT_DUE

        target = config.level(alert.current_level + 1)
        recipients, deliveries = await self._notify(alert, config, target)

        current = await self._store.get_alert(alert.id)
        if current.version != alert.version or not current.is_open:
            logger.info(
                "escalation_superseded",
                alert_id=alert.id,
                status=current.status.value,
            )
            return _Outcome.SUPERSEDED

        current.current_level = target.level
        current.status = AlertStatus.ESCALATED
        current.last_level_notified_at = now
        current.escalation_history.append(
            EscalationRecord(
                level=target.level,
                notified_at=now,
                roles=sorted(target.roles),
                recipients=recipients,
                deliveries=deliveries,
            ),
        )
        try:
            await self._store.save_alert(current, alert.version)
        except ConflictError:
            logger.info("escalation_superseded", alert_id=alert.id, reason="write_conflict")
            return _Outcome.SUPERSEDED

        audit_logger.info(
            "alert_escalated",
            alert_id=alert.id,
            alert_type=alert.type.value,
            from_level=alert.current_level,
            to_level=target.level,
            roles=sorted(target.roles),
            recipients=recipients,
        )
        return _Outcome.ESCALATED

    # ── Notification ─────────────────────────────────────────────

    async def _notify(
        self, alert: Alert, config: AlertConfig, level: EscalationLevel,
    ) -> tuple[int, Deliveries]:
        """Resolve *level*'s roles and fan out on the config's channels.

        All sends are joined before returning.
        """
        recipients = await self._resolve_recipients(alert, level)
        if not recipients:
            logger.warning(
                "escalation_no_recipients",
                alert_id=alert.id,
                level=level.level,
                roles=sorted(level.roles),
            )
            return 0, {}

        channels = self._channels_for(config)
        payloads = [self._build_payload(alert, config, level, r) for r in recipients]
        results = await asyncio.gather(
            *(self._dispatcher.send_multi(channels, p) for p in payloads),
        )
        deliveries = {p.recipient_id: res for p, res in zip(payloads, results)}
        failed = sum(1 for res in results for ok in res.values() if not ok)
        logger.info(
            "alert_notified",
            alert_id=alert.id,
            level=level.level,
            recipients=len(recipients),
            failed_sends=failed,
        )
        return len(recipients), deliveries

    async def _resolve_recipients(self, alert: Alert, level: EscalationLevel) -> list[Recipient]:
        scope = {
            "mill_id": alert.context.get("mill_id"),
            "tenant_id": alert.context.get("tenant_id"),
        }
        seen: dict[str, Recipient] = {}
        for role in sorted(level.roles):
            try:
                found = await self._directory.resolve(role, scope)
            except Exception:
                logger.exception("role_resolution_failed", alert_id=alert.id, role=role)
                continue
            for recipient in found:
                seen.setdefault(recipient.id, recipient)
        return list(seen.values())

    def _channels_for(self, config: AlertConfig) -> tuple[Channel, ...]:
        # The in-app inbox mirrors every alert whenever it is wired up.
        if Channel.IN_APP in self._dispatcher.channels and Channel.IN_APP not in config.channels:
            return (*config.channels, Channel.IN_APP)
        return config.channels

    def _build_payload(
        self,
        alert: Alert,
        config: AlertConfig,
        level: EscalationLevel,
        recipient: Recipient,
    ) -> NotificationPayload:
        ctx = alert.context
        label = humanize(alert.type)
        title = str(ctx.get("title") or label)
        message = str(ctx.get("message") or ctx.get("summary") or label)
        metadata: dict[str, Any] = {
            k: v for k, v in ctx.items() if k not in ("title", "message", "link")
        }
        metadata.update(
            severity=config.severity.value,
            category=config.category.value,
            action_required=config.action_required,
            level=level.level,
        )
        return NotificationPayload.for_recipient(
            recipient,
            alert_type=alert.type,
            alert_id=alert.id,
            title=title,
            message=message,
            link=self._link_builder(str(ctx["link"])) if ctx.get("link") else None,
            metadata=metadata,
        )

    # ── Queries ──────────────────────────────────────────────────

    async def get_alert(self, alert_id: str) -> Alert:
        return await self._load(alert_id)

    async def list_alerts(
        self,
        status: AlertStatus | None = None,
        severity: AlertSeverity | None = None,
        category: AlertCategory | None = None,
        mill_id: str | None = None,
    ) -> list[Alert]:
        """Matching alerts, newest first."""
        alerts = await self._store.list_alerts(
            statuses={status} if status else None,
            severity=severity,
            category=category,
            mill_id=mill_id,
        )
        return sorted(alerts, key=lambda a: a.created_at, reverse=True)

    async def _load(self, alert_id: str) -> Alert:
        try:
            return await self._store.get_alert(alert_id)
        except NotFoundError as exc:
            raise AlertNotFoundError(f"alert {alert_id} not found") from exc
