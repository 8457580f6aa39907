"""Tests for ActionItemManager — lifecycle, overdue sweep, ordering, alert spawning."""

from __future__ import annotations

import datetime

import pytest

from fortify_alerts.actions.exceptions import (
    ActionItemNotFoundError,
    InvalidStatusTransitionError,
)
from fortify_alerts.actions.manager import ActionItemManager, severity_priority
from fortify_alerts.actions.types import (
    ActionItemData,
    ActionItemPriority,
    ActionItemStatus,
)
from fortify_alerts.alerts.types import (
    Alert,
    AlertCategory,
    AlertSeverity,
    AlertType,
)
from fortify_alerts.storage.exceptions import ConflictError
from fortify_alerts.storage.memory import InMemoryStore

T0 = datetime.datetime(2026, 3, 2, 8, 0, tzinfo=datetime.UTC)
HOUR = datetime.timedelta(hours=1)


# ── Helpers ─────────────────────────────────────────────────────


def _data(**kw: object) -> ActionItemData:
    defaults: dict[str, object] = {
        "title": "Recalibrate doser",
        "due_date": T0 + 24 * HOUR,
        "assigned_to_id": "u1",
        "created_by": "mgr",
        "mill_id": "m1",
    }
    defaults.update(kw)
    return ActionItemData(**defaults)  # type: ignore[arg-type]


def _manager(store: InMemoryStore | None = None) -> ActionItemManager:
    return ActionItemManager(store or InMemoryStore(), clock=lambda: T0)


# ── Creation ────────────────────────────────────────────────────


class TestCreate:
    async def test_create_defaults(self) -> None:
        mgr = _manager()
        item = await mgr.create(_data())
        assert item.status == ActionItemStatus.PENDING
        assert item.priority == ActionItemPriority.MEDIUM
        assert item.is_overdue is False
        assert item.created_at == T0
        assert item.version == 0

    async def test_title_limit(self) -> None:
        with pytest.raises(ValueError):
            _data(title="x" * 201)

    async def test_empty_title_rejected(self) -> None:
        with pytest.raises(ValueError):
            _data(title="")

    async def test_create_from_alert(self) -> None:
        mgr = _manager()
        alert = Alert(
            id="a1",
            type=AlertType.QC_FAILURE,
            severity=AlertSeverity.CRITICAL,
            category=AlertCategory.QUALITY_SAFETY,
            created_at=T0,
            last_level_notified_at=T0,
            context={"mill_id": "m1", "batch_id": "B-1", "title": "QC Failure - Batch B-1"},
        )
        item = await mgr.create_from_alert(alert, assigned_to_id="u1", created_by="mgr")
        assert item.priority == ActionItemPriority.CRITICAL
        assert item.related_alert_id == "a1"
        assert item.related_batch_id == "B-1"
        assert item.mill_id == "m1"
        assert item.title == "QC Failure - Batch B-1"
        assert item.due_date == T0 + 24 * HOUR
        assert item.description.startswith("Root cause analysis")

    def test_severity_priority_mapping(self) -> None:
        assert severity_priority(AlertSeverity.CRITICAL) == ActionItemPriority.CRITICAL
        assert severity_priority(AlertSeverity.HIGH) == ActionItemPriority.HIGH
        assert severity_priority(AlertSeverity.MEDIUM) == ActionItemPriority.MEDIUM
        assert severity_priority(AlertSeverity.LOW) == ActionItemPriority.LOW


# ── Status ──────────────────────────────────────────────────────


class TestUpdateStatus:
    async def test_complete_stamps_completion(self) -> None:
        mgr = _manager()
        item = await mgr.create(_data())
        done = await mgr.update_status(item.id, ActionItemStatus.COMPLETED, "u1", now=T0 + HOUR)
        assert done.status == ActionItemStatus.COMPLETED
        assert done.completed_at == T0 + HOUR
        assert done.completed_by == "u1"

    async def test_same_status_is_noop(self) -> None:
        mgr = _manager()
        item = await mgr.create(_data())
        again = await mgr.update_status(item.id, ActionItemStatus.PENDING, "u1")
        assert again.version == item.version

    async def test_terminal_is_final(self) -> None:
        mgr = _manager()
        item = await mgr.create(_data())
        await mgr.update_status(item.id, ActionItemStatus.CANCELLED, "u1")
        with pytest.raises(InvalidStatusTransitionError):
            await mgr.update_status(item.id, ActionItemStatus.IN_PROGRESS, "u1")

    async def test_terminal_clears_overdue(self) -> None:
        mgr = _manager()
        item = await mgr.create(_data(due_date=T0 - HOUR))
        await mgr.sweep_overdue(T0)
        assert (await mgr.get(item.id)).is_overdue is True

        done = await mgr.update_status(item.id, ActionItemStatus.COMPLETED, "u1")
        assert done.is_overdue is False

    async def test_in_progress_keeps_overdue(self) -> None:
        mgr = _manager()
        item = await mgr.create(_data(due_date=T0 - HOUR))
        await mgr.sweep_overdue(T0)
        started = await mgr.update_status(item.id, ActionItemStatus.IN_PROGRESS, "u1")
        assert started.is_overdue is True

    async def test_unknown_item(self) -> None:
        with pytest.raises(ActionItemNotFoundError):
            await _manager().update_status("nope", ActionItemStatus.COMPLETED, "u1")


class TestUpdateDetails:
    async def test_edit_fields(self) -> None:
        mgr = _manager()
        item = await mgr.create(_data())
        updated = await mgr.update_details(
            item.id, title="New title", priority=ActionItemPriority.HIGH,
        )
        assert updated.title == "New title"
        assert updated.priority == ActionItemPriority.HIGH
        assert updated.version == item.version + 1

    async def test_limits_enforced(self) -> None:
        mgr = _manager()
        item = await mgr.create(_data())
        with pytest.raises(ValueError):
            await mgr.update_details(item.id, title="")
        with pytest.raises(ValueError):
            await mgr.update_details(item.id, description="d" * 1001)

    async def test_future_due_date_clears_overdue(self) -> None:
        mgr = _manager()
        item = await mgr.create(_data(due_date=T0 - HOUR))
        await mgr.sweep_overdue(T0)

        moved = await mgr.update_details(item.id, due_date=T0 + 48 * HOUR, now=T0)
        assert moved.is_overdue is False
        assert moved.due_date == T0 + 48 * HOUR

    async def test_no_changes_is_noop(self) -> None:
        mgr = _manager()
        item = await mgr.create(_data())
        same = await mgr.update_details(item.id)
        assert same.version == item.version


class TestReassign:
    async def test_reassign_keeps_status_and_overdue(self) -> None:
        mgr = _manager()
        item = await mgr.create(_data(due_date=T0 - HOUR))
        await mgr.update_status(item.id, ActionItemStatus.IN_PROGRESS, "u1")
        await mgr.sweep_overdue(T0)

        moved = await mgr.reassign(item.id, "u2", actor_id="mgr")
        assert moved.assigned_to_id == "u2"
        assert moved.status == ActionItemStatus.IN_PROGRESS
        assert moved.is_overdue is True
        assert await mgr.list_for_user("u1") == []


# ── Overdue sweep ───────────────────────────────────────────────


class TestSweepOverdue:
    async def test_flags_only_active_past_due(self) -> None:
        mgr = _manager()
        late = await mgr.create(_data(due_date=T0 - HOUR))
        future = await mgr.create(_data(due_date=T0 + HOUR))
        done = await mgr.create(_data(due_date=T0 - HOUR))
        await mgr.update_status(done.id, ActionItemStatus.COMPLETED, "u1")

        flipped = await mgr.sweep_overdue(T0)
        assert flipped == [late.id]
        assert (await mgr.get(future.id)).is_overdue is False
        assert (await mgr.get(done.id)).is_overdue is False

    async def test_idempotent(self) -> None:
        mgr = _manager()
        await mgr.create(_data(due_date=T0 - HOUR))
        assert len(await mgr.sweep_overdue(T0)) == 1
        assert await mgr.sweep_overdue(T0) == []

    async def test_due_exactly_now_not_overdue(self) -> None:
        mgr = _manager()
        await mgr.create(_data(due_date=T0))
        assert await mgr.sweep_overdue(T0) == []

    async def test_conflicting_item_skipped(self) -> None:
        store = InMemoryStore()
        mgr = _manager(store)
        item = await mgr.create(_data(due_date=T0 - HOUR))

        real_save = store.save_action_item

        async def racing_save(candidate, expected_version):  # type: ignore[no-untyped-def]
            raise ConflictError("changed underneath")

        store.save_action_item = racing_save  # type: ignore[method-assign]
        assert await mgr.sweep_overdue(T0) == []
        store.save_action_item = real_save  # type: ignore[method-assign]
        assert await mgr.sweep_overdue(T0) == [item.id]


# ── Queries ─────────────────────────────────────────────────────


class TestQueries:
    async def test_ordering_overdue_then_priority_then_due(self) -> None:
        mgr = _manager()
        a = await mgr.create(
            _data(title="A", priority=ActionItemPriority.CRITICAL, due_date=T0 + 48 * HOUR),
        )
        b = await mgr.create(
            _data(title="B", priority=ActionItemPriority.LOW, due_date=T0 + 24 * HOUR),
        )
        c = await mgr.create(
            _data(title="C", priority=ActionItemPriority.LOW, due_date=T0 - HOUR),
        )
        await mgr.sweep_overdue(T0)

        items = await mgr.list_for_user("u1")
        assert [i.id for i in items] == [c.id, a.id, b.id]

    async def test_filters(self) -> None:
        mgr = _manager()
        await mgr.create(_data(priority=ActionItemPriority.HIGH))
        late = await mgr.create(_data(due_date=T0 - HOUR))
        await mgr.create(_data(assigned_to_id="u2", mill_id="m2"))
        await mgr.sweep_overdue(T0)

        overdue = await mgr.list_for_user("u1", overdue_only=True)
        assert [i.id for i in overdue] == [late.id]
        high = await mgr.list_for_user("u1", priority=ActionItemPriority.HIGH)
        assert len(high) == 1
        assert len(await mgr.list_for_mill("m1")) == 2
        assert len(await mgr.list_for_mill("m2", status=ActionItemStatus.PENDING)) == 1

    async def test_count_overdue(self) -> None:
        mgr = _manager()
        await mgr.create(_data(due_date=T0 - HOUR))
        await mgr.create(_data(due_date=T0 - HOUR, assigned_to_id="u2", mill_id="m2"))
        await mgr.create(_data(due_date=T0 + HOUR))
        await mgr.sweep_overdue(T0)

        assert await mgr.count_overdue() == 2
        assert await mgr.count_overdue(user_id="u1") == 1
        assert await mgr.count_overdue(mill_id="m2") == 1

    async def test_count_overdue_by_status_and_priority(self) -> None:
        mgr = _manager()
        started = await mgr.create(_data(due_date=T0 - HOUR))
        await mgr.create(_data(due_date=T0 - HOUR, priority=ActionItemPriority.HIGH))
        await mgr.sweep_overdue(T0)
        await mgr.update_status(started.id, ActionItemStatus.IN_PROGRESS, "u1")

        assert await mgr.count_overdue(status=ActionItemStatus.IN_PROGRESS) == 1
        assert await mgr.count_overdue(status=ActionItemStatus.PENDING) == 1
        assert await mgr.count_overdue(status=ActionItemStatus.COMPLETED) == 0
        assert await mgr.count_overdue(priority=ActionItemPriority.HIGH) == 1
