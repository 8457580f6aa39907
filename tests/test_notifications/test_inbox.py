"""Tests for the in-app inbox — listing, unread counts, read state, deletion."""

from __future__ import annotations

import datetime

import pytest

from fortify_alerts.alerts.types import AlertType
from fortify_alerts.notifications.inbox import Inbox
from fortify_alerts.notifications.types import InAppNotification
from fortify_alerts.storage.exceptions import NotFoundError
from fortify_alerts.storage.memory import InMemoryStore

T0 = datetime.datetime(2026, 3, 2, 8, 0, tzinfo=datetime.UTC)


def _note(note_id: str, user_id: str = "u1", minutes: int = 0) -> InAppNotification:
    return InAppNotification(
        id=note_id,
        user_id=user_id,
        alert_type=AlertType.QC_FAILURE,
        title=f"note {note_id}",
        message="m",
        created_at=T0 + datetime.timedelta(minutes=minutes),
    )


@pytest.fixture()
async def store() -> InMemoryStore:
    s = InMemoryStore()
    await s.insert_notification(_note("n1", minutes=0))
    await s.insert_notification(_note("n2", minutes=5))
    await s.insert_notification(_note("n3", user_id="u2", minutes=1))
    return s


class TestListing:
    async def test_newest_first_and_own_only(self, store: InMemoryStore) -> None:
        inbox = Inbox(store, clock=lambda: T0)
        notes = await inbox.list_for_user("u1")
        assert [n.id for n in notes] == ["n2", "n1"]

    async def test_unread_count(self, store: InMemoryStore) -> None:
        inbox = Inbox(store, clock=lambda: T0)
        assert await inbox.unread_count("u1") == 2
        assert await inbox.unread_count("nobody") == 0


class TestReadState:
    async def test_mark_read(self, store: InMemoryStore) -> None:
        read_at = T0 + datetime.timedelta(hours=1)
        inbox = Inbox(store, clock=lambda: read_at)

        note = await inbox.mark_read("n1", "u1")
        assert note.read_at == read_at
        assert await inbox.unread_count("u1") == 1
        unread = await inbox.list_for_user("u1", unread_only=True)
        assert [n.id for n in unread] == ["n2"]

    async def test_mark_read_twice_keeps_first_timestamp(self, store: InMemoryStore) -> None:
        times = iter([T0 + datetime.timedelta(hours=1), T0 + datetime.timedelta(hours=2)])
        inbox = Inbox(store, clock=lambda: next(times))

        first = await inbox.mark_read("n1", "u1")
        second = await inbox.mark_read("n1", "u1")
        assert second.read_at == first.read_at

    async def test_cannot_mark_someone_elses(self, store: InMemoryStore) -> None:
        inbox = Inbox(store, clock=lambda: T0)
        with pytest.raises(NotFoundError):
            await inbox.mark_read("n3", "u1")

    async def test_mark_all_read(self, store: InMemoryStore) -> None:
        inbox = Inbox(store, clock=lambda: T0)
        assert await inbox.mark_all_read("u1") == 2
        assert await inbox.unread_count("u1") == 0
        assert await inbox.unread_count("u2") == 1
        assert await inbox.mark_all_read("u1") == 0


class TestDelete:
    async def test_owner_deletes(self, store: InMemoryStore) -> None:
        inbox = Inbox(store, clock=lambda: T0)
        await inbox.delete("n1", "u1")
        assert [n.id for n in await inbox.list_for_user("u1")] == ["n2"]
        assert await inbox.unread_count("u1") == 1

    async def test_cannot_delete_someone_elses(self, store: InMemoryStore) -> None:
        inbox = Inbox(store, clock=lambda: T0)
        with pytest.raises(NotFoundError):
            await inbox.delete("n3", "u1")
        assert [n.id for n in await inbox.list_for_user("u2")] == ["n3"]

    async def test_unknown_notification(self, store: InMemoryStore) -> None:
        inbox = Inbox(store, clock=lambda: T0)
        with pytest.raises(NotFoundError):
            await inbox.delete("missing", "u1")
