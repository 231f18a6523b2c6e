"""Tests for MessageRetentionEngine."""

from __future__ import annotations

from datetime import timedelta

import pytest

from pairroom.config import PairRoomConfig
from pairroom.core.lifecycle import RoomLifecycleManager
from pairroom.core.retention import MessageRetentionEngine
from pairroom.store.memory import InMemoryRoomStore
from tests.conftest import FakeClock


@pytest.fixture
def lifecycle(store: InMemoryRoomStore, clock: FakeClock) -> RoomLifecycleManager:
    return RoomLifecycleManager(store, clock=clock)


@pytest.fixture
def engine(store: InMemoryRoomStore, clock: FakeClock) -> MessageRetentionEngine:
    return MessageRetentionEngine(store, clock=clock)


@pytest.fixture
async def room_id(lifecycle: RoomLifecycleManager) -> str:
    room_id = await lifecycle.create_room("alice", "Alice")
    await lifecycle.join_room(room_id, "bob", "Bob")
    return room_id


class TestSendMessage:
    async def test_appends_with_deadline(
        self, engine: MessageRetentionEngine, room_id: str, clock: FakeClock
    ) -> None:
        assert await engine.send_message(room_id, "hi", "alice", "Alice") is True
        [message] = await engine.get_messages(room_id)
        assert message.content == "hi"
        assert message.sender == "alice"
        assert message.sender_name == "Alice"
        assert message.room_id == room_id
        assert message.timestamp == clock.now
        assert message.expires_at - message.timestamp == timedelta(seconds=120)

    async def test_rejects_missing_room(self, engine: MessageRetentionEngine) -> None:
        assert await engine.send_message("NOPE00", "hi", "alice", "Alice") is False

    async def test_rejects_non_participant(
        self, engine: MessageRetentionEngine, store: InMemoryRoomStore, room_id: str
    ) -> None:
        writes = store.write_count
        assert await engine.send_message(room_id, "hi", "mallory", "Mallory") is False
        assert store.write_count == writes
        assert await engine.get_messages(room_id) == []

    async def test_refreshes_sender_last_seen(
        self,
        engine: MessageRetentionEngine,
        lifecycle: RoomLifecycleManager,
        room_id: str,
        clock: FakeClock,
    ) -> None:
        later = clock.advance(7)
        await engine.send_message(room_id, "hi", "bob", "Bob")
        room = await lifecycle.get_room(room_id)
        assert room is not None
        bob = room.get_participant("bob")
        assert bob is not None
        assert bob.last_seen == later

    async def test_messages_keep_insertion_order(
        self, engine: MessageRetentionEngine, room_id: str, clock: FakeClock
    ) -> None:
        for text in ["one", "two", "three"]:
            await engine.send_message(room_id, text, "alice", "Alice")
            clock.advance(1)
        assert [m.content for m in await engine.get_messages(room_id)] == [
            "one",
            "two",
            "three",
        ]

    async def test_ttl_follows_config(self, store: InMemoryRoomStore, clock: FakeClock) -> None:
        engine = MessageRetentionEngine(store, PairRoomConfig(message_ttl_seconds=5), clock)
        assert engine.ttl == timedelta(seconds=5)


class TestCleanup:
    async def test_message_survives_until_deadline(
        self, engine: MessageRetentionEngine, room_id: str, clock: FakeClock
    ) -> None:
        await engine.send_message(room_id, "hi", "alice", "Alice")

        clock.advance(119)
        assert await engine.cleanup_expired_messages(room_id) == 0
        assert len(await engine.get_messages(room_id)) == 1

        clock.advance(2)
        assert await engine.cleanup_expired_messages(room_id) == 1
        assert await engine.get_messages(room_id) == []

    async def test_evicts_only_expired(
        self, engine: MessageRetentionEngine, room_id: str, clock: FakeClock
    ) -> None:
        await engine.send_message(room_id, "old", "alice", "Alice")
        clock.advance(60)
        await engine.send_message(room_id, "new", "bob", "Bob")
        clock.advance(61)

        assert await engine.cleanup_expired_messages(room_id) == 1
        assert [m.content for m in await engine.get_messages(room_id)] == ["new"]

    async def test_no_write_when_nothing_expired(
        self, engine: MessageRetentionEngine, store: InMemoryRoomStore, room_id: str
    ) -> None:
        await engine.send_message(room_id, "hi", "alice", "Alice")
        writes = store.write_count
        assert await engine.cleanup_expired_messages(room_id) == 0
        assert store.write_count == writes

    async def test_missing_room(self, engine: MessageRetentionEngine) -> None:
        assert await engine.cleanup_expired_messages("NOPE00") == 0
        assert await engine.get_messages("NOPE00") == []

    async def test_get_messages_hides_expired_before_sweep(
        self,
        engine: MessageRetentionEngine,
        store: InMemoryRoomStore,
        room_id: str,
        clock: FakeClock,
    ) -> None:
        await engine.send_message(room_id, "hi", "alice", "Alice")
        clock.advance(121)
        assert await engine.get_messages(room_id) == []
        # Not evicted yet, only hidden.
        room = (await store.get())[room_id]
        assert len(room.messages) == 1


class TestRemainingSeconds:
    async def test_counts_down_and_floors_at_zero(
        self, engine: MessageRetentionEngine, room_id: str, clock: FakeClock
    ) -> None:
        await engine.send_message(room_id, "hi", "alice", "Alice")
        [message] = await engine.get_messages(room_id)
        assert engine.remaining_seconds(message) == 120.0
        clock.advance(30)
        assert engine.remaining_seconds(message) == 90.0
        assert engine.remaining_seconds(message, clock.now + timedelta(minutes=5)) == 0.0
