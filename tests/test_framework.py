"""Tests for the PairRoom facade."""

from __future__ import annotations

import pytest

from pairroom.call.mock import MockMediaDevice, MockPeerConnectionFactory
from pairroom.config import PairRoomConfig
from pairroom.core.framework import PairRoom
from pairroom.errors import ParticipantNotFoundError, RoomNotFoundError
from pairroom.models.room import Room
from pairroom.signaling.memory import InMemorySignaling
from pairroom.store.memory import InMemoryRoomStore


class TestDefaults:
    async def test_builds_in_memory_backends(self) -> None:
        pr = PairRoom()
        assert isinstance(pr.store, InMemoryRoomStore)
        assert isinstance(pr.signaling, InMemorySignaling)
        assert pr.config == PairRoomConfig()
        room_id = await pr.create_room("alice", "Alice")
        assert await pr.get_room(room_id) is not None
        await pr.close()

    async def test_config_reaches_managers(self, store: InMemoryRoomStore) -> None:
        pr = PairRoom(store, config=PairRoomConfig(message_ttl_seconds=5))
        assert pr.retention.ttl.total_seconds() == 5
        await pr.close()


class TestRequireParticipant:
    async def test_missing_room(self, kit: PairRoom) -> None:
        with pytest.raises(RoomNotFoundError):
            await kit.require_participant("NOPE00", "alice")

    async def test_missing_participant(self, kit: PairRoom) -> None:
        room_id = await kit.create_room("alice", "Alice")
        with pytest.raises(ParticipantNotFoundError):
            await kit.require_participant(room_id, "bob")

    async def test_member(self, kit: PairRoom) -> None:
        room_id = await kit.create_room("alice", "Alice")
        room = await kit.require_participant(room_id, "alice")
        assert room.id == room_id


class TestRoomChanged:
    async def test_relays_room_and_deletion(self, kit: PairRoom, peer_kit: PairRoom) -> None:
        room_id = await kit.create_room("alice", "Alice")
        seen: list[Room | None] = []

        async def on_change(room: Room | None) -> None:
            seen.append(room)

        sub_id = await kit.on_room_changed(room_id, on_change)
        await peer_kit.join_room(room_id, "bob", "Bob")
        await peer_kit.leave_room(room_id, "alice")

        assert len(seen) == 2
        assert seen[0] is not None
        assert [p.id for p in seen[0].participants] == ["alice", "bob"]
        assert seen[1] is None

        assert await kit.off_room_changed(sub_id) is True
        await kit.create_room("carol", "Carol")
        assert len(seen) == 2

    async def test_close_drops_room_subscriptions(
        self, kit: PairRoom, store: InMemoryRoomStore
    ) -> None:
        room_id = await kit.create_room("alice", "Alice")

        async def on_change(room: Room | None) -> None:
            return None

        await kit.on_room_changed(room_id, on_change)
        assert store.subscription_count == 1
        await kit.close()
        assert store.subscription_count == 0


class TestCall:
    async def test_requires_membership(self, kit: PairRoom) -> None:
        room_id = await kit.create_room("alice", "Alice")
        with pytest.raises(ParticipantNotFoundError):
            await kit.call(room_id, "bob")

    async def test_requires_device_and_factory(self, store: InMemoryRoomStore) -> None:
        pr = PairRoom(store)
        room_id = await pr.create_room("alice", "Alice")
        with pytest.raises(ValueError):
            await pr.call(room_id, "alice")
        await pr.close()

    async def test_uses_configured_ice_servers(self, store: InMemoryRoomStore) -> None:
        factory = MockPeerConnectionFactory()
        pr = PairRoom(
            store,
            config=PairRoomConfig(ice_servers=["stun:stun.example.org:3478"]),
            media_device=MockMediaDevice(),
            peer_factory=factory,
        )
        room_id = await pr.create_room("alice", "Alice")
        negotiator = await pr.call(room_id, "alice")
        await negotiator.start_call(False, "bob")
        assert factory.last.ice_servers == ["stun:stun.example.org:3478"]
        await pr.close()
        assert factory.last.closed
