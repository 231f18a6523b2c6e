"""End-to-end two-participant scenarios over a shared store and signaling bus."""

from __future__ import annotations

from collections.abc import Callable, Coroutine
from typing import Any

from pairroom.call.mock import MockPeerConnectionFactory
from pairroom.core.framework import PairRoom
from pairroom.models.enums import CallState, SignalType, TrackKind
from pairroom.models.signal import SignalEnvelope
from pairroom.signaling.memory import InMemorySignaling
from pairroom.store.memory import InMemoryRoomStore
from tests.conftest import FakeClock

Advance = Callable[..., Coroutine[Any, Any, None]]


class TestRoomScenarios:
    async def test_create_join_leave(self, kit: PairRoom, peer_kit: PairRoom) -> None:
        room_id = await kit.create_room("alice", "Alice")
        assert await peer_kit.join_room(room_id, "bob", "Bob") is True

        room = await kit.get_room(room_id)
        assert room is not None
        assert [p.id for p in room.participants] == ["alice", "bob"]

        await peer_kit.leave_room(room_id, "bob")
        room = await kit.get_room(room_id)
        assert room is not None
        assert [p.id for p in room.participants] == ["alice"]

        await kit.leave_room(room_id, "alice")
        assert await peer_kit.get_room(room_id) is None

    async def test_message_lifetime(
        self, kit: PairRoom, peer_kit: PairRoom, clock: FakeClock
    ) -> None:
        room_id = await kit.create_room("alice", "Alice")
        await peer_kit.join_room(room_id, "bob", "Bob")
        await kit.send_message(room_id, "hi", "alice", "Alice")

        clock.advance(119)
        await peer_kit.cleanup_expired_messages(room_id)
        assert [m.content for m in await peer_kit.get_messages(room_id)] == ["hi"]

        clock.advance(2)
        await peer_kit.cleanup_expired_messages(room_id)
        room = await kit.get_room(room_id)
        assert room is not None
        assert room.messages == []

    async def test_view_once_image(self, kit: PairRoom, peer_kit: PairRoom) -> None:
        room_id = await kit.create_room("alice", "Alice")
        await peer_kit.join_room(room_id, "bob", "Bob")
        media_id = await kit.share_image(room_id, "data:image/png;base64,AAAA", "alice", "Alice")
        assert media_id is not None

        [pending] = await peer_kit.get_pending_images(room_id, "bob")
        assert pending.id == media_id
        assert await peer_kit.view_image(room_id, media_id, "bob") == pending.payload

        room = await kit.get_room(room_id)
        assert room is not None
        assert room.get_media(media_id) is None
        assert await kit.get_pending_images(room_id, "alice") == []
        assert await peer_kit.get_pending_images(room_id, "bob") == []

    async def test_third_participant_is_refused(
        self, kit: PairRoom, peer_kit: PairRoom, store: InMemoryRoomStore
    ) -> None:
        room_id = await kit.create_room("alice", "Alice")
        await peer_kit.join_room(room_id, "bob", "Bob")
        before = await store.get()

        assert await peer_kit.join_room(room_id, "carol", "Carol") is False
        assert await store.get() == before

    async def test_host_departure_ends_room_for_guest(
        self, kit: PairRoom, peer_kit: PairRoom
    ) -> None:
        room_id = await kit.create_room("alice", "Alice")
        await peer_kit.join_room(room_id, "bob", "Bob")
        seen: list[bool] = []

        async def on_change(room: Any) -> None:
            seen.append(room is not None)

        await peer_kit.on_room_changed(room_id, on_change)
        await kit.leave_room(room_id, "alice")
        assert seen == [False]


class TestCallScenario:
    async def test_video_call_reaches_active_on_both_sides(
        self,
        kit: PairRoom,
        peer_kit: PairRoom,
        signaling: InMemorySignaling,
        advance: Advance,
    ) -> None:
        room_id = await kit.create_room("alice", "Alice")
        await peer_kit.join_room(room_id, "bob", "Bob")

        wire: list[SignalEnvelope] = []

        async def record(envelope: SignalEnvelope) -> None:
            wire.append(envelope)

        await signaling.subscribe(room_id, record)

        alice_pcs = MockPeerConnectionFactory()
        bob_pcs = MockPeerConnectionFactory()
        alice = await kit.call(room_id, "alice", peer_factory=alice_pcs)
        bob = await peer_kit.call(room_id, "bob", peer_factory=bob_pcs)

        await alice.start_call(True, "bob")
        await advance()
        [offer] = [e for e in wire if e.type == SignalType.OFFER]
        assert (offer.from_id, offer.to_id, offer.room_id) == ("alice", "bob", room_id)
        assert bob.state == CallState.INCOMING

        pending = bob.pending_offer
        assert pending is not None
        await bob.accept_call(pending, True, "alice")
        await advance()
        assert [e.to_id for e in wire if e.type == SignalType.ANSWER] == ["alice"]

        await alice_pcs.last.simulate_remote_track(TrackKind.VIDEO)
        await bob_pcs.last.simulate_remote_track(TrackKind.VIDEO)
        assert alice.state == CallState.ACTIVE
        assert bob.state == CallState.ACTIVE

        await bob.end_call("alice")
        await advance()
        assert alice.state == CallState.IDLE
        assert bob.state == CallState.IDLE
