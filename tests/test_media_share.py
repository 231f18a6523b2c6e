"""Tests for view-once media sharing."""

from __future__ import annotations

from datetime import timedelta

import pytest

from pairroom.core.lifecycle import RoomLifecycleManager
from pairroom.core.media import MediaShareTracker, encode_image_payload
from pairroom.errors import ViewOnceInvariantError
from pairroom.models.room import Participant
from pairroom.store.memory import InMemoryRoomStore
from tests.conftest import FakeClock

PAYLOAD = "data:image/jpeg;base64,/9j/AAAA"


@pytest.fixture
def lifecycle(store: InMemoryRoomStore, clock: FakeClock) -> RoomLifecycleManager:
    return RoomLifecycleManager(store, clock=clock)


@pytest.fixture
def tracker(store: InMemoryRoomStore, clock: FakeClock) -> MediaShareTracker:
    return MediaShareTracker(store, clock=clock)


@pytest.fixture
async def room_id(lifecycle: RoomLifecycleManager) -> str:
    room_id = await lifecycle.create_room("alice", "Alice")
    await lifecycle.join_room(room_id, "bob", "Bob")
    return room_id


class TestShareImage:
    async def test_share_creates_unacknowledged_item(
        self, tracker: MediaShareTracker, store: InMemoryRoomStore, room_id: str
    ) -> None:
        media_id = await tracker.share_image(room_id, PAYLOAD, "alice", "Alice")
        assert media_id is not None
        item = (await store.get())[room_id].get_media(media_id)
        assert item is not None
        assert item.payload == PAYLOAD
        assert item.sender == "alice"
        assert item.acked_by == set()

    async def test_refused_without_recipient(
        self, tracker: MediaShareTracker, lifecycle: RoomLifecycleManager
    ) -> None:
        room_id = await lifecycle.create_room("alice", "Alice")
        assert await tracker.share_image(room_id, PAYLOAD, "alice", "Alice") is None

    async def test_refused_for_non_member_and_missing_room(
        self, tracker: MediaShareTracker, room_id: str
    ) -> None:
        assert await tracker.share_image(room_id, PAYLOAD, "mallory", "Mallory") is None
        assert await tracker.share_image("NOPE00", PAYLOAD, "alice", "Alice") is None


class TestViewImage:
    async def test_recipient_sees_payload_once_then_item_is_gone(
        self, tracker: MediaShareTracker, store: InMemoryRoomStore, room_id: str
    ) -> None:
        media_id = await tracker.share_image(room_id, PAYLOAD, "alice", "Alice")
        assert media_id is not None
        assert [m.id for m in await tracker.get_pending_images(room_id, "bob")] == [media_id]

        assert await tracker.view_image(room_id, media_id, "bob") == PAYLOAD

        assert (await store.get())[room_id].shared_media == []
        assert await tracker.get_pending_images(room_id, "bob") == []
        assert await tracker.view_image(room_id, media_id, "bob") is None

    async def test_sender_view_is_not_an_acknowledgment(
        self, tracker: MediaShareTracker, store: InMemoryRoomStore, room_id: str
    ) -> None:
        media_id = await tracker.share_image(room_id, PAYLOAD, "alice", "Alice")
        assert media_id is not None
        writes = store.write_count
        assert await tracker.view_image(room_id, media_id, "alice") is None
        assert store.write_count == writes
        assert await tracker.get_pending_images(room_id, "bob") != []

    async def test_sender_has_no_pending_items(
        self, tracker: MediaShareTracker, room_id: str
    ) -> None:
        await tracker.share_image(room_id, PAYLOAD, "alice", "Alice")
        assert await tracker.get_pending_images(room_id, "alice") == []

    async def test_non_member_cannot_view(
        self, tracker: MediaShareTracker, room_id: str
    ) -> None:
        media_id = await tracker.share_image(room_id, PAYLOAD, "alice", "Alice")
        assert media_id is not None
        assert await tracker.view_image(room_id, media_id, "mallory") is None

    async def test_unknown_item_or_room(self, tracker: MediaShareTracker, room_id: str) -> None:
        assert await tracker.view_image(room_id, "missing", "bob") is None
        assert await tracker.view_image("NOPE00", "missing", "bob") is None
        assert await tracker.get_pending_images("NOPE00", "bob") == []

    async def test_repeat_view_of_acked_item_is_idempotent(
        self, tracker: MediaShareTracker, store: InMemoryRoomStore, room_id: str
    ) -> None:
        media_id = await tracker.share_image(room_id, PAYLOAD, "alice", "Alice")
        assert media_id is not None
        # Simulate an acknowledgment recorded by a racing write that was not
        # yet followed by the deletion.
        rooms = await store.get()
        item = rooms[room_id].get_media(media_id)
        assert item is not None
        item.acked_by.add("bob")
        await store.set(rooms)

        writes = store.write_count
        assert await tracker.view_image(room_id, media_id, "bob") is None
        assert store.write_count == writes

    async def test_more_than_two_participants_is_rejected(
        self, tracker: MediaShareTracker, store: InMemoryRoomStore, room_id: str
    ) -> None:
        media_id = await tracker.share_image(room_id, PAYLOAD, "alice", "Alice")
        assert media_id is not None
        rooms = await store.get()
        rooms[room_id].participants.append(Participant(id="carol", name="Carol"))
        await store.set(rooms)

        with pytest.raises(ViewOnceInvariantError):
            await tracker.view_image(room_id, media_id, "bob")


class TestPruneOnDeparture:
    async def test_acknowledged_items_are_pruned_when_guest_leaves(
        self,
        tracker: MediaShareTracker,
        lifecycle: RoomLifecycleManager,
        store: InMemoryRoomStore,
        room_id: str,
    ) -> None:
        # Bob shares; once Bob leaves, Alice's item has no remaining recipient.
        await tracker.share_image(room_id, PAYLOAD, "bob", "Bob")
        await tracker.share_image(room_id, PAYLOAD, "alice", "Alice")
        await lifecycle.leave_room(room_id, "bob")

        room = (await store.get())[room_id]
        assert [m.sender for m in room.shared_media] == ["bob"]


class TestHelpers:
    def test_encode_image_payload(self) -> None:
        assert encode_image_payload(b"\x00\x01", "image/png") == "data:image/png;base64,AAE="

    def test_auto_hide_deadline(self, tracker: MediaShareTracker, clock: FakeClock) -> None:
        assert tracker.auto_hide_deadline() == clock.now + timedelta(seconds=10)
