"""View-once media: shared items disappear once the other participant has seen them."""

from __future__ import annotations

import base64
import logging
from datetime import datetime, timedelta

from pairroom.config import PairRoomConfig
from pairroom.core._helpers import Clock, is_acknowledged, new_id, utcnow
from pairroom.errors import AlreadyAckedError, ViewOnceInvariantError
from pairroom.models.room import Room, SharedMedia
from pairroom.store.base import RoomStore

logger = logging.getLogger("pairroom.media")


def encode_image_payload(data: bytes, mime_type: str = "image/jpeg") -> str:
    """Encode raw image bytes as a ``data:`` URL payload."""
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


class MediaShareTracker:
    """Distributes view-once media and deletes it on full acknowledgment.

    The tracker only guarantees that data is removed from the room. How long
    a viewer keeps the image on screen is up to the caller; see
    ``auto_hide_deadline``.
    """

    def __init__(
        self,
        store: RoomStore,
        config: PairRoomConfig | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._store = store
        self._config = config or PairRoomConfig()
        self._clock = clock

    async def share_image(
        self, room_id: str, payload: str, sender_id: str, sender_name: str
    ) -> str | None:
        """Share *payload* with the other participant. Returns the media id.

        Returns None if the room is missing, the sender is not a member, or
        nobody else is in the room to view the item.
        """
        rooms = await self._store.get()
        room = rooms.get(room_id)
        if room is None or not room.has_participant(sender_id):
            return None
        if all(p.id == sender_id for p in room.participants):
            logger.debug("Not sharing media in %s: no recipient present", room_id)
            return None

        item = SharedMedia(
            id=new_id(),
            payload=payload,
            sender=sender_id,
            sender_name=sender_name,
            timestamp=self._clock(),
            room_id=room_id,
        )
        room.shared_media.append(item)
        await self._store.set(rooms)
        logger.debug("Media %s shared in %s by %s", item.id, room_id, sender_id)
        return item.id

    async def get_pending_images(self, room_id: str, user_id: str) -> list[SharedMedia]:
        """The viewer's unread inbox: items from others it has not acknowledged."""
        rooms = await self._store.get()
        room = rooms.get(room_id)
        if room is None:
            return []
        return [
            item
            for item in room.shared_media
            if item.sender != user_id and user_id not in item.acked_by
        ]

    async def view_image(self, room_id: str, media_id: str, user_id: str) -> str | None:
        """Acknowledge an item and return its payload exactly once.

        A repeated view by the same participant returns None and changes
        nothing. Once every participant but the sender has acknowledged the
        item it is deleted from the room before this call returns.

        Raises:
            ViewOnceInvariantError: The room holds more than two participants.
        """
        rooms = await self._store.get()
        room = rooms.get(room_id)
        if room is None:
            return None
        item = room.get_media(media_id)
        if item is None:
            return None
        if len(room.participants) > 2:
            raise ViewOnceInvariantError(
                f"Room {room_id} has {len(room.participants)} participants"
            )
        if not room.has_participant(user_id) or user_id == item.sender:
            return None

        try:
            self._acknowledge(room, item, user_id)
        except AlreadyAckedError:
            return None

        await self._store.set(rooms)
        return item.payload

    def auto_hide_deadline(self, viewed_at: datetime | None = None) -> datetime:
        """When a viewer should stop displaying an item opened at *viewed_at*."""
        viewed_at = viewed_at or self._clock()
        return viewed_at + timedelta(seconds=self._config.image_auto_hide_seconds)

    def _acknowledge(self, room: Room, item: SharedMedia, user_id: str) -> None:
        if user_id in item.acked_by:
            raise AlreadyAckedError(f"{user_id} already viewed {item.id}")
        item.acked_by.add(user_id)
        if is_acknowledged(room, item):
            room.shared_media = [m for m in room.shared_media if m.id != item.id]
            logger.debug("Media %s removed from %s after final view", item.id, room.id)
