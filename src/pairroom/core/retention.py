"""Message retention: every message lives for a fixed TTL, then a sweep evicts it."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from pairroom.config import PairRoomConfig
from pairroom.core._helpers import Clock, new_id, utcnow
from pairroom.models.room import Message
from pairroom.store.base import RoomStore

logger = logging.getLogger("pairroom.retention")


class MessageRetentionEngine:
    """Appends messages with a deadline and evicts them once it passes.

    Eviction is coarse: nothing happens at ``expires_at`` itself. The
    maintenance tick calls ``cleanup_expired_messages``, so a message may
    outlive its deadline by up to one tick interval.
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

    @property
    def ttl(self) -> timedelta:
        return timedelta(seconds=self._config.message_ttl_seconds)

    async def send_message(
        self, room_id: str, content: str, sender_id: str, sender_name: str
    ) -> bool:
        """Append a message from a current participant. Also refreshes the sender."""
        rooms = await self._store.get()
        room = rooms.get(room_id)
        if room is None:
            return False
        participant = room.get_participant(sender_id)
        if participant is None:
            logger.debug("Rejected message from non-participant %s in %s", sender_id, room_id)
            return False

        now = self._clock()
        room.messages.append(
            Message(
                id=new_id(),
                content=content,
                sender=sender_id,
                sender_name=sender_name,
                timestamp=now,
                expires_at=now + self.ttl,
                room_id=room_id,
            )
        )
        participant.last_seen = now
        await self._store.set(rooms)
        return True

    async def cleanup_expired_messages(self, room_id: str) -> int:
        """Evict messages whose deadline has passed. Returns how many were evicted."""
        rooms = await self._store.get()
        room = rooms.get(room_id)
        if room is None:
            return 0

        now = self._clock()
        kept = [m for m in room.messages if m.expires_at > now]
        evicted = len(room.messages) - len(kept)
        if evicted:
            room.messages = kept
            await self._store.set(rooms)
            logger.debug("Evicted %d expired messages from %s", evicted, room_id)
        return evicted

    async def get_messages(self, room_id: str) -> list[Message]:
        """Messages still within their TTL, oldest first."""
        rooms = await self._store.get()
        room = rooms.get(room_id)
        if room is None:
            return []
        now = self._clock()
        return [m for m in room.messages if m.expires_at > now]

    def remaining_seconds(self, message: Message, now: datetime | None = None) -> float:
        """Seconds left before *message* becomes evictable (never negative)."""
        now = now or self._clock()
        return max(0.0, (message.expires_at - now).total_seconds())
