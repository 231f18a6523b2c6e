"""Room lifecycle: create, join, leave, heartbeat and inactivity sweep."""

from __future__ import annotations

import logging
from datetime import timedelta

from pairroom.config import PairRoomConfig
from pairroom.core._helpers import Clock, generate_room_code, prune_acknowledged, utcnow
from pairroom.errors import RoomCapacityError, RoomCodeExhaustedError, RoomNotFoundError
from pairroom.models.room import Participant, Room, RoomMap
from pairroom.store.base import RoomStore

logger = logging.getLogger("pairroom.lifecycle")


class RoomLifecycleManager:
    """Membership operations over the shared room store.

    Every operation is a read-modify-write of the whole mapping. Two
    participants acting at the same moment can overwrite each other's
    change; the managers never lock and never retry.
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

    async def create_room(self, user_id: str, name: str) -> str:
        """Create a room hosted by *user_id* and return its code."""
        rooms = await self._store.get()
        room_id = self._unused_code(rooms)
        now = self._clock()
        rooms[room_id] = Room(
            id=room_id,
            participants=[Participant(id=user_id, name=name, joined_at=now, last_seen=now)],
            created_at=now,
            host_id=user_id,
        )
        await self._store.set(rooms)
        logger.info("Room %s created by %s", room_id, user_id)
        return room_id

    async def get_room(self, room_id: str) -> Room | None:
        rooms = await self._store.get()
        return rooms.get(room_id)

    async def list_rooms(self) -> list[Room]:
        rooms = await self._store.get()
        return list(rooms.values())

    async def join_room(self, room_id: str, user_id: str, name: str) -> bool:
        """Add *user_id* to the room, or refresh it if already a member.

        Returns False when the room does not exist or already holds two
        other participants; the store is left untouched in that case.
        """
        rooms = await self._store.get()
        try:
            room = self._admit(rooms, room_id, user_id, name)
        except (RoomNotFoundError, RoomCapacityError) as exc:
            logger.debug("Join of %s to %s refused: %s", user_id, room_id, exc)
            return False
        rooms[room_id] = room
        await self._store.set(rooms)
        return True

    async def leave_room(self, room_id: str, user_id: str) -> None:
        """Remove *user_id*; delete the room if it was the host or the last member."""
        rooms = await self._store.get()
        room = rooms.get(room_id)
        if room is None:
            return

        remaining = [p for p in room.participants if p.id != user_id]
        if len(remaining) == len(room.participants) and user_id != room.host_id:
            return
        room.participants = remaining

        if user_id == room.host_id or not remaining:
            del rooms[room_id]
            logger.info("Room %s deleted after %s left", room_id, user_id)
        else:
            prune_acknowledged(room)
        await self._store.set(rooms)

    async def update_last_seen(self, room_id: str, user_id: str) -> bool:
        """Heartbeat: refresh the participant's ``last_seen``."""
        rooms = await self._store.get()
        room = rooms.get(room_id)
        if room is None:
            return False
        participant = room.get_participant(user_id)
        if participant is None:
            return False
        participant.last_seen = self._clock()
        await self._store.set(rooms)
        return True

    async def remove_inactive_users(self, room_id: str) -> list[str]:
        """Drop participants not seen within the inactivity timeout.

        The room is deleted when the host is among those dropped, even if
        another participant is still active. Returns the dropped ids.
        """
        rooms = await self._store.get()
        room = rooms.get(room_id)
        if room is None:
            return []

        cutoff = self._clock() - timedelta(seconds=self._config.inactivity_timeout_seconds)
        active = [p for p in room.participants if p.last_seen > cutoff]
        removed = [p.id for p in room.participants if p.last_seen <= cutoff]
        if not removed:
            return []

        room.participants = active
        if room.host_id in removed or not active:
            del rooms[room_id]
            logger.info("Room %s deleted by inactivity sweep (dropped %s)", room_id, removed)
        else:
            prune_acknowledged(room)
            logger.debug("Dropped inactive participants %s from %s", removed, room_id)
        await self._store.set(rooms)
        return removed

    def _admit(self, rooms: RoomMap, room_id: str, user_id: str, name: str) -> Room:
        room = rooms.get(room_id)
        if room is None:
            raise RoomNotFoundError(f"Room {room_id} not found")

        now = self._clock()
        existing = room.get_participant(user_id)
        if existing is not None:
            existing.last_seen = now
            return room

        if len(room.participants) >= self._config.max_participants:
            raise RoomCapacityError(f"Room {room_id} is full")

        room.participants.append(Participant(id=user_id, name=name, joined_at=now, last_seen=now))
        return room

    def _unused_code(self, rooms: RoomMap) -> str:
        for _ in range(self._config.room_code_attempts):
            code = generate_room_code(
                self._config.room_code_length, self._config.room_code_alphabet
            )
            if code not in rooms:
                return code
            logger.debug("Room code %s already in use, retrying", code)
        raise RoomCodeExhaustedError(
            f"No unused room code after {self._config.room_code_attempts} attempts"
        )
