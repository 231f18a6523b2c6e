"""In-memory implementation of RoomStore."""

from __future__ import annotations

import logging
from typing import Any
from uuid import uuid4

from pairroom.models.room import RoomMap, rooms_from_wire, rooms_to_wire
from pairroom.store.base import RoomsCallback, RoomStore

logger = logging.getLogger("pairroom.store")


class InMemoryRoomStore(RoomStore):
    """Dict-backed store for development and testing.

    One instance stands for one logical store: several participants that
    share the instance observe each other's writes. The mapping is kept in
    its serialized wire form, so every ``get`` and every notification hands
    out fresh objects that never alias stored state.
    """

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}
        self._subscribers: dict[str, RoomsCallback] = {}
        self._write_count = 0

    async def get(self) -> RoomMap:
        return rooms_from_wire(self._data)

    async def set(self, rooms: RoomMap) -> None:
        self._data = rooms_to_wire(rooms)
        self._write_count += 1
        logger.debug("Store write #%d (%d rooms)", self._write_count, len(self._data))
        for sub_id, callback in list(self._subscribers.items()):
            try:
                await callback(rooms_from_wire(self._data))
            except Exception:
                logger.exception("Error in store callback for subscription %s", sub_id)

    async def subscribe(self, callback: RoomsCallback) -> str:
        sub_id = uuid4().hex
        self._subscribers[sub_id] = callback
        return sub_id

    async def unsubscribe(self, subscription_id: str) -> bool:
        return self._subscribers.pop(subscription_id, None) is not None

    async def close(self) -> None:
        self._subscribers.clear()

    @property
    def subscription_count(self) -> int:
        """Return the number of active subscriptions."""
        return len(self._subscribers)

    @property
    def write_count(self) -> int:
        """Return the number of ``set`` calls performed so far."""
        return self._write_count
