"""Shared room store backends."""

from pairroom.store.base import RoomsCallback, RoomStore
from pairroom.store.memory import InMemoryRoomStore

__all__ = [
    "InMemoryRoomStore",
    "RoomStore",
    "RoomsCallback",
]
