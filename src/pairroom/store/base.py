"""Abstract base class for the shared room store."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Coroutine
from typing import Any

from pairroom.models.room import RoomMap

RoomsCallback = Callable[[RoomMap], Coroutine[Any, Any, None]]


class RoomStore(ABC):
    """Shared, weakly-consistent container for every room record.

    The store holds a single mapping of room id to room. ``set`` replaces
    the whole mapping and notifies every subscriber, local or remote, with
    the new mapping. There are no transactions: callers read, modify and
    write back, and the later of two racing writes silently wins.

    Implement this ABC to plug in a shared backend. The library ships with
    ``InMemoryRoomStore`` for single-process use and tests, and
    ``RedisRoomStore`` for cross-process deployments.
    """

    @abstractmethod
    async def get(self) -> RoomMap:
        """Return a private copy of the current mapping (empty if unset)."""
        ...

    @abstractmethod
    async def set(self, rooms: RoomMap) -> None:
        """Replace the whole mapping and broadcast it to subscribers."""
        ...

    @abstractmethod
    async def subscribe(self, callback: RoomsCallback) -> str:
        """Register for change notifications.

        Returns:
            A subscription ID that can be used to unsubscribe.
        """
        ...

    @abstractmethod
    async def unsubscribe(self, subscription_id: str) -> bool:
        """Stop change notifications.

        Returns:
            True if the subscription existed and was removed.
        """
        ...

    async def close(self) -> None:
        """Clean up resources.

        Override this method in subclasses that need cleanup.
        The default implementation does nothing.
        """
        return None
