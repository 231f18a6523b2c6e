"""PairRoom facade tying store, managers, signaling and calls together."""

from __future__ import annotations

import logging
from collections.abc import Callable, Coroutine
from typing import Any

from pairroom.call.base import MediaDevice, PeerConnectionFactory
from pairroom.call.negotiator import CallNegotiator
from pairroom.config import PairRoomConfig
from pairroom.core._helpers import Clock, utcnow
from pairroom.core.lifecycle import RoomLifecycleManager
from pairroom.core.maintenance import MaintenanceScheduler
from pairroom.core.media import MediaShareTracker
from pairroom.core.retention import MessageRetentionEngine
from pairroom.errors import ParticipantNotFoundError, RoomNotFoundError
from pairroom.models.room import Message, Room, RoomMap, SharedMedia
from pairroom.signaling.base import SignalingBackend, SignalingChannel
from pairroom.signaling.memory import InMemorySignaling
from pairroom.store.base import RoomStore
from pairroom.store.memory import InMemoryRoomStore

logger = logging.getLogger("pairroom.framework")

RoomChangedCallback = Callable[[Room | None], Coroutine[Any, Any, None]]


class PairRoom:
    """Entry point for one participant process.

    Two processes coordinate by pointing their ``PairRoom`` at the same
    logical store and signaling backend. Neither is authoritative.
    """

    def __init__(
        self,
        store: RoomStore | None = None,
        signaling: SignalingBackend | None = None,
        *,
        config: PairRoomConfig | None = None,
        clock: Clock = utcnow,
        media_device: MediaDevice | None = None,
        peer_factory: PeerConnectionFactory | None = None,
    ) -> None:
        """Initialise the facade.

        Args:
            store: Shared room store. Defaults to ``InMemoryRoomStore``.
            signaling: Signaling backend. Defaults to ``InMemorySignaling``.
                For multi-process deployments supply ``RedisSignaling`` or
                another distributed implementation.
            config: Tunables; defaults to ``PairRoomConfig()``.
            clock: Source of "now", injectable for tests.
            media_device: Default capture device for ``call()``.
            peer_factory: Default peer connection factory for ``call()``.
        """
        self._store = store or InMemoryRoomStore()
        self._signaling = signaling or InMemorySignaling()
        self._config = config or PairRoomConfig()
        self._clock = clock
        self._media_device = media_device
        self._peer_factory = peer_factory
        self.lifecycle = RoomLifecycleManager(self._store, self._config, clock)
        self.retention = MessageRetentionEngine(self._store, self._config, clock)
        self.media = MediaShareTracker(self._store, self._config, clock)
        self._schedulers: list[MaintenanceScheduler] = []
        self._negotiators: list[CallNegotiator] = []
        self._channels: list[SignalingChannel] = []
        self._room_subscriptions: list[str] = []

    @property
    def store(self) -> RoomStore:
        return self._store

    @property
    def signaling(self) -> SignalingBackend:
        return self._signaling

    @property
    def config(self) -> PairRoomConfig:
        return self._config

    # -- Rooms ---------------------------------------------------------

    async def create_room(self, user_id: str, name: str) -> str:
        return await self.lifecycle.create_room(user_id, name)

    async def join_room(self, room_id: str, user_id: str, name: str) -> bool:
        return await self.lifecycle.join_room(room_id, user_id, name)

    async def leave_room(self, room_id: str, user_id: str) -> None:
        await self.lifecycle.leave_room(room_id, user_id)

    async def get_room(self, room_id: str) -> Room | None:
        return await self.lifecycle.get_room(room_id)

    async def require_participant(self, room_id: str, user_id: str) -> Room:
        """Return the room, raising if it or the participant is missing."""
        room = await self.lifecycle.get_room(room_id)
        if room is None:
            raise RoomNotFoundError(f"Room {room_id} not found")
        if not room.has_participant(user_id):
            raise ParticipantNotFoundError(f"Participant {user_id} not found in room {room_id}")
        return room

    async def on_room_changed(self, room_id: str, callback: RoomChangedCallback) -> str:
        """Notify *callback* with the room after every store write (None once deleted)."""

        async def _relay(rooms: RoomMap) -> None:
            await callback(rooms.get(room_id))

        sub_id = await self._store.subscribe(_relay)
        self._room_subscriptions.append(sub_id)
        return sub_id

    async def off_room_changed(self, subscription_id: str) -> bool:
        if subscription_id in self._room_subscriptions:
            self._room_subscriptions.remove(subscription_id)
        return await self._store.unsubscribe(subscription_id)

    # -- Messages ------------------------------------------------------

    async def send_message(
        self, room_id: str, content: str, sender_id: str, sender_name: str
    ) -> bool:
        return await self.retention.send_message(room_id, content, sender_id, sender_name)

    async def cleanup_expired_messages(self, room_id: str) -> int:
        return await self.retention.cleanup_expired_messages(room_id)

    async def get_messages(self, room_id: str) -> list[Message]:
        return await self.retention.get_messages(room_id)

    # -- View-once media -----------------------------------------------

    async def share_image(
        self, room_id: str, payload: str, sender_id: str, sender_name: str
    ) -> str | None:
        return await self.media.share_image(room_id, payload, sender_id, sender_name)

    async def view_image(self, room_id: str, media_id: str, user_id: str) -> str | None:
        return await self.media.view_image(room_id, media_id, user_id)

    async def get_pending_images(self, room_id: str, user_id: str) -> list[SharedMedia]:
        return await self.media.get_pending_images(room_id, user_id)

    # -- Maintenance and calls -----------------------------------------

    def maintenance(self, room_id: str, user_id: str) -> MaintenanceScheduler:
        """Build the participant's maintenance tick (not started)."""
        scheduler = MaintenanceScheduler(
            room_id,
            user_id,
            self.lifecycle,
            self.retention,
            self.media,
            interval=self._config.tick_interval_seconds,
        )
        self._schedulers.append(scheduler)
        return scheduler

    async def call(
        self,
        room_id: str,
        user_id: str,
        *,
        media_device: MediaDevice | None = None,
        peer_factory: PeerConnectionFactory | None = None,
    ) -> CallNegotiator:
        """Build a negotiator for *user_id* on the room's signaling channel.

        Raises:
            RoomNotFoundError: The room does not exist.
            ParticipantNotFoundError: *user_id* is not in the room.
            ValueError: No media device or peer factory is available.
        """
        await self.require_participant(room_id, user_id)
        device = media_device or self._media_device
        factory = peer_factory or self._peer_factory
        if device is None or factory is None:
            raise ValueError("A media device and a peer connection factory are required")

        channel = SignalingChannel(self._signaling, room_id, user_id)
        negotiator = CallNegotiator(
            channel, device, factory, ice_servers=self._config.ice_servers
        )
        await negotiator.attach()
        self._channels.append(channel)
        self._negotiators.append(negotiator)
        logger.debug("Call negotiator ready for %s in %s", user_id, room_id)
        return negotiator

    async def close(self) -> None:
        """Stop ticks, hang up calls and drop subscriptions made by this facade."""
        for scheduler in self._schedulers:
            await scheduler.stop()
        for negotiator in self._negotiators:
            await negotiator.close()
        for channel in self._channels:
            await channel.close()
        for sub_id in self._room_subscriptions:
            await self._store.unsubscribe(sub_id)
        self._schedulers.clear()
        self._negotiators.clear()
        self._channels.clear()
        self._room_subscriptions.clear()
