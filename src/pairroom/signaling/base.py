"""Signaling backend ABC and the per-room channel handle."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Coroutine
from typing import Any

from pairroom.models.signal import SignalEnvelope

logger = logging.getLogger("pairroom.signaling")

SignalCallback = Callable[[SignalEnvelope], Coroutine[Any, Any, None]]


class SignalingBackend(ABC):
    """Abstract base for broadcast signaling transports.

    A backend is a plain pub/sub bus keyed by room id. Every envelope
    published for a room reaches every subscriber of that room; there is no
    per-recipient filtering and no ordering guarantee. Delivery may repeat.

    The library ships with ``InMemorySignaling`` for single-process use and
    ``RedisSignaling`` for cross-process deployments.
    """

    @abstractmethod
    async def publish(self, room_id: str, envelope: SignalEnvelope) -> None:
        """Publish an envelope to every subscriber of the room."""
        ...

    @abstractmethod
    async def subscribe(self, room_id: str, callback: SignalCallback) -> str:
        """Subscribe to a room's envelopes.

        Returns:
            A subscription ID that can be used to unsubscribe.
        """
        ...

    @abstractmethod
    async def unsubscribe(self, subscription_id: str) -> bool:
        """Unsubscribe.

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


class SignalingChannel:
    """One participant's handle on a room's signaling channel.

    Example:
        channel = SignalingChannel(backend, "ABC123", participant_id="alice")
        await channel.on_addressed(handle_envelope)
        await channel.send(SignalEnvelope(type=SignalType.CALL_END, to_id="bob"))
    """

    def __init__(self, backend: SignalingBackend, room_id: str, participant_id: str) -> None:
        self._backend = backend
        self.room_id = room_id
        self.participant_id = participant_id
        self._subscriptions: list[str] = []

    async def send(self, envelope: SignalEnvelope) -> SignalEnvelope:
        """Stamp sender and room on *envelope* and publish it."""
        envelope.from_id = self.participant_id
        envelope.room_id = self.room_id
        logger.debug(
            "Sending %s from %s to %s in room %s",
            envelope.type,
            envelope.from_id,
            envelope.to_id,
            self.room_id,
        )
        await self._backend.publish(self.room_id, envelope)
        return envelope

    async def on_message(self, callback: SignalCallback) -> str:
        """Deliver every envelope published on this room, unfiltered."""
        sub_id = await self._backend.subscribe(self.room_id, callback)
        self._subscriptions.append(sub_id)
        return sub_id

    async def on_addressed(self, callback: SignalCallback) -> str:
        """Deliver only envelopes addressed to this participant by someone else."""

        async def _filtered(envelope: SignalEnvelope) -> None:
            if envelope.to_id != self.participant_id:
                return
            if envelope.from_id == self.participant_id:
                return
            await callback(envelope)

        return await self.on_message(_filtered)

    async def unsubscribe(self, subscription_id: str) -> bool:
        if subscription_id in self._subscriptions:
            self._subscriptions.remove(subscription_id)
        return await self._backend.unsubscribe(subscription_id)

    async def close(self) -> None:
        """Drop every subscription made through this handle."""
        for sub_id in list(self._subscriptions):
            await self._backend.unsubscribe(sub_id)
        self._subscriptions.clear()
