"""Redis pub/sub signaling backend."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any
from uuid import uuid4

from pairroom.config import RedisConfig
from pairroom.models.signal import SignalEnvelope
from pairroom.signaling.base import SignalCallback, SignalingBackend

logger = logging.getLogger("pairroom.signaling")


class RedisSignaling(SignalingBackend):
    """Signaling bus over Redis pub/sub, one channel per room.

    Each subscription owns a ``PubSub`` connection and a reader task. Redis
    pub/sub is fire-and-forget: envelopes published while nobody listens
    are lost, which the negotiator tolerates like any other reordering.
    """

    def __init__(self, config: RedisConfig | None = None, client: Any = None) -> None:
        try:
            import redis.asyncio as _redis
        except ImportError as exc:
            raise ImportError(
                "redis is required for RedisSignaling. "
                "Install it with: pip install pairroom[redis]"
            ) from exc
        self._config = config or RedisConfig()
        if client is None:
            password = self._config.password
            client = _redis.from_url(
                self._config.url,
                password=password.get_secret_value() if password else None,
                decode_responses=True,
                socket_timeout=self._config.timeout,
            )
            self._owns_client = True
        else:
            self._owns_client = False
        self._redis = client
        self._readers: dict[str, tuple[Any, asyncio.Task[None]]] = {}

    async def publish(self, room_id: str, envelope: SignalEnvelope) -> None:
        await self._redis.publish(
            self._config.signal_channel(room_id), json.dumps(envelope.to_dict())
        )

    async def subscribe(self, room_id: str, callback: SignalCallback) -> str:
        sub_id = uuid4().hex
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(self._config.signal_channel(room_id))
        task = asyncio.create_task(self._read(sub_id, pubsub, callback))
        self._readers[sub_id] = (pubsub, task)
        return sub_id

    async def unsubscribe(self, subscription_id: str) -> bool:
        entry = self._readers.pop(subscription_id, None)
        if entry is None:
            return False
        pubsub, task = entry
        if task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception:
                logger.warning("Signaling reader %s had failed", subscription_id, exc_info=True)
        await pubsub.aclose()
        return True

    async def close(self) -> None:
        for sub_id in list(self._readers):
            await self.unsubscribe(sub_id)
        if self._owns_client:
            await self._redis.aclose()

    async def _read(self, sub_id: str, pubsub: Any, callback: SignalCallback) -> None:
        async for message in pubsub.listen():
            if sub_id not in self._readers:
                return
            if message.get("type") != "message":
                continue
            try:
                envelope = SignalEnvelope.from_dict(json.loads(message["data"]))
            except Exception:
                logger.warning(
                    "Ignoring malformed signaling envelope on %s",
                    message.get("channel"),
                    exc_info=True,
                )
                continue
            try:
                await callback(envelope)
            except Exception:
                logger.exception("Error in signaling callback for subscription %s", sub_id)
