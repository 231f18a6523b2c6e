"""Redis implementation of RoomStore using redis.asyncio."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from typing import Any
from uuid import uuid4

from pairroom.config import RedisConfig
from pairroom.models.room import RoomMap, rooms_from_wire, rooms_to_wire
from pairroom.store.base import RoomsCallback, RoomStore

logger = logging.getLogger("pairroom.store")


class RedisRoomStore(RoomStore):
    """Room store shared across processes through Redis.

    The mapping lives as one JSON document under ``config.key``. Every
    ``set`` overwrites that key and then publishes the same document on
    ``config.rooms_channel``, so subscribers in every process (the writer
    included) receive it. ``GET``/``SET`` are not wrapped in a transaction:
    the store keeps last-write-wins semantics.
    """

    def __init__(self, config: RedisConfig | None = None, client: Any = None) -> None:
        try:
            import redis.asyncio as _redis
        except ImportError as exc:
            raise ImportError(
                "redis is required for RedisRoomStore. "
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
        self._subscribers: dict[str, RoomsCallback] = {}
        self._pubsub: Any = None
        self._listener: asyncio.Task[None] | None = None

    async def get(self) -> RoomMap:
        raw = await self._redis.get(self._config.key)
        if not raw:
            return {}
        try:
            return rooms_from_wire(json.loads(raw))
        except ValueError:
            logger.warning("Discarding unreadable room mapping under %s", self._config.key)
            return {}

    async def set(self, rooms: RoomMap) -> None:
        payload = json.dumps(rooms_to_wire(rooms))
        await self._redis.set(self._config.key, payload)
        await self._redis.publish(self._config.rooms_channel, payload)
        logger.debug("Published %d rooms on %s", len(rooms), self._config.rooms_channel)

    async def subscribe(self, callback: RoomsCallback) -> str:
        sub_id = uuid4().hex
        self._subscribers[sub_id] = callback
        if self._listener is None:
            self._pubsub = self._redis.pubsub()
            await self._pubsub.subscribe(self._config.rooms_channel)
            self._listener = asyncio.create_task(self._listen())
        return sub_id

    async def unsubscribe(self, subscription_id: str) -> bool:
        removed = self._subscribers.pop(subscription_id, None) is not None
        if not self._subscribers:
            await self._stop_listener()
        return removed

    async def close(self) -> None:
        self._subscribers.clear()
        await self._stop_listener()
        if self._owns_client:
            await self._redis.aclose()

    async def __aenter__(self) -> RedisRoomStore:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def _stop_listener(self) -> None:
        if self._listener is not None:
            self._listener.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._listener
            self._listener = None
        if self._pubsub is not None:
            await self._pubsub.unsubscribe(self._config.rooms_channel)
            await self._pubsub.aclose()
            self._pubsub = None

    async def _listen(self) -> None:
        """Background task fanning published mappings out to local callbacks."""
        async for message in self._pubsub.listen():
            if message.get("type") != "message":
                continue
            try:
                data = json.loads(message["data"])
            except ValueError:
                logger.warning("Ignoring malformed room broadcast")
                continue
            for sub_id, callback in list(self._subscribers.items()):
                try:
                    await callback(rooms_from_wire(data))
                except Exception:
                    logger.exception("Error in store callback for subscription %s", sub_id)
