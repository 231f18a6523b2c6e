"""Periodic per-participant maintenance tick."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from pairroom.core.lifecycle import RoomLifecycleManager
from pairroom.core.media import MediaShareTracker
from pairroom.core.retention import MessageRetentionEngine
from pairroom.models.room import SharedMedia

logger = logging.getLogger("pairroom.maintenance")

PendingMediaCallback = Callable[[SharedMedia], Coroutine[Any, Any, None]]


class MaintenanceScheduler:
    """Runs one participant's housekeeping on a fixed tick.

    Each tick, in order:

    1. refreshes the participant's ``last_seen`` (heartbeat),
    2. evicts expired messages,
    3. drops inactive participants,
    4. polls for pending media and announces items not seen before.

    Every step is idempotent and a failing step is logged and skipped, so a
    tick never raises. Call ``tick()`` directly for deterministic tests or
    ``start()`` to run it in the background.
    """

    def __init__(
        self,
        room_id: str,
        user_id: str,
        lifecycle: RoomLifecycleManager,
        retention: MessageRetentionEngine,
        media: MediaShareTracker,
        *,
        interval: float = 1.0,
    ) -> None:
        self.room_id = room_id
        self.user_id = user_id
        self._lifecycle = lifecycle
        self._retention = retention
        self._media = media
        self._interval = interval
        self._pending_callbacks: list[PendingMediaCallback] = []
        self._announced: set[str] = set()
        self._task: asyncio.Task[None] | None = None
        self.tick_count = 0

    def on_pending_media(self, callback: PendingMediaCallback) -> None:
        """Register a callback fired once per newly pending media item."""
        self._pending_callbacks.append(callback)

    async def tick(self) -> None:
        self.tick_count += 1
        await self._step("heartbeat", self._lifecycle.update_last_seen(self.room_id, self.user_id))
        await self._step("retention", self._retention.cleanup_expired_messages(self.room_id))
        await self._step("inactivity", self._lifecycle.remove_inactive_users(self.room_id))
        await self._step("media poll", self._poll_media())

    def start(self) -> None:
        """Start ticking in a background task."""
        if self._task is None:
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

    @property
    def running(self) -> bool:
        return self._task is not None

    async def _run(self) -> None:
        while True:
            await self.tick()
            await asyncio.sleep(self._interval)

    async def _step(self, name: str, operation: Coroutine[Any, Any, Any]) -> None:
        try:
            await operation
        except Exception:
            logger.exception("Maintenance step %r failed for room %s", name, self.room_id)

    async def _poll_media(self) -> None:
        pending = await self._media.get_pending_images(self.room_id, self.user_id)
        pending_ids = {item.id for item in pending}
        self._announced &= pending_ids
        for item in pending:
            if item.id in self._announced:
                continue
            self._announced.add(item.id)
            for callback in self._pending_callbacks:
                try:
                    await callback(item)
                except Exception:
                    logger.exception("Error in pending media callback for %s", item.id)
