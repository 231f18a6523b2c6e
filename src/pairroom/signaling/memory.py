"""In-process signaling bus with controllable delivery."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import random
from collections import deque
from collections.abc import Callable
from uuid import uuid4

from pairroom.models.signal import SignalEnvelope
from pairroom.signaling.base import SignalCallback, SignalingBackend

logger = logging.getLogger("pairroom.signaling")

HoldPredicate = Callable[[SignalEnvelope], bool]


class InMemorySignaling(SignalingBackend):
    """Signaling bus for participants sharing one event loop.

    Every subscriber owns a mailbox drained by its own task, so publishing
    never waits on a consumer and two subscribers can observe the same
    envelope at different times. Delivery is FIFO per mailbox unless told
    otherwise. The bus can reproduce what a real broker does to the
    offer/answer exchange:

    - ``shuffle_seed``: each drained batch is delivered in a seeded random
      order.
    - ``duplicate``: every envelope is delivered twice.
    - ``hold(predicate)``: matching envelopes are parked until ``release()``.

    For multi-process setups use ``RedisSignaling``.

    Example:
        bus = InMemorySignaling()
        bus.hold(lambda e: e.type == SignalType.OFFER)
        ...                  # candidates overtake the offer
        bus.release()
    """

    def __init__(
        self,
        max_queue_size: int = 256,
        *,
        shuffle_seed: int | None = None,
        duplicate: bool = False,
    ) -> None:
        """Initialize the bus.

        Args:
            max_queue_size: Envelopes buffered per subscriber. The oldest
                undelivered envelope is dropped when a mailbox is full.
            shuffle_seed: Seed for reordering each drained batch. ``None``
                keeps publication order.
            duplicate: Deliver every envelope twice.
        """
        self._max_queue_size = max_queue_size
        self._rng = random.Random(shuffle_seed) if shuffle_seed is not None else None
        self._duplicate = duplicate
        self._mailboxes: dict[str, _Mailbox] = {}
        self._hold: HoldPredicate | None = None
        self._held: list[tuple[str, SignalEnvelope]] = []
        self._closed = False

    async def publish(self, room_id: str, envelope: SignalEnvelope) -> None:
        if self._closed:
            return
        if self._hold is not None and self._hold(envelope):
            logger.debug("Holding %s envelope %s", envelope.type, envelope.id)
            self._held.append((room_id, envelope))
            return
        self._deliver(room_id, envelope)

    async def subscribe(self, room_id: str, callback: SignalCallback) -> str:
        sub_id = uuid4().hex
        self._mailboxes[sub_id] = _Mailbox(
            sub_id, room_id, callback, self._max_queue_size, self._rng
        )
        return sub_id

    async def unsubscribe(self, subscription_id: str) -> bool:
        mailbox = self._mailboxes.pop(subscription_id, None)
        if mailbox is None:
            return False
        await mailbox.close()
        return True

    async def close(self) -> None:
        """Stop every mailbox and drop anything still held."""
        self._closed = True
        self._held.clear()
        mailboxes = list(self._mailboxes.values())
        self._mailboxes.clear()
        for mailbox in mailboxes:
            await mailbox.close()

    def hold(self, predicate: HoldPredicate) -> None:
        """Park envelopes matching *predicate* instead of delivering them."""
        self._hold = predicate

    def release(self) -> int:
        """Stop holding and deliver every parked envelope.

        Returns:
            The number of envelopes released.
        """
        held, self._held = self._held, []
        self._hold = None
        for room_id, envelope in held:
            self._deliver(room_id, envelope)
        return len(held)

    @property
    def held(self) -> list[SignalEnvelope]:
        return [envelope for _, envelope in self._held]

    @property
    def subscription_count(self) -> int:
        """Return the number of active subscriptions."""
        return len(self._mailboxes)

    def _deliver(self, room_id: str, envelope: SignalEnvelope) -> None:
        copies = 2 if self._duplicate else 1
        for mailbox in list(self._mailboxes.values()):
            if mailbox.room_id != room_id:
                continue
            for _ in range(copies):
                mailbox.put(envelope)


class _Mailbox:
    """Buffered envelopes for one subscriber and the task that drains them."""

    def __init__(
        self,
        sub_id: str,
        room_id: str,
        callback: SignalCallback,
        capacity: int,
        rng: random.Random | None,
    ) -> None:
        self.sub_id = sub_id
        self.room_id = room_id
        self._callback = callback
        self._capacity = capacity
        self._rng = rng
        self._pending: deque[SignalEnvelope] = deque()
        self._ready = asyncio.Event()
        self._open = True
        self._task = asyncio.create_task(self._drain())

    def put(self, envelope: SignalEnvelope) -> None:
        if not self._open:
            return
        if len(self._pending) >= self._capacity:
            dropped = self._pending.popleft()
            logger.warning(
                "Mailbox %s full, dropping %s envelope %s", self.sub_id, dropped.type, dropped.id
            )
        self._pending.append(envelope)
        self._ready.set()

    async def close(self) -> None:
        self._open = False
        self._pending.clear()
        # A callback may unsubscribe its own mailbox; the drain loop then
        # stops on the next check instead of being cancelled mid-callback.
        if self._task is asyncio.current_task() or self._task.done():
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task

    async def _drain(self) -> None:
        while self._open:
            await self._ready.wait()
            self._ready.clear()
            batch = list(self._pending)
            self._pending.clear()
            if self._rng is not None:
                self._rng.shuffle(batch)
            for envelope in batch:
                if not self._open:
                    return
                try:
                    await self._callback(envelope)
                except Exception:
                    logger.exception("Error in signaling callback for mailbox %s", self.sub_id)
