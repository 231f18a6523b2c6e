"""Shared test fixtures and helpers."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from pairroom.call.mock import MockMediaDevice, MockPeerConnectionFactory
from pairroom.config import PairRoomConfig
from pairroom.core.framework import PairRoom
from pairroom.signaling.memory import InMemorySignaling
from pairroom.store.memory import InMemoryRoomStore


class FakeClock:
    """Manually advanced clock, injected wherever a ``Clock`` is accepted."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def advance() -> Callable[[int], Coroutine[Any, Any, None]]:
    """Yield control to let pending tasks run without real delay.

    Signaling subscriptions drain their queues from background tasks::

        await advance()       # 5 yields (default)
        await advance(10)     # 10 yields for heavier workloads
    """

    async def _advance(n: int = 5) -> None:
        for _ in range(n):
            await asyncio.sleep(0)

    return _advance


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config() -> PairRoomConfig:
    return PairRoomConfig()


@pytest.fixture
def store() -> InMemoryRoomStore:
    return InMemoryRoomStore()


@pytest.fixture
async def signaling() -> Any:
    backend = InMemorySignaling()
    yield backend
    await backend.close()


@pytest.fixture
async def kit(store: InMemoryRoomStore, signaling: InMemorySignaling, clock: FakeClock) -> Any:
    """Alice's process."""
    pr = PairRoom(
        store,
        signaling,
        clock=clock,
        media_device=MockMediaDevice(),
        peer_factory=MockPeerConnectionFactory(),
    )
    yield pr
    await pr.close()


@pytest.fixture
async def peer_kit(
    store: InMemoryRoomStore, signaling: InMemorySignaling, clock: FakeClock
) -> Any:
    """Bob's process, sharing the same logical store and signaling bus."""
    pr = PairRoom(
        store,
        signaling,
        clock=clock,
        media_device=MockMediaDevice(),
        peer_factory=MockPeerConnectionFactory(),
    )
    yield pr
    await pr.close()
