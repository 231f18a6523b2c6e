"""Redis store and signaling backends.

Demonstrates how to share rooms and signaling between processes through
Redis instead of the default in-memory backends. Shows:
- Configuring RedisRoomStore and RedisSignaling from a RedisConfig
- Room-changed notifications delivered through Redis pub/sub
- Falling back to in-memory backends when Redis is unavailable

Run with:
    REDIS_URL=redis://localhost:6379/0 uv run python examples/redis_store.py

Without REDIS_URL, this example falls back to the in-memory backends.
"""

from __future__ import annotations

import asyncio
import os

from pairroom import InMemoryRoomStore, InMemorySignaling, PairRoom, RedisConfig, Room


async def main() -> None:
    redis_url = os.environ.get("REDIS_URL", "")

    if redis_url:
        # Production: every process points at the same Redis
        from pairroom.signaling.redis import RedisSignaling
        from pairroom.store.redis import RedisRoomStore

        config = RedisConfig(url=redis_url)
        store = RedisRoomStore(config)
        signaling = RedisSignaling(config)
        print(f"Using Redis ({redis_url[:30]}...)")
    else:
        store = InMemoryRoomStore()
        signaling = InMemorySignaling()
        print("Using in-memory backends (set REDIS_URL for Redis)")

    kit = PairRoom(store, signaling)

    async def on_change(room: Room | None) -> None:
        count = len(room.participants) if room else 0
        print(f"  room changed: {count} participant(s)")

    room_id = await kit.create_room("alice", "Alice")
    await kit.on_room_changed(room_id, on_change)
    await kit.join_room(room_id, "bob", "Bob")
    await kit.leave_room(room_id, "alice")
    await asyncio.sleep(0.2)

    await kit.close()
    await signaling.close()
    await store.close()


if __name__ == "__main__":
    asyncio.run(main())
