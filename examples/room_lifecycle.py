"""Room lifecycle: heartbeat, inactivity sweep and message expiry.

Drives the maintenance tick with a fake clock so the demo runs instantly.
Shows:
- MaintenanceScheduler.tick() in the order heartbeat, retention, inactivity, media
- A silent guest being dropped after the inactivity timeout
- Messages evicted by the retention sweep once their TTL passes
- Pending-media notifications announced once per item

Run with:
    uv run python examples/room_lifecycle.py
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

from pairroom import InMemoryRoomStore, PairRoom, PairRoomConfig, SharedMedia


class DemoClock:
    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


async def main() -> None:
    clock = DemoClock()
    config = PairRoomConfig(message_ttl_seconds=10, inactivity_timeout_seconds=5)
    kit = PairRoom(InMemoryRoomStore(), config=config, clock=clock)

    room_id = await kit.create_room("alice", "Alice")
    await kit.join_room(room_id, "bob", "Bob")
    await kit.send_message(room_id, "this will vanish", "alice", "Alice")

    tick = kit.maintenance(room_id, "alice")

    async def on_pending(item: SharedMedia) -> None:
        print(f"  [alice] new image from {item.sender_name}")

    tick.on_pending_media(on_pending)
    await kit.share_image(room_id, "data:image/png;base64,AAAA", "bob", "Bob")

    # Only Alice ticks; Bob goes silent.
    for second in range(1, 13):
        clock.advance(1)
        await tick.tick()
        room = await kit.get_room(room_id)
        if room is None:
            print(f"t={second:2}s room deleted")
            break
        names = [p.name for p in room.participants]
        print(f"t={second:2}s participants={names} messages={len(room.messages)}")

    await kit.close()


if __name__ == "__main__":
    asyncio.run(main())
