"""PairRoom quickstart: two participants chatting in an ephemeral room.

Alice and Bob each run their own ``PairRoom`` over the same store. Shows:
- Creating a room and joining it with the room code
- Sending messages that expire after the retention TTL
- Sharing a view-once image that disappears after Bob views it
- Room-changed notifications

Run with:
    uv run python examples/quickstart.py
"""

from __future__ import annotations

import asyncio

from pairroom import InMemoryRoomStore, PairRoom, Room, encode_image_payload


async def main() -> None:
    # --- Setup -----------------------------------------------------------
    store = InMemoryRoomStore()
    alice = PairRoom(store)
    bob = PairRoom(store)

    room_id = await alice.create_room("alice", "Alice")
    print(f"Alice created room {room_id}")

    async def on_change(room: Room | None) -> None:
        if room is None:
            print("  [bob] room is gone")
        else:
            print(f"  [bob] room now has {[p.name for p in room.participants]}")

    await bob.on_room_changed(room_id, on_change)

    joined = await bob.join_room(room_id, "bob", "Bob")
    print(f"Bob joined: {joined}")

    # A third participant is refused
    carol = PairRoom(store)
    print(f"Carol joined: {await carol.join_room(room_id, 'carol', 'Carol')}")

    # --- Messages --------------------------------------------------------
    await alice.send_message(room_id, "hi Bob", "alice", "Alice")
    await bob.send_message(room_id, "hey!", "bob", "Bob")
    for message in await alice.get_messages(room_id):
        remaining = alice.retention.remaining_seconds(message)
        print(f"  {message.sender_name}: {message.content} (expires in {remaining:.0f}s)")

    # --- View-once media -------------------------------------------------
    payload = encode_image_payload(b"\x89PNG fake image bytes", "image/png")
    media_id = await alice.share_image(room_id, payload, "alice", "Alice")
    pending = await bob.get_pending_images(room_id, "bob")
    print(f"Bob has {len(pending)} pending image(s)")

    if media_id is not None:
        shown = await bob.view_image(room_id, media_id, "bob")
        print(f"Bob viewed image: {shown is not None}")
        again = await bob.view_image(room_id, media_id, "bob")
        print(f"Second view returns: {again}")
        print(f"Hide it at {bob.media.auto_hide_deadline():%H:%M:%S}")

    # --- Teardown --------------------------------------------------------
    await alice.leave_room(room_id, "alice")  # host leaving deletes the room
    await asyncio.sleep(0)
    for pr in (alice, bob, carol):
        await pr.close()


if __name__ == "__main__":
    asyncio.run(main())
