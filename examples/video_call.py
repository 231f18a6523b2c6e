"""Video call signaling between two participants.

Uses the mock media device and peer connections, so no camera or network
is needed. Shows:
- PairRoom.call() wiring a CallNegotiator to the room's signaling channel
- Offer/answer exchange and ICE candidates relayed through signaling
- State transitions IDLE -> OUTGOING/INCOMING -> ACTIVE -> ENDED -> IDLE
- Mute and camera toggles, which never touch signaling
- A permission failure mapped to user guidance

Run with:
    uv run python examples/video_call.py
"""

from __future__ import annotations

import asyncio

from pairroom import (
    CallSession,
    IceCandidate,
    InMemoryRoomStore,
    InMemorySignaling,
    MediaEnvironment,
    MediaPermissionError,
    MockMediaDevice,
    MockPeerConnectionFactory,
    PairRoom,
    SessionDescription,
    TrackKind,
    error_help,
)


async def settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


async def main() -> None:
    store = InMemoryRoomStore()
    signaling = InMemorySignaling()
    alice_pcs = MockPeerConnectionFactory()
    bob_pcs = MockPeerConnectionFactory()
    alice = PairRoom(store, signaling, media_device=MockMediaDevice(), peer_factory=alice_pcs)
    bob = PairRoom(store, signaling, media_device=MockMediaDevice(), peer_factory=bob_pcs)

    room_id = await alice.create_room("alice", "Alice")
    await bob.join_room(room_id, "bob", "Bob")

    alice_call = await alice.call(room_id, "alice")
    bob_call = await bob.call(room_id, "bob")

    def log(who: str):
        def _on_state(session: CallSession) -> None:
            print(f"  [{who}] {session.state} (muted={session.muted})")

        return _on_state

    alice_call.on_state_change(log("alice"))
    bob_call.on_state_change(log("bob"))

    # Bob answers as soon as the offer arrives
    async def on_incoming(offer: SessionDescription, is_video: bool, peer: str) -> None:
        print(f"  [bob] incoming {'video' if is_video else 'audio'} call from {peer}")
        await bob_call.accept_call(offer, is_video, peer)

    bob_call.on_incoming_call(on_incoming)

    print("=== Call setup ===")
    await alice_call.start_call(True, "bob")
    candidate = IceCandidate("candidate:1 1 udp 1 10.0.0.1 5000 typ host", "0", 0)
    await alice_pcs.last.simulate_ice_candidate(candidate)
    await settle()
    await alice_pcs.last.simulate_remote_track(TrackKind.VIDEO)
    print(f"Bob applied {len(bob_pcs.last.candidates)} ICE candidate(s)")

    print("\n=== Toggles ===")
    alice_call.toggle_mute()
    alice_call.toggle_video()

    print("\n=== Hang up ===")
    await alice_call.end_call("bob")
    await settle()

    print("\n=== Permission failure ===")
    insecure = MockMediaDevice(
        environment=MediaEnvironment(origin_scheme="http", hostname="chat.example.com")
    )
    failing = await alice.call(room_id, "alice", media_device=insecure)
    try:
        await failing.start_call(True, "bob")
    except MediaPermissionError as exc:
        print(f"  {exc.reason}: {error_help(exc.reason)}")

    await alice.close()
    await bob.close()
    await signaling.close()


if __name__ == "__main__":
    asyncio.run(main())
