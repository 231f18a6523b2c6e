"""Mock media device and peer connection for testing."""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

from pairroom.call.base import (
    IceCandidateCallback,
    LocalMedia,
    MediaDevice,
    MediaTrack,
    PeerConnection,
    RemoteTrackCallback,
)
from pairroom.call.permissions import MediaEnvironment, preflight
from pairroom.errors import MediaPermissionError, NegotiationError
from pairroom.models.enums import PermissionReason, TrackKind
from pairroom.models.signal import IceCandidate, SessionDescription


@dataclass
class MockCall:
    """Record of a call made to a mock collaborator."""

    method: str
    args: dict[str, Any] = field(default_factory=dict)


class MockMediaTrack(MediaTrack):
    def __init__(self, kind: TrackKind) -> None:
        self.id = uuid4().hex
        self._kind = kind
        self._enabled = True
        self.stopped = False

    @property
    def kind(self) -> TrackKind:
        return self._kind

    @property
    def enabled(self) -> bool:
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        self._enabled = value

    def stop(self) -> None:
        self.stopped = True


class MockMediaDevice(MediaDevice):
    """Mock capture device.

    Example:
        device = MockMediaDevice()
        media = await device.acquire(video=True)
        assert [t.kind for t in media.tracks] == ["audio", "video"]

        # Refuse access
        device = MockMediaDevice(fail_with=PermissionReason.CAMERA_PERMISSION_DENIED)

        # Hold acquisition until the test releases it
        gate = asyncio.Event()
        device = MockMediaDevice(gate=gate)
    """

    def __init__(
        self,
        *,
        fail_with: PermissionReason | None = None,
        environment: MediaEnvironment | None = None,
        gate: asyncio.Event | None = None,
    ) -> None:
        self.fail_with = fail_with
        self.environment = environment
        self.gate = gate
        self.calls: list[MockCall] = []
        self.acquired: list[LocalMedia] = []

    async def acquire(self, *, video: bool) -> LocalMedia:
        self.calls.append(MockCall(method="acquire", args={"video": video}))
        if self.environment is not None:
            preflight(self.environment, video=video)
        if self.fail_with is not None:
            raise MediaPermissionError(self.fail_with)
        if self.gate is not None:
            await self.gate.wait()

        tracks: list[MediaTrack] = [MockMediaTrack(TrackKind.AUDIO)]
        if video:
            tracks.append(MockMediaTrack(TrackKind.VIDEO))
        media = LocalMedia(tracks=tracks)
        self.acquired.append(media)
        return media


class MockPeerConnection(PeerConnection):
    """Mock negotiation session.

    Tracks every call and mirrors the ordering rules of a real peer
    connection: an answer needs a remote offer, and remote candidates are
    rejected until a remote description is set. Use ``simulate_*`` helpers
    to fire the connection's callbacks.
    """

    def __init__(self, ice_servers: list[str] | None = None) -> None:
        self.id = uuid4().hex
        self.ice_servers = list(ice_servers or [])
        self.calls: list[MockCall] = []
        self.local_tracks: list[MediaTrack] = []
        self.local_description: SessionDescription | None = None
        self.remote_description: SessionDescription | None = None
        self.candidates: list[IceCandidate] = []
        self.closed = False
        self._track_callbacks: list[RemoteTrackCallback] = []
        self._ice_callbacks: list[IceCandidateCallback] = []

    def add_track(self, track: MediaTrack) -> None:
        self.calls.append(MockCall(method="add_track", args={"kind": track.kind}))
        self.local_tracks.append(track)

    async def create_offer(self) -> SessionDescription:
        self.calls.append(MockCall(method="create_offer"))
        return SessionDescription(type="offer", sdp=f"mock-offer-{self.id}")

    async def create_answer(self) -> SessionDescription:
        self.calls.append(MockCall(method="create_answer"))
        if self.remote_description is None:
            raise NegotiationError("Cannot answer without a remote offer")
        return SessionDescription(type="answer", sdp=f"mock-answer-{self.id}")

    async def set_local_description(self, description: SessionDescription) -> None:
        self.calls.append(
            MockCall(method="set_local_description", args={"type": description.type})
        )
        self.local_description = description

    async def set_remote_description(self, description: SessionDescription) -> None:
        self.calls.append(
            MockCall(method="set_remote_description", args={"type": description.type})
        )
        self.remote_description = description

    async def add_ice_candidate(self, candidate: IceCandidate) -> None:
        self.calls.append(MockCall(method="add_ice_candidate", args={"candidate": candidate}))
        if self.remote_description is None:
            raise NegotiationError("Remote description not set")
        self.candidates.append(candidate)

    async def close(self) -> None:
        self.calls.append(MockCall(method="close"))
        self.closed = True

    def on_track(self, callback: RemoteTrackCallback) -> None:
        self._track_callbacks.append(callback)

    def on_ice_candidate(self, callback: IceCandidateCallback) -> None:
        self._ice_callbacks.append(callback)

    async def simulate_remote_track(self, kind: TrackKind = TrackKind.AUDIO) -> MockMediaTrack:
        track = MockMediaTrack(kind)
        for callback in self._track_callbacks:
            await _invoke(callback, track)
        return track

    async def simulate_ice_candidate(self, candidate: IceCandidate) -> None:
        for callback in self._ice_callbacks:
            await _invoke(callback, candidate)


class MockPeerConnectionFactory:
    """Peer connection factory that keeps every connection it builds."""

    def __init__(self) -> None:
        self.connections: list[MockPeerConnection] = []

    def __call__(self, ice_servers: list[str]) -> MockPeerConnection:
        connection = MockPeerConnection(ice_servers)
        self.connections.append(connection)
        return connection

    @property
    def last(self) -> MockPeerConnection:
        return self.connections[-1]


async def _invoke(callback: Any, arg: Any) -> None:
    result = callback(arg)
    if inspect.isawaitable(result):
        await result
