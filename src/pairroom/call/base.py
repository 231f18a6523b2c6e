"""Abstract collaborators of the call negotiator: media capture and peer connection."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from pairroom.models.enums import TrackKind
from pairroom.models.signal import IceCandidate, SessionDescription


class MediaTrack(ABC):
    """A local or remote media track.

    Disabling a track (``enabled = False``) mutes it without releasing the
    device; ``stop()`` releases the device for good.
    """

    @property
    @abstractmethod
    def kind(self) -> TrackKind: ...

    @property
    @abstractmethod
    def enabled(self) -> bool: ...

    @enabled.setter
    @abstractmethod
    def enabled(self, value: bool) -> None: ...

    @abstractmethod
    def stop(self) -> None:
        """Release the underlying device. Safe to call more than once."""
        ...


@dataclass
class LocalMedia:
    """Tracks captured for one call."""

    tracks: list[MediaTrack] = field(default_factory=list)

    def audio_tracks(self) -> list[MediaTrack]:
        return [t for t in self.tracks if t.kind == TrackKind.AUDIO]

    def video_tracks(self) -> list[MediaTrack]:
        return [t for t in self.tracks if t.kind == TrackKind.VIDEO]

    def stop(self) -> None:
        for track in self.tracks:
            track.stop()


class MediaDevice(ABC):
    """Local capture device (camera and microphone)."""

    @abstractmethod
    async def acquire(self, *, video: bool) -> LocalMedia:
        """Capture audio, plus video when *video* is set.

        Raises:
            MediaPermissionError: Access was refused or no device exists.
        """
        ...


RemoteTrackCallback = Callable[[MediaTrack], Any]
IceCandidateCallback = Callable[[IceCandidate], Any]


class PeerConnection(ABC):
    """One peer-to-peer media negotiation session (SDP/ICE).

    Callbacks registered with ``on_track`` and ``on_ice_candidate`` may be
    plain functions or coroutine functions.
    """

    @abstractmethod
    def add_track(self, track: MediaTrack) -> None: ...

    @abstractmethod
    async def create_offer(self) -> SessionDescription: ...

    @abstractmethod
    async def create_answer(self) -> SessionDescription: ...

    @abstractmethod
    async def set_local_description(self, description: SessionDescription) -> None: ...

    @abstractmethod
    async def set_remote_description(self, description: SessionDescription) -> None: ...

    @abstractmethod
    async def add_ice_candidate(self, candidate: IceCandidate) -> None:
        """Apply a remote candidate. Requires the remote description to be set."""
        ...

    @abstractmethod
    async def close(self) -> None: ...

    @abstractmethod
    def on_track(self, callback: RemoteTrackCallback) -> None: ...

    @abstractmethod
    def on_ice_candidate(self, callback: IceCandidateCallback) -> None: ...


PeerConnectionFactory = Callable[[list[str]], PeerConnection]
"""Builds a peer connection from a list of ICE server URLs."""
