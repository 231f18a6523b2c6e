"""Audio/video call negotiation."""

from pairroom.call.base import (
    LocalMedia,
    MediaDevice,
    MediaTrack,
    PeerConnection,
    PeerConnectionFactory,
)
from pairroom.call.mock import (
    MockMediaDevice,
    MockMediaTrack,
    MockPeerConnection,
    MockPeerConnectionFactory,
)
from pairroom.call.negotiator import CallNegotiator
from pairroom.call.permissions import MediaEnvironment, error_help, is_secure_context, preflight

__all__ = [
    "CallNegotiator",
    "LocalMedia",
    "MediaDevice",
    "MediaEnvironment",
    "MediaTrack",
    "MockMediaDevice",
    "MockMediaTrack",
    "MockPeerConnection",
    "MockPeerConnectionFactory",
    "PeerConnection",
    "PeerConnectionFactory",
    "error_help",
    "is_secure_context",
    "preflight",
]
