"""Data models for rooms, signaling and calls."""

from pairroom.models.call import CallSession
from pairroom.models.enums import (
    CallState,
    PermissionReason,
    PermissionState,
    SignalType,
    TrackKind,
)
from pairroom.models.room import (
    Message,
    Participant,
    Room,
    RoomMap,
    SharedMedia,
    rooms_from_wire,
    rooms_to_wire,
)
from pairroom.models.signal import IceCandidate, SessionDescription, SignalEnvelope

__all__ = [
    "CallSession",
    "CallState",
    "IceCandidate",
    "Message",
    "Participant",
    "PermissionReason",
    "PermissionState",
    "Room",
    "RoomMap",
    "SessionDescription",
    "SharedMedia",
    "SignalEnvelope",
    "SignalType",
    "TrackKind",
    "rooms_from_wire",
    "rooms_to_wire",
]
