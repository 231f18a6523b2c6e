"""PairRoom - ephemeral two-party rooms and call signaling for asyncio."""

from pairroom._version import __version__
from pairroom.call import (
    CallNegotiator,
    LocalMedia,
    MediaDevice,
    MediaEnvironment,
    MediaTrack,
    MockMediaDevice,
    MockMediaTrack,
    MockPeerConnection,
    MockPeerConnectionFactory,
    PeerConnection,
    PeerConnectionFactory,
    error_help,
    preflight,
)
from pairroom.config import PairRoomConfig, RedisConfig
from pairroom.core import (
    MaintenanceScheduler,
    MediaShareTracker,
    MessageRetentionEngine,
    PairRoom,
    RoomLifecycleManager,
    encode_image_payload,
)
from pairroom.errors import (
    AlreadyAckedError,
    CallCancelledError,
    MediaPermissionError,
    NegotiationError,
    PairRoomError,
    ParticipantNotFoundError,
    RaceLossError,
    RoomCapacityError,
    RoomCodeExhaustedError,
    RoomNotFoundError,
    ViewOnceInvariantError,
)
from pairroom.models import (
    CallSession,
    CallState,
    IceCandidate,
    Message,
    Participant,
    PermissionReason,
    PermissionState,
    Room,
    RoomMap,
    SessionDescription,
    SharedMedia,
    SignalEnvelope,
    SignalType,
    TrackKind,
)
from pairroom.signaling import (
    InMemorySignaling,
    SignalCallback,
    SignalingBackend,
    SignalingChannel,
)
from pairroom.store import InMemoryRoomStore, RoomsCallback, RoomStore

__all__ = [
    "AlreadyAckedError",
    "CallCancelledError",
    "CallNegotiator",
    "CallSession",
    "CallState",
    "IceCandidate",
    "InMemoryRoomStore",
    "InMemorySignaling",
    "LocalMedia",
    "MaintenanceScheduler",
    "MediaDevice",
    "MediaEnvironment",
    "MediaPermissionError",
    "MediaShareTracker",
    "MediaTrack",
    "Message",
    "MessageRetentionEngine",
    "MockMediaDevice",
    "MockMediaTrack",
    "MockPeerConnection",
    "MockPeerConnectionFactory",
    "NegotiationError",
    "PairRoom",
    "PairRoomConfig",
    "PairRoomError",
    "Participant",
    "ParticipantNotFoundError",
    "PeerConnection",
    "PeerConnectionFactory",
    "PermissionReason",
    "PermissionState",
    "RaceLossError",
    "RedisConfig",
    "Room",
    "RoomCapacityError",
    "RoomCodeExhaustedError",
    "RoomLifecycleManager",
    "RoomMap",
    "RoomNotFoundError",
    "RoomStore",
    "RoomsCallback",
    "SessionDescription",
    "SharedMedia",
    "SignalCallback",
    "SignalEnvelope",
    "SignalType",
    "SignalingBackend",
    "SignalingChannel",
    "TrackKind",
    "ViewOnceInvariantError",
    "__version__",
    "encode_image_payload",
    "error_help",
    "preflight",
]
