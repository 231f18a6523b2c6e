"""Room managers, maintenance tick and the PairRoom facade."""

from pairroom.core.framework import PairRoom
from pairroom.core.lifecycle import RoomLifecycleManager
from pairroom.core.maintenance import MaintenanceScheduler
from pairroom.core.media import MediaShareTracker, encode_image_payload
from pairroom.core.retention import MessageRetentionEngine

__all__ = [
    "MaintenanceScheduler",
    "MediaShareTracker",
    "MessageRetentionEngine",
    "PairRoom",
    "RoomLifecycleManager",
    "encode_image_payload",
]
