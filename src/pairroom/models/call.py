"""Local call session state."""

from __future__ import annotations

from dataclasses import dataclass

from pairroom.models.enums import CallState


@dataclass
class CallSession:
    """Snapshot of the local side of a call.

    Owned by the local process only; never shared through the room store.
    ``muted`` and ``video_off`` are flags on an active call, not states.
    """

    state: CallState = CallState.IDLE
    is_video: bool = False
    peer_id: str | None = None
    has_local_media: bool = False
    has_remote_media: bool = False
    muted: bool = False
    video_off: bool = False

    @property
    def in_call(self) -> bool:
        return self.state in (CallState.OUTGOING, CallState.INCOMING, CallState.ACTIVE)
