"""Exception hierarchy for PairRoom.

Room, message and media operations report expected failures (room full,
room or participant missing, item already acknowledged) through sentinel
return values. The classes for those conditions are raised internally and
translated at the public boundary. Media permission and negotiation
failures propagate to the caller as exceptions.
"""

from __future__ import annotations

from pairroom.models.enums import PermissionReason


class PairRoomError(Exception):
    """Base exception for all PairRoom errors."""


class RoomNotFoundError(PairRoomError):
    """Room does not exist."""


class ParticipantNotFoundError(PairRoomError):
    """Participant is not a member of the room."""


class RoomCapacityError(PairRoomError):
    """Room already holds two distinct participants."""


class AlreadyAckedError(PairRoomError):
    """Viewer already acknowledged this media item."""


class ViewOnceInvariantError(PairRoomError):
    """View-once media was viewed in a room holding more than two participants."""


class RoomCodeExhaustedError(PairRoomError):
    """No unused room code was found within the configured attempts."""


class RaceLossError(PairRoomError):
    """A write was silently overwritten by a concurrent writer.

    Last-write-wins stores cannot detect this condition, so it is never
    raised. It exists to name the failure mode in the error taxonomy.
    """


class MediaPermissionError(PairRoomError):
    """Local media could not be acquired."""

    def __init__(self, reason: PermissionReason, message: str | None = None) -> None:
        self.reason = reason
        super().__init__(message or reason.value)


class NegotiationError(PairRoomError):
    """Offer/answer negotiation failed."""


class CallCancelledError(NegotiationError):
    """Call setup was cancelled by ``end_call`` before it completed."""
