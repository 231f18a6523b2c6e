"""Room, participant, message and shared-media models.

Every model serializes to the camelCase wire record shared between the two
participants' processes (``senderName``, ``expiresAt``, ``ackedBy`` ...).
Validation accepts either the snake_case field name or the wire alias.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

_WIRE = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _utcnow() -> datetime:
    """Get current UTC time (timezone-aware)."""
    return datetime.now(UTC)


class Participant(BaseModel):
    """A member of a room, owned exclusively by that room."""

    model_config = _WIRE

    id: str
    name: str
    joined_at: datetime = Field(default_factory=_utcnow)
    last_seen: datetime = Field(default_factory=_utcnow)


class Message(BaseModel):
    """A chat message. Never edited, only evicted once ``expires_at`` passes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    content: str
    sender: str
    sender_name: str
    timestamp: datetime
    expires_at: datetime
    room_id: str

    @model_validator(mode="after")
    def _check_deadline(self) -> Message:
        if self.expires_at < self.timestamp:
            raise ValueError("expires_at must not precede timestamp")
        return self


class SharedMedia(BaseModel):
    """A view-once media item awaiting acknowledgment from the other participant."""

    model_config = _WIRE

    id: str
    payload: str
    sender: str
    sender_name: str
    timestamp: datetime = Field(default_factory=_utcnow)
    room_id: str
    acked_by: set[str] = Field(default_factory=set)


class Room(BaseModel):
    """An ephemeral two-party room."""

    model_config = _WIRE

    id: str
    participants: list[Participant] = Field(default_factory=list)
    messages: list[Message] = Field(default_factory=list)
    shared_media: list[SharedMedia] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)
    host_id: str

    def get_participant(self, participant_id: str) -> Participant | None:
        for participant in self.participants:
            if participant.id == participant_id:
                return participant
        return None

    def has_participant(self, participant_id: str) -> bool:
        return self.get_participant(participant_id) is not None

    def get_media(self, media_id: str) -> SharedMedia | None:
        for item in self.shared_media:
            if item.id == media_id:
                return item
        return None

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the JSON-compatible record exchanged through the store."""
        return self.model_dump(mode="json", by_alias=True)


RoomMap = dict[str, Room]
"""The whole logical store: room id -> room record."""


def rooms_to_wire(rooms: RoomMap) -> dict[str, Any]:
    return {room_id: room.to_wire() for room_id, room in rooms.items()}


def rooms_from_wire(data: dict[str, Any] | None) -> RoomMap:
    if not data:
        return {}
    return {room_id: Room.model_validate(record) for room_id, record in data.items()}
