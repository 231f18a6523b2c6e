"""Shared helpers for the room managers."""

from __future__ import annotations

import secrets
from collections.abc import Callable
from datetime import UTC, datetime
from uuid import uuid4

from pairroom.models.room import Room, SharedMedia

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(UTC)


def new_id() -> str:
    return uuid4().hex


def generate_room_code(length: int, alphabet: str) -> str:
    return "".join(secrets.choice(alphabet) for _ in range(length))


def is_acknowledged(room: Room, item: SharedMedia) -> bool:
    """True once every participant except the sender has acknowledged *item*."""
    recipients = {p.id for p in room.participants} - {item.sender}
    return item.acked_by >= recipients


def prune_acknowledged(room: Room) -> list[str]:
    """Drop fully acknowledged media from *room*; return the dropped ids."""
    kept: list[SharedMedia] = []
    dropped: list[str] = []
    for item in room.shared_media:
        if is_acknowledged(room, item):
            dropped.append(item.id)
        else:
            kept.append(item)
    room.shared_media = kept
    return dropped
