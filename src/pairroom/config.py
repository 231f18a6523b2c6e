"""PairRoom configuration."""

from __future__ import annotations

import string

from pydantic import BaseModel, Field, SecretStr


class PairRoomConfig(BaseModel):
    """Tunables for room lifecycle, retention, media and calls."""

    message_ttl_seconds: float = Field(default=120.0, gt=0)
    inactivity_timeout_seconds: float = Field(default=30.0, gt=0)
    tick_interval_seconds: float = Field(default=1.0, gt=0)
    max_participants: int = Field(default=2, ge=1, le=2)
    room_code_length: int = Field(default=6, ge=4)
    room_code_alphabet: str = Field(
        default=string.ascii_uppercase + string.digits, min_length=2
    )
    room_code_attempts: int = Field(default=8, ge=1)
    image_auto_hide_seconds: float = Field(default=10.0, gt=0)
    ice_servers: list[str] = Field(default_factory=lambda: ["stun:stun.l.google.com:19302"])


class RedisConfig(BaseModel):
    """Connection settings for the Redis-backed store and signaling."""

    url: str = "redis://localhost:6379/0"
    password: SecretStr | None = None
    key: str = "pairroom:rooms"
    channel_prefix: str = "pairroom"
    timeout: float = 10.0

    @property
    def rooms_channel(self) -> str:
        return f"{self.channel_prefix}:rooms"

    def signal_channel(self, room_id: str) -> str:
        return f"{self.channel_prefix}:signal:{room_id}"
