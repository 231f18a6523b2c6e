"""Signaling envelope and negotiation payload types."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal
from uuid import uuid4

from pairroom.models.enums import SignalType

# Key under which each envelope type carries its payload on the wire.
_PAYLOAD_KEYS: dict[SignalType, str] = {
    SignalType.OFFER: "offer",
    SignalType.ANSWER: "answer",
    SignalType.ICE_CANDIDATE: "candidate",
}


def _as_mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"{what} must be a JSON object, got {type(data).__name__}")
    return data


def _optional_str(data: Mapping[str, Any], key: str, default: str = "") -> str:
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise ValueError(f"{key!r} must be a string")
    return value


@dataclass(frozen=True)
class SessionDescription:
    """An SDP offer or answer."""

    type: Literal["offer", "answer"]
    sdp: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "sdp": self.sdp}

    @classmethod
    def from_dict(cls, data: Any) -> SessionDescription:
        """Parse a wire description.

        Raises:
            ValueError: *data* is not an object with a known ``type`` and a
                string ``sdp``.
        """
        data = _as_mapping(data, "Session description")
        kind = data.get("type")
        if kind not in ("offer", "answer"):
            raise ValueError(f"Unknown session description type {kind!r}")
        sdp = data.get("sdp")
        if not isinstance(sdp, str):
            raise ValueError("Session description 'sdp' must be a string")
        return cls(type=kind, sdp=sdp)


@dataclass(frozen=True)
class IceCandidate:
    """A trickled ICE candidate."""

    candidate: str
    sdp_mid: str | None = None
    sdp_mline_index: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "candidate": self.candidate,
            "sdpMid": self.sdp_mid,
            "sdpMLineIndex": self.sdp_mline_index,
        }

    @classmethod
    def from_dict(cls, data: Any) -> IceCandidate:
        """Parse a wire candidate.

        Raises:
            ValueError: *data* is not an object with a string ``candidate``.
        """
        data = _as_mapping(data, "ICE candidate")
        candidate = data.get("candidate")
        if not isinstance(candidate, str):
            raise ValueError("ICE candidate 'candidate' must be a string")
        index = data.get("sdpMLineIndex")
        if index is not None and (isinstance(index, bool) or not isinstance(index, int)):
            raise ValueError("ICE candidate 'sdpMLineIndex' must be an integer")
        sdp_mid = data.get("sdpMid")
        return cls(
            candidate=candidate,
            sdp_mid=None if sdp_mid is None else _optional_str(data, "sdpMid"),
            sdp_mline_index=index,
        )


SignalPayload = SessionDescription | IceCandidate | None


@dataclass
class SignalEnvelope:
    """One message of the offer/answer/ICE exchange.

    Envelopes are transient: they are published on a room's signaling
    channel and never written to the room store. Every subscriber of the
    channel sees every envelope; ``to_id`` is advisory addressing only.

    ``call_id`` names the call an envelope belongs to. The caller picks it
    when offering and both sides repeat it on every later envelope, so a
    late envelope from an earlier call can be told apart from a new one.
    It is empty for envelopes from senders that do not tag calls.
    """

    type: SignalType
    to_id: str
    from_id: str = ""
    room_id: str = ""
    payload: SignalPayload = None
    is_video: bool | None = None
    call_id: str = ""
    id: str = field(default_factory=lambda: uuid4().hex)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON-serializable wire shape."""
        data: dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "to": self.to_id,
            "from": self.from_id,
            "roomId": self.room_id,
        }
        key = _PAYLOAD_KEYS.get(self.type)
        if key is not None and self.payload is not None:
            data[key] = self.payload.to_dict()
        if self.is_video is not None:
            data["isVideo"] = self.is_video
        if self.call_id:
            data["callId"] = self.call_id
        return data

    @classmethod
    def from_dict(cls, data: Any) -> SignalEnvelope:
        """Create an envelope from its wire shape.

        The payload is read from the type-specific key (``offer``,
        ``answer``, ``candidate``) or from a generic ``payload`` key.

        Raises:
            ValueError: *data* is not a well-formed envelope.
        """
        data = _as_mapping(data, "Signal envelope")
        try:
            signal_type = SignalType(data.get("type"))
        except (ValueError, TypeError):
            raise ValueError(f"Unknown signal type {data.get('type')!r}") from None
        to_id = data.get("to")
        if not isinstance(to_id, str):
            raise ValueError("Signal envelope 'to' must be a string")

        key = _PAYLOAD_KEYS.get(signal_type)
        raw = data.get(key) if key is not None else None
        if raw is None:
            raw = data.get("payload")

        payload: SignalPayload = None
        if raw is not None:
            if signal_type == SignalType.ICE_CANDIDATE:
                payload = IceCandidate.from_dict(raw)
            elif signal_type in (SignalType.OFFER, SignalType.ANSWER):
                payload = SessionDescription.from_dict(raw)

        is_video = data.get("isVideo")
        if is_video is not None and not isinstance(is_video, bool):
            raise ValueError("Signal envelope 'isVideo' must be a boolean")

        kwargs: dict[str, Any] = {}
        if data.get("id") is not None:
            kwargs["id"] = _optional_str(data, "id")
        return cls(
            type=signal_type,
            to_id=to_id,
            from_id=_optional_str(data, "from"),
            room_id=_optional_str(data, "roomId"),
            payload=payload,
            is_video=is_video,
            call_id=_optional_str(data, "callId"),
            **kwargs,
        )
