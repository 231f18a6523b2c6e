"""All string enums for PairRoom."""

from __future__ import annotations

from enum import StrEnum, unique


@unique
class SignalType(StrEnum):
    OFFER = "offer"
    ANSWER = "answer"
    ICE_CANDIDATE = "ice-candidate"
    CALL_END = "call-end"


@unique
class CallState(StrEnum):
    IDLE = "idle"
    OUTGOING = "outgoing"
    INCOMING = "incoming"
    ACTIVE = "active"
    ENDED = "ended"


@unique
class PermissionReason(StrEnum):
    HTTPS_REQUIRED = "HTTPS_REQUIRED"
    CAMERA_PERMISSION_DENIED = "CAMERA_PERMISSION_DENIED"
    MICROPHONE_PERMISSION_DENIED = "MICROPHONE_PERMISSION_DENIED"
    DEVICE_NOT_FOUND = "DEVICE_NOT_FOUND"
    UNSUPPORTED_RUNTIME = "UNSUPPORTED_RUNTIME"


@unique
class PermissionState(StrEnum):
    GRANTED = "granted"
    DENIED = "denied"
    PROMPT = "prompt"


@unique
class TrackKind(StrEnum):
    AUDIO = "audio"
    VIDEO = "video"
