"""Media permission preflight and user guidance."""

from __future__ import annotations

from dataclasses import dataclass

from pairroom.errors import MediaPermissionError
from pairroom.models.enums import PermissionReason, PermissionState

_LOCAL_HOSTS = frozenset({"localhost", "127.0.0.1", "[::1]", "::1"})

_HELP: dict[PermissionReason, str] = {
    PermissionReason.HTTPS_REQUIRED: (
        "Camera and microphone access requires a secure context. "
        "Serve the app over HTTPS, or use localhost for development."
    ),
    PermissionReason.CAMERA_PERMISSION_DENIED: (
        "Camera access was denied. Allow it in the browser or OS settings, "
        "then start the call again."
    ),
    PermissionReason.MICROPHONE_PERMISSION_DENIED: (
        "Microphone access was denied. Allow it in the browser or OS settings, "
        "then start the call again."
    ),
    PermissionReason.DEVICE_NOT_FOUND: (
        "No camera or microphone was found. Connect a device, make sure no other "
        "application is using it, and try again."
    ),
    PermissionReason.UNSUPPORTED_RUNTIME: (
        "This runtime cannot capture media or open peer connections. "
        "Use a current browser or a runtime with media support."
    ),
}


@dataclass(frozen=True)
class MediaEnvironment:
    """What the runtime reports about media access before a call."""

    origin_scheme: str = "https"
    hostname: str = "localhost"
    supports_media: bool = True
    supports_peer_connection: bool = True
    camera: PermissionState = PermissionState.PROMPT
    microphone: PermissionState = PermissionState.PROMPT


def is_secure_context(env: MediaEnvironment) -> bool:
    return env.origin_scheme == "https" or env.hostname in _LOCAL_HOSTS


def preflight(env: MediaEnvironment, *, video: bool) -> None:
    """Check *env* before touching any device.

    Raises:
        MediaPermissionError: Runtime support, secure context, camera (video
            calls only) and microphone are checked in that order; the first
            failure wins.
    """
    if not (env.supports_media and env.supports_peer_connection):
        raise MediaPermissionError(PermissionReason.UNSUPPORTED_RUNTIME)
    if not is_secure_context(env):
        raise MediaPermissionError(PermissionReason.HTTPS_REQUIRED)
    if video and env.camera == PermissionState.DENIED:
        raise MediaPermissionError(PermissionReason.CAMERA_PERMISSION_DENIED)
    if env.microphone == PermissionState.DENIED:
        raise MediaPermissionError(PermissionReason.MICROPHONE_PERMISSION_DENIED)


def error_help(reason: PermissionReason) -> str:
    """User-facing guidance for a permission failure."""
    return _HELP[reason]
