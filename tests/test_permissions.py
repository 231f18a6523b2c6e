"""Tests for media permission preflight."""

from __future__ import annotations

import pytest

from pairroom.call.mock import MockMediaDevice
from pairroom.call.permissions import MediaEnvironment, error_help, is_secure_context, preflight
from pairroom.errors import MediaPermissionError, PairRoomError
from pairroom.models.enums import PermissionReason, PermissionState


class TestSecureContext:
    @pytest.mark.parametrize("host", ["localhost", "127.0.0.1", "[::1]", "::1"])
    def test_local_hosts_are_secure_over_http(self, host: str) -> None:
        assert is_secure_context(MediaEnvironment(origin_scheme="http", hostname=host))

    def test_https_is_secure(self) -> None:
        assert is_secure_context(MediaEnvironment(origin_scheme="https", hostname="example.com"))

    def test_remote_http_is_not(self) -> None:
        env = MediaEnvironment(origin_scheme="http", hostname="example.com")
        assert not is_secure_context(env)


class TestPreflight:
    def test_granted_environment_passes(self) -> None:
        preflight(MediaEnvironment(), video=True)

    def test_unsupported_runtime_checked_first(self) -> None:
        env = MediaEnvironment(
            origin_scheme="http",
            hostname="example.com",
            supports_peer_connection=False,
            microphone=PermissionState.DENIED,
        )
        with pytest.raises(MediaPermissionError) as exc_info:
            preflight(env, video=False)
        assert exc_info.value.reason == PermissionReason.UNSUPPORTED_RUNTIME

    def test_insecure_origin(self) -> None:
        env = MediaEnvironment(origin_scheme="http", hostname="example.com")
        with pytest.raises(MediaPermissionError) as exc_info:
            preflight(env, video=False)
        assert exc_info.value.reason == PermissionReason.HTTPS_REQUIRED

    def test_camera_denied_only_matters_for_video(self) -> None:
        env = MediaEnvironment(camera=PermissionState.DENIED)
        preflight(env, video=False)
        with pytest.raises(MediaPermissionError) as exc_info:
            preflight(env, video=True)
        assert exc_info.value.reason == PermissionReason.CAMERA_PERMISSION_DENIED

    def test_microphone_denied(self) -> None:
        env = MediaEnvironment(microphone=PermissionState.DENIED)
        with pytest.raises(MediaPermissionError) as exc_info:
            preflight(env, video=False)
        assert exc_info.value.reason == PermissionReason.MICROPHONE_PERMISSION_DENIED


class TestErrorHelp:
    @pytest.mark.parametrize("reason", list(PermissionReason))
    def test_every_reason_has_guidance(self, reason: PermissionReason) -> None:
        assert error_help(reason)

    def test_error_carries_reason(self) -> None:
        exc = MediaPermissionError(PermissionReason.DEVICE_NOT_FOUND)
        assert isinstance(exc, PairRoomError)
        assert str(exc) == PermissionReason.DEVICE_NOT_FOUND.value


class TestMockDevice:
    async def test_environment_is_checked_before_capture(self) -> None:
        device = MockMediaDevice(
            environment=MediaEnvironment(origin_scheme="http", hostname="example.com")
        )
        with pytest.raises(MediaPermissionError):
            await device.acquire(video=True)
        assert device.acquired == []

    async def test_captures_audio_and_optional_video(self) -> None:
        device = MockMediaDevice()
        audio_only = await device.acquire(video=False)
        with_video = await device.acquire(video=True)
        assert len(audio_only.audio_tracks()) == 1
        assert audio_only.video_tracks() == []
        assert len(with_video.video_tracks()) == 1
