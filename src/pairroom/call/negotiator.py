"""Call negotiation state machine driven by signaling envelopes."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from dataclasses import replace
from typing import Any
from uuid import uuid4

from pairroom.call.base import (
    LocalMedia,
    MediaDevice,
    MediaTrack,
    PeerConnection,
    PeerConnectionFactory,
)
from pairroom.config import PairRoomConfig
from pairroom.errors import CallCancelledError, NegotiationError
from pairroom.models.call import CallSession
from pairroom.models.enums import CallState, SignalType
from pairroom.models.signal import IceCandidate, SessionDescription, SignalEnvelope
from pairroom.signaling.base import SignalingChannel

logger = logging.getLogger("pairroom.call")

StateChangeCallback = Callable[[CallSession], Any]
IncomingCallCallback = Callable[[SessionDescription, bool, str], Any]

# Limits on per-peer state held outside an established call.
MAX_QUEUED_CANDIDATES = 64
MAX_TRACKED_PEERS = 8


def _same_call(a: str, b: str) -> bool:
    """Untagged envelopes match any call."""
    return not a or not b or a == b


class CallNegotiator:
    """Drives one participant's side of an audio/video call.

    Caller path: ``IDLE -> OUTGOING -> ACTIVE`` (active once the first
    remote track arrives). Callee path: ``IDLE -> INCOMING -> ACTIVE``
    (active once the answer is published). ``end_call`` or a peer's
    ``call-end`` passes through ``ENDED`` back to ``IDLE``.

    The signaling channel may reorder envelopes, so ICE candidates that
    arrive before a remote description is applied are queued per peer and
    flushed as soon as it is. Every envelope carries the call id chosen by
    the caller, and once a call with a peer ends its late candidates are
    dropped instead of leaking into the next call.

    Setup (device acquisition, SDP creation) can be cut short by
    ``end_call``. The interrupted ``start_call``/``accept_call`` releases
    whatever it acquired and raises ``CallCancelledError`` without
    publishing anything further.

    Example:
        negotiator = CallNegotiator(channel, device, peer_factory)
        await negotiator.attach()
        negotiator.on_incoming_call(lambda offer, video, peer: ...)
        await negotiator.start_call(is_video=True, peer_id="bob")
    """

    def __init__(
        self,
        channel: SignalingChannel,
        device: MediaDevice,
        peer_factory: PeerConnectionFactory,
        *,
        ice_servers: list[str] | None = None,
    ) -> None:
        self._channel = channel
        self._device = device
        self._peer_factory = peer_factory
        self._ice_servers = (
            list(ice_servers) if ice_servers is not None else PairRoomConfig().ice_servers
        )
        self._session = CallSession()
        self._pc: PeerConnection | None = None
        self._local: LocalMedia | None = None
        self._peer_id: str | None = None
        self._remote_ready = False
        self._setting_up = False
        self._generation = 0
        self._pending_offer: SessionDescription | None = None
        self._call_id = ""
        self._pending_candidates: dict[str, list[tuple[str, IceCandidate]]] = {}
        self._hung_up: dict[str, str] = {}
        self._state_callbacks: list[StateChangeCallback] = []
        self._incoming_callbacks: list[IncomingCallCallback] = []
        self._callback_tasks: set[asyncio.Future[Any]] = set()
        self._subscription: str | None = None

    # -- Introspection -------------------------------------------------

    @property
    def user_id(self) -> str:
        return self._channel.participant_id

    @property
    def session(self) -> CallSession:
        """A copy of the current local call state."""
        return replace(self._session)

    @property
    def state(self) -> CallState:
        return self._session.state

    @property
    def pending_offer(self) -> SessionDescription | None:
        """The offer of the incoming call awaiting ``accept_call``, if any."""
        return self._pending_offer

    def queued_candidates(self, peer_id: str) -> list[IceCandidate]:
        return [candidate for _, candidate in self._pending_candidates.get(peer_id, [])]

    # -- Subscriptions -------------------------------------------------

    def on_state_change(self, callback: StateChangeCallback) -> None:
        self._state_callbacks.append(callback)

    def on_incoming_call(self, callback: IncomingCallCallback) -> None:
        """Register ``callback(offer, is_video, peer_id)`` for incoming offers."""
        self._incoming_callbacks.append(callback)

    async def attach(self) -> None:
        """Start consuming envelopes addressed to this participant."""
        if self._subscription is None:
            self._subscription = await self._channel.on_addressed(self.handle_envelope)

    async def detach(self) -> None:
        if self._subscription is not None:
            await self._channel.unsubscribe(self._subscription)
            self._subscription = None

    # -- Call control --------------------------------------------------

    async def start_call(self, is_video: bool, peer_id: str) -> None:
        """Capture local media, send an offer to *peer_id* and enter OUTGOING.

        Raises:
            MediaPermissionError: Local media could not be acquired. No
                envelope was sent and the state is still IDLE.
            CallCancelledError: ``end_call`` ran before setup finished.
            NegotiationError: A call is already in progress, or the offer
                could not be created.
        """
        generation = self._begin_setup(peer_id)
        self._call_id = uuid4().hex
        self._hung_up.pop(peer_id, None)
        try:
            local = await self._acquire(is_video, generation)
            try:
                pc = self._open(peer_id, local)
                offer = await pc.create_offer()
                self._ensure_current(generation)
                await pc.set_local_description(offer)
                self._ensure_current(generation)
                await self._send(SignalType.OFFER, peer_id, payload=offer, is_video=is_video)
                self._ensure_current(generation)
            except CallCancelledError:
                local.stop()
                raise
            except Exception as exc:
                local.stop()
                await self._abort()
                raise NegotiationError(f"Could not offer a call to {peer_id}: {exc}") from exc

            self._session = CallSession(
                state=CallState.OUTGOING,
                is_video=is_video,
                peer_id=peer_id,
                has_local_media=True,
                has_remote_media=self._session.has_remote_media,
            )
            logger.info("Calling %s (video=%s)", peer_id, is_video)
            self._notify()
        finally:
            self._end_setup(generation)

    async def accept_call(self, offer: SessionDescription, is_video: bool, peer_id: str) -> None:
        """Answer *offer* from *peer_id* and enter ACTIVE.

        Raises:
            MediaPermissionError: Local media could not be acquired.
            CallCancelledError: ``end_call`` ran before setup finished.
            NegotiationError: Another call is in progress, or the offer could
                not be applied.
        """
        if self._session.state == CallState.INCOMING and self._session.peer_id != peer_id:
            raise NegotiationError(
                f"Incoming call is from {self._session.peer_id}, not {peer_id}"
            )
        generation = self._begin_setup(peer_id, allow=(CallState.IDLE, CallState.INCOMING))
        try:
            local = await self._acquire(is_video, generation)
            try:
                pc = self._open(peer_id, local)
                await pc.set_remote_description(offer)
                self._ensure_current(generation)
                self._remote_ready = True
                await self._flush_candidates(pc, peer_id)
                answer = await pc.create_answer()
                self._ensure_current(generation)
                await pc.set_local_description(answer)
                self._ensure_current(generation)
                await self._send(SignalType.ANSWER, peer_id, payload=answer)
                self._ensure_current(generation)
            except CallCancelledError:
                local.stop()
                raise
            except Exception as exc:
                local.stop()
                await self._abort()
                raise NegotiationError(f"Could not answer {peer_id}: {exc}") from exc

            self._pending_offer = None
            self._session = CallSession(
                state=CallState.ACTIVE,
                is_video=is_video,
                peer_id=peer_id,
                has_local_media=True,
                has_remote_media=self._session.has_remote_media,
            )
            logger.info("Accepted call from %s (video=%s)", peer_id, is_video)
            self._notify()
        finally:
            self._end_setup(generation)

    async def end_call(self, peer_id: str | None = None) -> None:
        """Release local media, close the session and return to IDLE.

        When *peer_id* is given a ``call-end`` envelope tells the peer to
        hang up too. Any setup still in flight is cancelled.
        """
        self._generation += 1
        was_setting_up = self._setting_up
        self._setting_up = False
        call_id = self._call_id
        released = await self._release()

        previous = self._session
        peer = previous.peer_id or self._peer_id
        if previous.state != CallState.IDLE or released or was_setting_up:
            self._session = CallSession(
                state=CallState.ENDED, is_video=previous.is_video, peer_id=previous.peer_id
            )
            logger.info("Call with %s ended", peer)
            self._notify()
            self._session = CallSession()
            self._notify()
            if peer is not None:
                self._mark_hung_up(peer, call_id)
        self._peer_id = None
        self._call_id = ""

        if peer_id is not None:
            await self._channel.send(
                SignalEnvelope(type=SignalType.CALL_END, to_id=peer_id, call_id=call_id)
            )

    def toggle_mute(self) -> bool:
        """Flip the local audio track on or off. Returns the new ``muted`` flag."""
        tracks = self._local.audio_tracks() if self._local else []
        if not tracks:
            return self._session.muted
        enabled = not tracks[0].enabled
        for track in tracks:
            track.enabled = enabled
        self._session.muted = not enabled
        self._notify()
        return self._session.muted

    def toggle_video(self) -> bool:
        """Flip the local video track on or off. Returns the new ``video_off`` flag."""
        tracks = self._local.video_tracks() if self._local else []
        if not tracks:
            return self._session.video_off
        enabled = not tracks[0].enabled
        for track in tracks:
            track.enabled = enabled
        self._session.video_off = not enabled
        self._notify()
        return self._session.video_off

    async def close(self) -> None:
        await self.end_call()
        await self.detach()
        for task in list(self._callback_tasks):
            task.cancel()

    # -- Inbound envelopes ---------------------------------------------

    async def handle_envelope(self, envelope: SignalEnvelope) -> None:
        """Apply one envelope addressed to this participant."""
        if envelope.type == SignalType.OFFER:
            await self._handle_offer(envelope)
        elif envelope.type == SignalType.ANSWER:
            await self._handle_answer(envelope)
        elif envelope.type == SignalType.ICE_CANDIDATE:
            await self._handle_candidate(envelope)
        elif envelope.type == SignalType.CALL_END:
            await self._handle_call_end(envelope)

    async def _handle_offer(self, envelope: SignalEnvelope) -> None:
        if not isinstance(envelope.payload, SessionDescription):
            logger.warning("Offer from %s carries no session description", envelope.from_id)
            return
        if self._session.in_call or self._setting_up:
            logger.info("Ignoring offer from %s while %s", envelope.from_id, self._session.state)
            return

        is_video = bool(envelope.is_video)
        self._pending_offer = envelope.payload
        self._call_id = envelope.call_id
        self._hung_up.pop(envelope.from_id, None)
        self._session = CallSession(
            state=CallState.INCOMING, is_video=is_video, peer_id=envelope.from_id
        )
        logger.info("Incoming call from %s (video=%s)", envelope.from_id, is_video)
        self._notify()
        for callback in self._incoming_callbacks:
            self._fire(callback, envelope.payload, is_video, envelope.from_id)

    async def _handle_answer(self, envelope: SignalEnvelope) -> None:
        pc = self._pc
        if (
            pc is None
            or self._session.state != CallState.OUTGOING
            or envelope.from_id != self._session.peer_id
            or not _same_call(envelope.call_id, self._call_id)
            or self._remote_ready
        ):
            logger.debug("Ignoring answer from %s in %s", envelope.from_id, self._session.state)
            return
        if not isinstance(envelope.payload, SessionDescription):
            logger.warning("Answer from %s carries no session description", envelope.from_id)
            return

        try:
            await pc.set_remote_description(envelope.payload)
        except Exception as exc:
            if pc is self._pc:
                await self.end_call(envelope.from_id)
            raise NegotiationError(f"Could not apply answer from {envelope.from_id}") from exc
        if pc is not self._pc:
            return
        self._remote_ready = True
        await self._flush_candidates(pc, envelope.from_id)

    async def _handle_candidate(self, envelope: SignalEnvelope) -> None:
        candidate = envelope.payload
        peer, call_id = envelope.from_id, envelope.call_id
        if not isinstance(candidate, IceCandidate):
            logger.warning("ICE envelope from %s carries no candidate", peer)
            return
        if self._pc is not None and self._remote_ready and peer == self._peer_id:
            if _same_call(call_id, self._call_id):
                await self._apply_candidate(self._pc, candidate)
            else:
                logger.debug("Dropping ICE candidate from %s for call %s", peer, call_id)
            return
        if self._is_stale(peer, call_id):
            logger.debug("Dropping late ICE candidate from %s", peer)
            return
        self._queue_candidate(peer, call_id, candidate)

    async def _handle_call_end(self, envelope: SignalEnvelope) -> None:
        peer, call_id = envelope.from_id, envelope.call_id
        current = self._session.peer_id or self._peer_id
        if peer == current and _same_call(call_id, self._call_id):
            logger.info("Peer %s hung up", peer)
            await self.end_call()
            return
        self._discard_candidates(peer, call_id)
        self._mark_hung_up(peer, call_id)

    # -- Internals -----------------------------------------------------

    def _begin_setup(
        self, peer_id: str, allow: tuple[CallState, ...] = (CallState.IDLE,)
    ) -> int:
        if self._setting_up or self._session.state not in allow:
            raise NegotiationError(f"Cannot set up a call while {self._session.state}")
        self._setting_up = True
        self._peer_id = peer_id
        return self._generation

    def _end_setup(self, generation: int) -> None:
        if generation == self._generation:
            self._setting_up = False
            if not self._session.in_call:
                self._peer_id = None
                self._call_id = ""

    async def _abort(self) -> None:
        """Undo a failed setup and fall back to IDLE."""
        await self._release()
        self._call_id = ""
        if self._session.state != CallState.IDLE:
            self._session = CallSession()
            self._notify()

    def _ensure_current(self, generation: int) -> None:
        if generation != self._generation:
            raise CallCancelledError("Call ended during setup")

    async def _acquire(self, is_video: bool, generation: int) -> LocalMedia:
        local = await self._device.acquire(video=is_video)
        if generation != self._generation:
            local.stop()
            raise CallCancelledError("Call ended during media acquisition")
        return local

    def _open(self, peer_id: str, local: LocalMedia) -> PeerConnection:
        pc = self._peer_factory(self._ice_servers)
        for track in local.tracks:
            pc.add_track(track)

        async def _on_track(track: MediaTrack) -> None:
            await self._on_remote_track(pc, track)

        async def _on_candidate(candidate: IceCandidate) -> None:
            if pc is self._pc:
                await self._send(SignalType.ICE_CANDIDATE, peer_id, payload=candidate)

        pc.on_track(_on_track)
        pc.on_ice_candidate(_on_candidate)
        self._pc = pc
        self._local = local
        self._remote_ready = False
        return pc

    async def _on_remote_track(self, pc: PeerConnection, track: MediaTrack) -> None:
        if pc is not self._pc:
            return
        self._session.has_remote_media = True
        if self._session.state == CallState.OUTGOING:
            self._session.state = CallState.ACTIVE
            logger.info("Call with %s active", self._session.peer_id)
        logger.debug("Remote %s track received", track.kind)
        self._notify()

    async def _send(self, signal_type: SignalType, peer_id: str, **fields: Any) -> None:
        await self._channel.send(
            SignalEnvelope(type=signal_type, to_id=peer_id, call_id=self._call_id, **fields)
        )

    def _is_stale(self, peer_id: str, call_id: str) -> bool:
        """Whether a candidate from *peer_id* belongs to a call that is already over."""
        ended = self._hung_up.get(peer_id)
        if ended is not None and (not call_id or call_id == ended):
            return True
        current = self._session.peer_id or self._peer_id
        return peer_id == current and not _same_call(call_id, self._call_id)

    def _queue_candidate(self, peer_id: str, call_id: str, candidate: IceCandidate) -> None:
        queue = self._pending_candidates.get(peer_id)
        if queue is None:
            while len(self._pending_candidates) >= MAX_TRACKED_PEERS:
                oldest = next(iter(self._pending_candidates))
                del self._pending_candidates[oldest]
                logger.warning("Discarding queued ICE candidates from %s", oldest)
            queue = self._pending_candidates[peer_id] = []
        if len(queue) >= MAX_QUEUED_CANDIDATES:
            queue.pop(0)
            logger.warning("ICE candidate queue for %s is full, dropping the oldest", peer_id)
        queue.append((call_id, candidate))
        logger.debug("Queued ICE candidate from %s", peer_id)

    def _discard_candidates(self, peer_id: str, call_id: str) -> None:
        queue = self._pending_candidates.pop(peer_id, [])
        kept = [entry for entry in queue if not _same_call(entry[0], call_id)]
        if kept:
            self._pending_candidates[peer_id] = kept

    def _mark_hung_up(self, peer_id: str, call_id: str) -> None:
        self._hung_up.pop(peer_id, None)
        self._hung_up[peer_id] = call_id
        while len(self._hung_up) > MAX_TRACKED_PEERS:
            del self._hung_up[next(iter(self._hung_up))]

    async def _flush_candidates(self, pc: PeerConnection, peer_id: str) -> None:
        for call_id, candidate in self._pending_candidates.pop(peer_id, []):
            if _same_call(call_id, self._call_id):
                await self._apply_candidate(pc, candidate)
            else:
                logger.debug("Dropping ICE candidate from %s for call %s", peer_id, call_id)

    async def _apply_candidate(self, pc: PeerConnection, candidate: IceCandidate) -> None:
        try:
            await pc.add_ice_candidate(candidate)
        except Exception:
            logger.warning("Rejected ICE candidate %r", candidate.candidate, exc_info=True)

    async def _release(self) -> bool:
        """Stop local tracks and close the session. Returns True if anything was held."""
        local, pc = self._local, self._pc
        self._local = None
        self._pc = None
        self._remote_ready = False
        self._pending_offer = None
        self._pending_candidates.clear()
        if local is not None:
            local.stop()
        if pc is not None:
            try:
                await pc.close()
            except Exception:
                logger.warning("Error closing peer connection", exc_info=True)
        return local is not None or pc is not None

    def _notify(self) -> None:
        snapshot = self.session
        for callback in self._state_callbacks:
            self._fire(callback, snapshot)

    def _fire(self, callback: Callable[..., Any], *args: Any) -> None:
        try:
            result = callback(*args)
        except Exception:
            logger.exception("Error in call callback %r", callback)
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._callback_tasks.add(task)
            task.add_done_callback(self._callback_tasks.discard)
