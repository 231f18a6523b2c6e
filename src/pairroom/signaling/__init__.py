"""Signaling channel for offer/answer/ICE relay."""

from pairroom.signaling.base import SignalCallback, SignalingBackend, SignalingChannel
from pairroom.signaling.memory import InMemorySignaling

__all__ = [
    "InMemorySignaling",
    "SignalCallback",
    "SignalingBackend",
    "SignalingChannel",
]
