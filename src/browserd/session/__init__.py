"""Peer session lifecycle: states, reconnect pacing, the aiortc link and the machine."""

from .backoff import RetryPolicy
from .machine import LinkFactory, PeerSessionMachine
from .peer import AiortcPeerLink, PeerEvent, PeerEventKind, PeerEventSink, PeerLink, build_rtc_configuration
from .role import SessionRole
from .state import ALLOWED_TRANSITIONS, PeerSession, SessionState

__all__ = [
    "ALLOWED_TRANSITIONS",
    "AiortcPeerLink",
    "LinkFactory",
    "PeerEvent",
    "PeerEventKind",
    "PeerEventSink",
    "PeerLink",
    "PeerSession",
    "PeerSessionMachine",
    "RetryPolicy",
    "SessionRole",
    "SessionState",
    "build_rtc_configuration",
]
