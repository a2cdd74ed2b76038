"""Rendezvous transport used to exchange negotiation payloads."""

from .channel import SignalCallback, SignalEventKind, SignalingChannel
from .roster import Participant, RosterDiff, apply_roster_update, first_remote, parse_roster

__all__ = [
    "Participant",
    "RosterDiff",
    "SignalCallback",
    "SignalEventKind",
    "SignalingChannel",
    "apply_roster_update",
    "first_remote",
    "parse_roster",
]
