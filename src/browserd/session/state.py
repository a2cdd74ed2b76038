"""Peer session lifecycle states and the transition table."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from browserd.errors import SessionTransitionError


class SessionState(str, Enum):
    IDLE = "idle"
    SIGNING_IN = "signing-in"
    AWAITING_REMOTE = "awaiting-remote"
    NEGOTIATING = "negotiating"
    STREAMING = "streaming"
    DISCONNECTED = "disconnected"


ALLOWED_TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.IDLE: frozenset({SessionState.SIGNING_IN}),
    SessionState.SIGNING_IN: frozenset({SessionState.AWAITING_REMOTE, SessionState.DISCONNECTED}),
    # IDLE: the attempt was abandoned because no remote could be found.
    SessionState.AWAITING_REMOTE: frozenset(
        {SessionState.NEGOTIATING, SessionState.DISCONNECTED, SessionState.IDLE}
    ),
    SessionState.NEGOTIATING: frozenset({SessionState.STREAMING, SessionState.DISCONNECTED}),
    SessionState.STREAMING: frozenset({SessionState.DISCONNECTED}),
    SessionState.DISCONNECTED: frozenset({SessionState.SIGNING_IN}),
}


@dataclass
class PeerSession:
    """The single logical remote-control session owned by the state machine.

    The object lives for the whole process; reconnects replace ``state``,
    ``remote_participant_id`` and ``media_stream`` in place.
    """

    state: SessionState = SessionState.IDLE
    remote_participant_id: Optional[str] = None
    participant_name: Optional[str] = None
    participant_id: Optional[str] = None
    media_stream: Optional[Any] = None
    retry_generation: int = 0
    history: list[SessionState] = field(default_factory=lambda: [SessionState.IDLE])

    def transition(self, new_state: SessionState) -> SessionState:
        previous = self.state
        if new_state not in ALLOWED_TRANSITIONS[previous]:
            raise SessionTransitionError(f"illegal transition {previous.value} -> {new_state.value}")
        self.state = new_state
        self.history.append(new_state)
        return previous

    def reset_attempt(self) -> None:
        """Forget everything tied to the attempt that just ended."""

        self.remote_participant_id = None
        self.participant_id = None
        self.media_stream = None


__all__ = ["ALLOWED_TRANSITIONS", "PeerSession", "SessionState"]
