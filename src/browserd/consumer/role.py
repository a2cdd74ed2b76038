from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any, Optional, Protocol, Union
from uuid import uuid4

from browserd.errors import NoRemoteFound
from browserd.metrics import Metrics
from browserd.protocol.input_messages import InputData, MessageType, encode_json
from browserd.session.peer import PeerLink
from browserd.session.role import SessionRole
from browserd.signaling.roster import Participant, first_remote

logger = logging.getLogger(__name__)


class RenderSurface(Protocol):
    def attach(self, track: Any) -> None: ...

    def detach(self) -> None: ...


class ConsumerRole(SessionRole):
    """Initiate negotiation with the first provider, render its video, send input."""

    initiator = True

    def __init__(self, surface: RenderSurface, *, name_prefix: str = "consumer", metrics: Optional[Metrics] = None) -> None:
        self.name_prefix = name_prefix
        self._surface = surface
        self._metrics = metrics or Metrics()
        self._link: Optional[PeerLink] = None
        self._streaming_listeners: list[Callable[[], object]] = []

    @property
    def streaming(self) -> bool:
        return self._link is not None

    def participant_name(self) -> str:
        return f"{self.name_prefix}.{uuid4()}"

    def select_remote(self, self_id: str, roster: Sequence[Participant]) -> Optional[str]:
        remote = first_remote(roster, self_id)
        if remote is None:
            raise NoRemoteFound(f"no connected provider besides {self_id}")
        return remote

    def add_streaming_listener(self, callback: Callable[[], object]) -> None:
        """Run ``callback`` each time a session reaches STREAMING, after ``post`` is live."""
        self._streaming_listeners.append(callback)

    def on_streaming(self, link: PeerLink) -> None:
        self._link = link
        for callback in list(self._streaming_listeners):
            try:
                callback()
            except Exception:
                logger.exception("consumer streaming listener failed")

    def on_track(self, track: Any) -> None:
        self._surface.attach(track)

    def post(self, message_type: MessageType, data: Union[InputData, Mapping[str, Any]]) -> bool:
        """Encode and send one input message; False when no session is streaming."""

        link = self._link
        if link is None:
            self._metrics.inc("input.dropped")
            return False
        ok = link.send(encode_json(message_type, data))
        self._metrics.inc("input.sent" if ok else "input.dropped")
        return ok

    def release(self) -> None:
        self._link = None
        self._surface.detach()


__all__ = ["ConsumerRole", "RenderSurface"]
