from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Optional

from browserd.session.peer import PeerLink
from browserd.signaling.roster import Participant


class SessionRole:
    """Role-specific hooks invoked by :class:`PeerSessionMachine`.

    The consumer role initiates negotiation and renders the inbound track;
    the provider role answers and feeds its capture track outward. Hooks run
    on the machine's event task and must not block.
    """

    initiator: bool = False

    def participant_name(self) -> str:
        raise NotImplementedError

    def select_remote(self, self_id: str, roster: Sequence[Participant]) -> Optional[str]:
        """Pick the remote participant to negotiate with.

        Returning ``None`` means "wait for the remote to contact us".
        """

        return None

    def outbound_track(self) -> Optional[Any]:
        return None

    def on_streaming(self, link: PeerLink) -> None:
        pass

    def on_track(self, track: Any) -> None:
        pass

    def on_data(self, text: str) -> None:
        pass

    def release(self) -> None:
        pass


__all__ = ["SessionRole"]
