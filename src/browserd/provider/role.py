from __future__ import annotations

import logging
from typing import Any, Optional
from uuid import uuid4

from aiortc.contrib.media import MediaRelay
from aiortc.mediastreams import MediaStreamTrack

from browserd.errors import InputProtocolError, UnknownMessageType
from browserd.metrics import Metrics
from browserd.protocol.input_messages import decode
from browserd.provider.translator import InputTranslator
from browserd.session.role import SessionRole

logger = logging.getLogger(__name__)


class ProviderRole(SessionRole):
    """Answer negotiations, stream the capture track and apply remote input.

    ``source`` is the capture track opened once at boot; each session gets
    its own relay subscription so a reconnect never restarts capture.
    """

    initiator = False

    def __init__(
        self,
        source: MediaStreamTrack,
        translator: InputTranslator,
        *,
        title: str = "browserd",
        metrics: Optional[Metrics] = None,
        relay: Optional[MediaRelay] = None,
    ) -> None:
        self.title = title
        self._source = source
        self._translator = translator
        self._metrics = metrics or Metrics()
        self._relay = relay or MediaRelay()
        self._outbound: Optional[MediaStreamTrack] = None

    def participant_name(self) -> str:
        return f"{self.title}.{uuid4()}"

    def outbound_track(self) -> MediaStreamTrack:
        self._stop_outbound()
        self._outbound = self._relay.subscribe(self._source)
        return self._outbound

    def on_streaming(self, link: Any) -> None:
        logger.info("provider streaming; accepting remote input")

    def on_data(self, text: str) -> None:
        try:
            message = decode(text)
        except UnknownMessageType as exc:
            logger.warning("skipping input message: %s", exc)
            self._metrics.inc("input.skipped")
            return
        except InputProtocolError as exc:
            logger.error("rejected input message: %s", exc)
            self._metrics.inc("input.rejected")
            return
        self._translator.apply(message)
        self._metrics.inc(f"input.applied.{message.type.value}")
        self._metrics.inc("input.applied")

    def _stop_outbound(self) -> None:
        track, self._outbound = self._outbound, None
        if track is not None:
            track.stop()

    def release(self) -> None:
        self._stop_outbound()


__all__ = ["ProviderRole"]
