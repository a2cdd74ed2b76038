"""aiortc-backed peer link driven by the session state machine.

The link speaks the *wrapped* candidate shape on both sides: signals it
emits and signals it accepts are mappings produced by
:mod:`browserd.protocol.negotiation`. Every notable occurrence is reported
to a single sink as a :class:`PeerEvent`; once :meth:`AiortcPeerLink.close`
has been called no further events are emitted.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Protocol

from aiortc import (
    RTCConfiguration,
    RTCDataChannel,
    RTCIceServer,
    RTCPeerConnection,
    RTCSessionDescription,
)
from aiortc.mediastreams import MediaStreamTrack
from aiortc.sdp import candidate_from_sdp

from browserd.config.models import IceServerConfig
from browserd.protocol.negotiation import IceCandidate, parse_negotiation

logger = logging.getLogger(__name__)

INPUT_CHANNEL_LABEL = "input"


class PeerEventKind(str, Enum):
    SIGNAL = "signal"
    CONNECT = "connect"
    CLOSE = "close"
    ERROR = "error"
    DATA = "data"
    TRACK = "track"


@dataclass(frozen=True)
class PeerEvent:
    kind: PeerEventKind
    payload: Any = None


PeerEventSink = Callable[[PeerEvent], None]


class PeerLink(Protocol):
    """What the state machine needs from a peer connection."""

    async def start(self) -> None: ...

    async def signal(self, message: Mapping[str, Any]) -> None: ...

    def send(self, text: str) -> bool: ...

    async def close(self) -> None: ...


def build_rtc_configuration(ice_servers: Sequence[IceServerConfig]) -> RTCConfiguration:
    servers = [
        RTCIceServer(urls=list(s.urls), username=s.username, credential=s.credential)
        for s in ice_servers
    ]
    return RTCConfiguration(iceServers=servers or None)


class AiortcPeerLink:
    """One RTCPeerConnection plus the ``input`` data channel.

    The initiator creates the data channel and a receive-only video
    transceiver, then offers. The responder answers offers and attaches
    ``outbound_track`` (if any) as its video sender.
    """

    def __init__(
        self,
        *,
        initiator: bool,
        sink: PeerEventSink,
        outbound_track: Optional[MediaStreamTrack] = None,
        ice_servers: Sequence[IceServerConfig] = (),
        log_negotiation: bool = False,
    ) -> None:
        self.initiator = bool(initiator)
        self._sink = sink
        self._outbound_track = outbound_track
        self._log_negotiation = bool(log_negotiation)
        self._pc = RTCPeerConnection(configuration=build_rtc_configuration(ice_servers))
        self._channel: Optional[RTCDataChannel] = None
        self._connected = False
        self._closed = False

        self._pc.on("connectionstatechange", self._on_connection_state)
        self._pc.on("datachannel", self._on_datachannel)
        self._pc.on("track", self._on_track)
        if self.initiator:
            self._bind_channel(self._pc.createDataChannel(INPUT_CHANNEL_LABEL, ordered=True))

    # --- Events ---------------------------------------------------------------
    def _emit(self, kind: PeerEventKind, payload: Any = None) -> None:
        if self._closed:
            return
        self._sink(PeerEvent(kind, payload))

    def _bind_channel(self, channel: RTCDataChannel) -> None:
        self._channel = channel

        @channel.on("open")
        def _on_open() -> None:
            self._mark_connected()

        @channel.on("close")
        def _on_close() -> None:
            logger.info("data channel %r closed", channel.label)
            self._emit(PeerEventKind.CLOSE, "data channel closed")

        @channel.on("message")
        def _on_message(message: Any) -> None:
            if isinstance(message, (bytes, bytearray)):
                message = bytes(message).decode("utf-8", errors="replace")
            self._emit(PeerEventKind.DATA, message)

        if channel.readyState == "open":
            self._mark_connected()

    def _mark_connected(self) -> None:
        if self._connected:
            return
        self._connected = True
        self._emit(PeerEventKind.CONNECT)

    def _on_datachannel(self, channel: RTCDataChannel) -> None:
        if channel.label != INPUT_CHANNEL_LABEL:
            logger.debug("ignoring unexpected data channel %r", channel.label)
            return
        self._bind_channel(channel)

    def _on_track(self, track: MediaStreamTrack) -> None:
        logger.info("remote %s track received", track.kind)
        self._emit(PeerEventKind.TRACK, track)

    async def _on_connection_state(self) -> None:
        state = self._pc.connectionState
        if self._log_negotiation:
            logger.info("peer connection state: %s", state)
        if state in ("failed", "closed", "disconnected"):
            self._emit(PeerEventKind.CLOSE, f"peer connection {state}")

    def _emit_description(self) -> None:
        desc = self._pc.localDescription
        if desc is None:
            return
        if self._log_negotiation:
            logger.info("local %s ready (%d bytes)", desc.type, len(desc.sdp))
        self._emit(PeerEventKind.SIGNAL, {"type": desc.type, "sdp": desc.sdp})

    # --- Operations -----------------------------------------------------------
    async def start(self) -> None:
        """Emit the opening offer when acting as initiator; no-op otherwise."""

        if not self.initiator:
            return
        self._pc.addTransceiver("video", direction="recvonly")
        await self._pc.setLocalDescription(await self._pc.createOffer())
        self._emit_description()

    async def signal(self, message: Mapping[str, Any]) -> None:
        parsed = parse_negotiation(message)
        if isinstance(parsed, IceCandidate):
            await self._add_candidate(parsed)
            return
        await self._pc.setRemoteDescription(RTCSessionDescription(sdp=parsed.sdp, type=parsed.type))
        if self._log_negotiation:
            logger.info("remote %s applied", parsed.type)
        if parsed.type == "offer":
            if self._outbound_track is not None:
                self._pc.addTrack(self._outbound_track)
            await self._pc.setLocalDescription(await self._pc.createAnswer())
            self._emit_description()

    async def _add_candidate(self, parsed: IceCandidate) -> None:
        line = parsed.candidate
        if not line:
            # End-of-candidates marker.
            return
        if line.startswith("candidate:"):
            line = line.split(":", 1)[1]
        candidate = candidate_from_sdp(line)
        candidate.sdpMid = parsed.sdp_mid
        candidate.sdpMLineIndex = parsed.sdp_mline_index
        await self._pc.addIceCandidate(candidate)

    def send(self, text: str) -> bool:
        channel = self._channel
        if self._closed or channel is None or channel.readyState != "open":
            return False
        channel.send(text)
        return True

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._pc.close()


__all__ = [
    "INPUT_CHANNEL_LABEL",
    "AiortcPeerLink",
    "PeerEvent",
    "PeerEventKind",
    "PeerEventSink",
    "PeerLink",
    "build_rtc_configuration",
]
