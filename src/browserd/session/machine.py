"""Peer session state machine.

One task consumes a single event queue fed by the signaling channel and the
current peer link, so negotiation messages reach the link in the order they
arrived and every inbound input message is handled before the next one is
read. The machine owns the reconnect loop: each attempt signs in under a
fresh name, negotiates with exactly one remote, streams until the link
closes, tears everything down and goes around again, paced by
:class:`RetryPolicy`.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from browserd.config.logging_policy import DebugPolicy
from browserd.errors import NegotiationError, NoRemoteFound, SessionTornDown, SignalingUnavailable
from browserd.metrics import Metrics
from browserd.protocol.negotiation import decode_wire, encode_wire
from browserd.session.backoff import RetryPolicy
from browserd.session.peer import PeerEvent, PeerEventKind, PeerEventSink, PeerLink
from browserd.session.role import SessionRole
from browserd.session.state import PeerSession, SessionState
from browserd.signaling.channel import SignalEventKind, SignalingChannel
from browserd.signaling.roster import Participant

logger = logging.getLogger(__name__)


LinkFactory = Callable[..., PeerLink]


class _Source(str, Enum):
    SIGNAL = "signal"
    LEFT = "left"
    PEER = "peer"
    STOP = "stop"


@dataclass(frozen=True)
class _Event:
    source: _Source
    payload: Any = None
    sender: Optional[str] = None
    kind: Optional[PeerEventKind] = None
    generation: int = 0


class PeerSessionMachine:
    """Drive one :class:`PeerSession` through sign-in, negotiation and streaming.

    ``link_factory`` is called as ``link_factory(initiator=..., sink=...,
    outbound_track=...)`` once per negotiation and must return a
    :class:`~browserd.session.peer.PeerLink`.
    """

    def __init__(
        self,
        role: SessionRole,
        signaling: SignalingChannel,
        link_factory: LinkFactory,
        *,
        retry: Optional[RetryPolicy] = None,
        metrics: Optional[Metrics] = None,
        debug_policy: Optional[DebugPolicy] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.session = PeerSession()
        self._role = role
        self._signaling = signaling
        self._link_factory = link_factory
        self._retry = retry or RetryPolicy()
        self._metrics = metrics or Metrics()
        self._toggles = (debug_policy or DebugPolicy()).logging
        self._sleep = sleep
        self._queue: Optional[asyncio.Queue[_Event]] = None
        self._link: Optional[PeerLink] = None
        self._streamed = False
        self._negotiation_started: Optional[float] = None
        self._stopping = False

        signaling.subscribe(SignalEventKind.PEER_MESSAGE, self._on_peer_message)
        signaling.subscribe(SignalEventKind.PEER_LEFT, self._on_peer_left)
        signaling.subscribe(SignalEventKind.ERROR, self._on_signaling_error)

    # --- Introspection --------------------------------------------------------
    @property
    def state(self) -> SessionState:
        return self.session.state

    @property
    def link(self) -> Optional[PeerLink]:
        return self._link

    @property
    def metrics(self) -> Metrics:
        return self._metrics

    # --- Signaling callbacks --------------------------------------------------
    def _enqueue(self, event: _Event) -> None:
        if self._queue is not None:
            self._queue.put_nowait(event)

    def _on_peer_message(self, payload: str, sender: str) -> None:
        self._enqueue(_Event(_Source.SIGNAL, payload=payload, sender=sender))

    def _on_peer_left(self, participant: Participant) -> None:
        self._enqueue(_Event(_Source.LEFT, payload=participant, sender=participant.id))

    def _on_signaling_error(self, err: Exception) -> None:
        self._metrics.inc("signaling.errors")
        logger.warning("signaling error: %s", err)

    def _peer_sink(self, generation: int) -> PeerEventSink:
        def _sink(event: PeerEvent) -> None:
            self._enqueue(_Event(_Source.PEER, payload=event.payload, kind=event.kind, generation=generation))

        return _sink

    # --- Transitions ----------------------------------------------------------
    def _transition(self, new_state: SessionState) -> None:
        previous = self.session.transition(new_state)
        level = logging.INFO if self._toggles.log_session else logging.DEBUG
        logger.log(
            level,
            "session %s -> %s (generation %d)",
            previous.value,
            new_state.value,
            self.session.retry_generation,
        )

    def _replace_media(self, track: Any) -> None:
        previous = self.session.media_stream
        if previous is not None and previous is not track:
            stop = getattr(previous, "stop", None)
            if callable(stop):
                stop()
        self.session.media_stream = track

    # --- Loop -----------------------------------------------------------------
    def stop(self) -> None:
        """Ask :meth:`run` to finish after the current attempt tears down."""

        self._stopping = True
        self._enqueue(_Event(_Source.STOP))

    async def run(self, *, max_attempts: Optional[int] = None) -> None:
        """Run attempts until stopped; ``NoRemoteFound`` propagates to the caller."""

        attempts = 0
        try:
            while not self._stopping:
                if max_attempts is not None and attempts >= max_attempts:
                    break
                attempts += 1
                await self.run_attempt()
                if self._stopping:
                    break
                delay = self._retry.next_delay()
                if delay > 0:
                    logger.info(
                        "reconnecting in %.2fs (generation %d)", delay, self.session.retry_generation
                    )
                    await self._sleep(delay)
                self._metrics.inc("session.reconnects")
        finally:
            await self.shutdown()

    async def run_attempt(self) -> None:
        """One sign-in to disconnect cycle."""

        session = self.session
        self._queue = asyncio.Queue()
        self._streamed = False
        self._negotiation_started = None
        self._retry.record_attempt()
        self._transition(SessionState.SIGNING_IN)
        name = self._role.participant_name()
        session.participant_name = name
        self._metrics.inc("session.sign_in_attempts")
        try:
            self_id, roster = await self._signaling.sign_in(name)
        except SignalingUnavailable as exc:
            logger.warning("sign-in as %s failed: %s", name, exc)
            self._transition(SessionState.DISCONNECTED)
            await self._teardown()
            return
        session.participant_id = self_id
        self._transition(SessionState.AWAITING_REMOTE)

        try:
            remote = self._role.select_remote(self_id, roster)
        except NoRemoteFound:
            if session.retry_generation:
                logger.error(
                    "no remote participant available for %s while reconnecting (generation %d); giving up",
                    name,
                    session.retry_generation,
                )
            else:
                logger.error("no remote participant available for %s", name)
            await self._signaling.sign_out()
            self._transition(SessionState.IDLE)
            session.reset_attempt()
            raise

        try:
            if remote is not None:
                await self._begin_negotiation(remote)
            else:
                logger.info("signed in as %s; waiting for a remote", name)
            await self._pump()
        except SessionTornDown as exc:
            logger.info("session torn down: %s", exc)
        self._transition(SessionState.DISCONNECTED)
        await self._teardown()

    async def _begin_negotiation(self, remote_id: str) -> None:
        session = self.session
        session.remote_participant_id = remote_id
        self._transition(SessionState.NEGOTIATING)
        self._negotiation_started = time.perf_counter()
        track = self._role.outbound_track()
        if track is not None:
            self._replace_media(track)
        self._link = self._link_factory(
            initiator=self._role.initiator,
            sink=self._peer_sink(session.retry_generation),
            outbound_track=track,
        )
        logger.info("negotiating with %s", remote_id)
        try:
            await self._link.start()
        except Exception as exc:
            logger.exception("peer link failed to start")
            raise SessionTornDown(f"link start failed: {exc}") from exc

    async def _pump(self) -> None:
        assert self._queue is not None
        while True:
            event = await self._queue.get()
            if event.source is _Source.STOP:
                return
            if event.source is _Source.SIGNAL:
                await self._handle_signal(event.payload, event.sender)
            elif event.source is _Source.LEFT:
                self._handle_left(event.payload)
            elif event.generation == self.session.retry_generation:
                await self._handle_peer(event.kind, event.payload)

    # --- Event handlers -------------------------------------------------------
    async def _handle_signal(self, raw: str, sender: Optional[str]) -> None:
        session = self.session
        adopting = session.state is SessionState.AWAITING_REMOTE and bool(sender)
        if not adopting and sender != session.remote_participant_id:
            logger.debug("ignoring signal from inactive participant %s", sender)
            return
        try:
            message = decode_wire(raw)
        except NegotiationError as exc:
            logger.warning("dropping negotiation message from %s: %s", sender, exc)
            self._metrics.inc("negotiation.dropped")
            return
        if adopting:
            assert sender is not None
            await self._begin_negotiation(sender)
        if self._link is None:
            return
        if self._toggles.log_negotiation:
            logger.info("inbound %s from %s", message.get("type", "candidate"), sender)
        try:
            await self._link.signal(message)
        except NegotiationError as exc:
            logger.warning("peer link rejected negotiation message: %s", exc)
            self._metrics.inc("negotiation.dropped")
        except Exception as exc:
            logger.exception("peer link failed applying %s", message.get("type", "candidate"))
            raise SessionTornDown(f"negotiation failed: {exc}") from exc

    def _handle_left(self, participant: Participant) -> None:
        session = self.session
        if participant.id != session.remote_participant_id:
            return
        if session.state is SessionState.NEGOTIATING:
            raise SessionTornDown(f"remote {participant.id} left during negotiation")
        logger.debug("remote %s signed out of signaling", participant.id)

    async def _handle_peer(self, kind: Optional[PeerEventKind], payload: Any) -> None:
        session = self.session
        if kind is PeerEventKind.SIGNAL:
            remote = session.remote_participant_id
            if remote is None:
                return
            text = encode_wire(payload)
            if self._toggles.log_negotiation:
                logger.info("outbound %s to %s", payload.get("type", "candidate"), remote)
            await self._signaling.send(text, remote)
        elif kind is PeerEventKind.CONNECT:
            if session.state is not SessionState.NEGOTIATING:
                return
            self._transition(SessionState.STREAMING)
            self._streamed = True
            self._retry.record_success()
            self._metrics.inc("session.streamed")
            if self._negotiation_started is not None:
                self._metrics.observe_ms(
                    "session.negotiation_ms", (time.perf_counter() - self._negotiation_started) * 1000.0
                )
            logger.info("streaming with %s", session.remote_participant_id)
            assert self._link is not None
            self._role.on_streaming(self._link)
        elif kind is PeerEventKind.TRACK:
            self._replace_media(payload)
            self._role.on_track(payload)
        elif kind is PeerEventKind.DATA:
            if self._toggles.log_input:
                logger.info("input message: %s", payload)
            try:
                self._role.on_data(payload)
            except Exception:
                logger.exception("input message handling failed")
        elif kind in (PeerEventKind.CLOSE, PeerEventKind.ERROR):
            raise SessionTornDown(str(payload) if payload else kind.value)

    # --- Teardown -------------------------------------------------------------
    async def _teardown(self) -> None:
        session = self.session
        if not self._streamed:
            self._retry.record_failure()
        link, self._link = self._link, None
        await self._signaling.sign_out()
        if link is not None:
            await link.close()
        self._role.release()
        self._replace_media(None)
        session.reset_attempt()
        session.retry_generation += 1
        self._metrics.set("session.retry_generation", session.retry_generation)

    async def shutdown(self) -> None:
        """Release everything held by the current attempt; safe to call repeatedly."""

        link, self._link = self._link, None
        if link is not None:
            await link.close()
        await self._signaling.sign_out()
        self._role.release()
        self._replace_media(None)


__all__ = ["LinkFactory", "PeerSessionMachine"]
