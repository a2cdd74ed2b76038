"""Polling client for the peerconnection-server rendezvous protocol.

The channel owns the HTTP session and the poll task only. What to do with
inbound payloads is decided by whoever subscribes to its events; transport
errors are reported as events and never stop the poll loop on their own.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from enum import Enum
from typing import Any, Optional
from urllib.parse import quote

import aiohttp

from browserd.errors import SignalingUnavailable
from browserd.signaling.roster import Participant, apply_roster_update, parse_roster

logger = logging.getLogger(__name__)


class SignalEventKind(str, Enum):
    PEER_MESSAGE = "peer-message"
    PEER_JOINED = "peer-joined"
    PEER_LEFT = "peer-left"
    ERROR = "error"


SignalCallback = Callable[..., None]


def _decode_body(raw: bytes) -> str:
    # Payloads are relayed opaquely; undecodable bytes must not stop the poll loop.
    return raw.decode("utf-8", errors="replace")


class SignalingChannel:
    """Register under a display name, discover peers and exchange opaque payloads.

    Event callbacks receive:

    - ``PEER_MESSAGE``: ``(payload: str, from_id: str)``
    - ``PEER_JOINED`` / ``PEER_LEFT``: ``(participant: Participant)``
    - ``ERROR``: ``(err: Exception)``
    """

    def __init__(
        self,
        url: str,
        *,
        poll_interval_s: float = 1.0,
        request_timeout_s: float = 35.0,
        session: Optional[aiohttp.ClientSession] = None,
        log_traffic: bool = False,
    ) -> None:
        self.url = url.rstrip("/")
        self.poll_interval_s = float(max(0.0, poll_interval_s))
        self._timeout = aiohttp.ClientTimeout(total=float(request_timeout_s))
        self._session = session
        self._owns_session = session is None
        self._log_traffic = bool(log_traffic)
        self._listeners: dict[SignalEventKind, list[SignalCallback]] = {kind: [] for kind in SignalEventKind}
        self._participant_id: Optional[str] = None
        self._roster: dict[str, Participant] = {}
        self._poll_task: Optional[asyncio.Task[None]] = None

    # --- Events ---------------------------------------------------------------
    def subscribe(self, kind: SignalEventKind, callback: SignalCallback) -> None:
        self._listeners[SignalEventKind(kind)].append(callback)

    def unsubscribe(self, kind: SignalEventKind, callback: SignalCallback) -> None:
        listeners = self._listeners[SignalEventKind(kind)]
        if callback in listeners:
            listeners.remove(callback)

    def _emit(self, kind: SignalEventKind, *args: Any) -> None:
        for callback in list(self._listeners[kind]):
            try:
                callback(*args)
            except Exception:
                logger.exception("signaling %s listener failed", kind.value)

    # --- State ----------------------------------------------------------------
    @property
    def participant_id(self) -> Optional[str]:
        return self._participant_id

    @property
    def signed_in(self) -> bool:
        return self._participant_id is not None

    @property
    def roster(self) -> dict[str, Participant]:
        return dict(self._roster)

    def _http(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    # --- Operations -----------------------------------------------------------
    async def sign_in(self, name: str) -> tuple[str, list[Participant]]:
        """Register ``name`` and return the assigned id plus the current roster."""

        if self.signed_in:
            await self.sign_out()
        url = f"{self.url}/sign_in?{quote(name, safe='')}"
        try:
            async with self._http().get(url, timeout=self._timeout) as resp:
                body = _decode_body(await resp.read())
                if resp.status != 200:
                    raise SignalingUnavailable(f"sign_in rejected with HTTP {resp.status}: {body.strip()[:200]}")
                pragma = resp.headers.get("Pragma")
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
            raise SignalingUnavailable(f"cannot reach {self.url}: {exc}") from exc

        participants = parse_roster(body)
        if not participants:
            raise SignalingUnavailable("sign_in response carried no roster")
        assigned = (pragma or "").strip() or participants[0].id
        self._participant_id = assigned
        self._roster = {p.id: p for p in participants if p.connected}
        logger.info("signed in as %s (id=%s, %d participants)", name, assigned, len(self._roster))
        self._poll_task = asyncio.create_task(self._poll_loop(), name="browserd-signal-poll")
        return assigned, participants

    async def sign_out(self) -> None:
        """Deregister; a no-op when not signed in."""

        peer_id = self._participant_id
        if peer_id is None:
            return
        self._participant_id = None
        self._roster = {}
        task, self._poll_task = self._poll_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception:
                logger.exception("signaling poll task ended with an error")
        try:
            async with self._http().get(f"{self.url}/sign_out", params={"peer_id": peer_id}) as resp:
                await resp.read()
                if resp.status != 200:
                    logger.debug("sign_out answered HTTP %d", resp.status)
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
            self._emit(SignalEventKind.ERROR, SignalingUnavailable(f"sign_out failed: {exc}"))
        logger.info("signed out (id=%s)", peer_id)

    async def send(self, payload: str, to_id: str) -> bool:
        """Deliver ``payload`` to ``to_id``; True when the server accepted it.

        Delivery is best-effort: failures are reported through ``ERROR`` and
        the return value, never raised.
        """

        peer_id = self._participant_id
        if peer_id is None:
            self._emit(SignalEventKind.ERROR, SignalingUnavailable("send while not signed in"))
            return False
        try:
            async with self._http().post(
                f"{self.url}/message",
                params={"peer_id": peer_id, "to": to_id},
                data=payload.encode("utf-8"),
                headers={"Content-Type": "text/plain"},
            ) as resp:
                await resp.read()
                if resp.status != 200:
                    self._emit(SignalEventKind.ERROR, SignalingUnavailable(f"message to {to_id} rejected with HTTP {resp.status}"))
                    return False
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
            self._emit(SignalEventKind.ERROR, SignalingUnavailable(f"send to {to_id} failed: {exc}"))
            return False
        if self._log_traffic:
            logger.info("signal sent to %s (%d bytes)", to_id, len(payload))
        return True

    async def close(self) -> None:
        await self.sign_out()
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    # --- Poll loop ------------------------------------------------------------
    async def _poll_loop(self) -> None:
        while self._participant_id is not None:
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                raise
            except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
                self._emit(SignalEventKind.ERROR, SignalingUnavailable(f"wait failed: {exc}"))
            except ValueError as exc:
                self._emit(SignalEventKind.ERROR, SignalingUnavailable(f"unreadable wait response: {exc}"))
            await asyncio.sleep(self.poll_interval_s)

    async def poll_once(self) -> None:
        """Fetch one pending notification (roster update or peer message)."""

        peer_id = self._participant_id
        if peer_id is None:
            return
        async with self._http().get(f"{self.url}/wait", params={"peer_id": peer_id}) as resp:
            body = _decode_body(await resp.read())
            status = resp.status
            sender = (resp.headers.get("Pragma") or "").strip()
        if status >= 400:
            self._emit(SignalEventKind.ERROR, SignalingUnavailable(f"wait answered HTTP {status}"))
            return
        if status != 200 or not sender:
            return
        if sender == peer_id:
            self._handle_roster_update(body)
            return
        if self._log_traffic:
            logger.info("signal received from %s (%d bytes)", sender, len(body))
        self._emit(SignalEventKind.PEER_MESSAGE, body, sender)

    def _handle_roster_update(self, body: str) -> None:
        self._roster, diff = apply_roster_update(self._roster, parse_roster(body))
        for participant in diff.joined:
            logger.debug("participant joined: %s (%s)", participant.id, participant.name)
            self._emit(SignalEventKind.PEER_JOINED, participant)
        for participant in diff.left:
            logger.debug("participant left: %s (%s)", participant.id, participant.name)
            self._emit(SignalEventKind.PEER_LEFT, participant)


__all__ = ["SignalCallback", "SignalEventKind", "SignalingChannel"]
