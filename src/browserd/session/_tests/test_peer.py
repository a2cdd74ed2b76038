from __future__ import annotations

import asyncio
from typing import Any

import pytest

pytest.importorskip("aiortc")

from aiortc import VideoStreamTrack  # noqa: E402

from browserd.protocol.negotiation import decode_wire, encode_wire  # noqa: E402
from browserd.session.peer import AiortcPeerLink, PeerEvent, PeerEventKind  # noqa: E402


class _PcStub:
    connectionState = "new"

    def __init__(self) -> None:
        self.candidates: list[Any] = []
        self.closed = 0

    async def addIceCandidate(self, candidate: Any) -> None:
        self.candidates.append(candidate)

    async def close(self) -> None:
        self.closed += 1


async def _stubbed_link(events: list[PeerEvent]) -> tuple[AiortcPeerLink, _PcStub]:
    link = AiortcPeerLink(initiator=False, sink=events.append)
    real = link._pc
    stub = _PcStub()
    link._pc = stub  # type: ignore[assignment]
    await real.close()
    return link, stub


async def _wait_for(events: list[PeerEvent], kind: PeerEventKind, timeout: float = 15.0) -> PeerEvent:
    async def _poll() -> PeerEvent:
        while True:
            for event in events:
                if event.kind is kind:
                    return event
            await asyncio.sleep(0.01)

    return await asyncio.wait_for(_poll(), timeout)


def test_candidates_are_parsed_with_and_without_prefix() -> None:
    async def runner() -> None:
        link, pc = await _stubbed_link([])

        await link.signal(
            {"candidate": {"candidate": "candidate:1 1 udp 2130706431 192.168.1.5 54321 typ host", "sdpMid": "0", "sdpMLineIndex": 0}}
        )
        await link.signal({"candidate": {"candidate": "2 1 udp 1694498815 203.0.113.7 40000 typ srflx raddr 10.0.0.2 rport 5000"}})

        first, second = pc.candidates
        assert (first.ip, first.port, first.type, first.protocol) == ("192.168.1.5", 54321, "host", "udp")
        assert (first.sdpMid, first.sdpMLineIndex) == ("0", 0)
        assert (second.foundation, second.type, second.relatedAddress, second.relatedPort) == ("2", "srflx", "10.0.0.2", 5000)
        await link.close()

    asyncio.run(runner())


def test_end_of_candidates_marker_is_ignored() -> None:
    async def runner() -> None:
        link, pc = await _stubbed_link([])

        await link.signal({"candidate": {"candidate": "", "sdpMid": "0", "sdpMLineIndex": 0}})

        assert pc.candidates == []
        await link.close()

    asyncio.run(runner())


def test_close_is_idempotent_and_silences_events() -> None:
    async def runner() -> None:
        events: list[PeerEvent] = []
        link, pc = await _stubbed_link(events)

        assert link.send("early") is False
        await link.close()
        await link.close()
        link._emit(PeerEventKind.CLOSE, "late")

        assert pc.closed == 1
        assert events == []
        assert link.send("late") is False

    asyncio.run(runner())


def test_links_negotiate_stream_and_exchange_input() -> None:
    async def runner() -> None:
        consumer_events: list[PeerEvent] = []
        provider_events: list[PeerEvent] = []
        to_provider: asyncio.Queue[str] = asyncio.Queue()
        to_consumer: asyncio.Queue[str] = asyncio.Queue()

        def _sink(events: list[PeerEvent], outbox: asyncio.Queue[str]):
            def _on_event(event: PeerEvent) -> None:
                if event.kind is PeerEventKind.SIGNAL:
                    outbox.put_nowait(encode_wire(event.payload))
                events.append(event)

            return _on_event

        track = VideoStreamTrack()
        consumer = AiortcPeerLink(initiator=True, sink=_sink(consumer_events, to_provider))
        provider = AiortcPeerLink(initiator=False, sink=_sink(provider_events, to_consumer), outbound_track=track)

        async def _pump(inbox: asyncio.Queue[str], link: AiortcPeerLink) -> None:
            while True:
                raw = await inbox.get()
                await link.signal(decode_wire(raw))

        pumps = [
            asyncio.create_task(_pump(to_provider, provider)),
            asyncio.create_task(_pump(to_consumer, consumer)),
        ]
        try:
            await consumer.start()
            offer = consumer_events[0]
            assert offer.kind is PeerEventKind.SIGNAL and offer.payload["type"] == "offer"

            await _wait_for(consumer_events, PeerEventKind.CONNECT)
            await _wait_for(provider_events, PeerEventKind.CONNECT)
            received = await _wait_for(consumer_events, PeerEventKind.TRACK)
            assert received.payload.kind == "video"
            assert any(e.kind is PeerEventKind.SIGNAL and e.payload["type"] == "answer" for e in provider_events)

            assert consumer.send('{"type":"resize","version":1,"data":{"width":4,"height":4}}') is True
            data = await _wait_for(provider_events, PeerEventKind.DATA)
            assert data.payload == '{"type":"resize","version":1,"data":{"width":4,"height":4}}'
            assert sum(e.kind is PeerEventKind.CONNECT for e in provider_events) == 1

            await consumer.close()
            seen = len(consumer_events)
            await asyncio.sleep(0.1)
            assert len(consumer_events) == seen
            assert consumer.send("after close") is False
        finally:
            for pump in pumps:
                pump.cancel()
            await asyncio.gather(*pumps, return_exceptions=True)
            await consumer.close()
            await provider.close()
            track.stop()

    asyncio.run(runner())
