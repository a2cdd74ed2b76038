from __future__ import annotations

import json

import pytest

from browserd.errors import NegotiationError
from browserd.protocol import (
    CandidateShape,
    IceCandidate,
    SessionDescription,
    candidate_shape,
    decode_wire,
    encode_wire,
    parse_negotiation,
    unwrap_candidate,
    wrap_candidate,
)

_LINE = "candidate:1 1 UDP 2130706431 192.168.1.5 50000 typ host"
_BARE = {"candidate": _LINE, "sdpMid": "0", "sdpMLineIndex": 0}
_WRAPPED = {"candidate": {"candidate": _LINE, "sdpMid": "0", "sdpMLineIndex": 0}}


def test_discriminator() -> None:
    assert candidate_shape(_BARE) is CandidateShape.BARE
    assert candidate_shape(_WRAPPED) is CandidateShape.WRAPPED
    assert candidate_shape({"type": "offer", "sdp": "v=0"}) is None
    with pytest.raises(NegotiationError):
        candidate_shape({"candidate": 42})


def test_bare_wraps_then_unwraps_back() -> None:
    wrapped = wrap_candidate(_BARE)

    assert wrapped == _WRAPPED
    assert unwrap_candidate(wrapped) == _BARE


def test_wrapped_unwraps_then_wraps_back() -> None:
    bare = unwrap_candidate(_WRAPPED)

    assert bare == _BARE
    assert wrap_candidate(bare) == _WRAPPED


def test_normalisation_is_idempotent_per_direction() -> None:
    assert wrap_candidate(_WRAPPED) == _WRAPPED
    assert unwrap_candidate(_BARE) == _BARE


def test_descriptions_pass_through_both_directions() -> None:
    offer = {"type": "offer", "sdp": "v=0\r\n"}

    assert wrap_candidate(offer) == offer
    assert unwrap_candidate(offer) == offer
    assert parse_negotiation(json.dumps(offer)) == SessionDescription(type="offer", sdp="v=0\r\n")


def test_candidate_without_mline_keeps_optional_fields_absent() -> None:
    message = parse_negotiation({"candidate": {"candidate": _LINE}})

    assert message == IceCandidate(candidate=_LINE)
    assert message.to_bare() == {"candidate": _LINE}


def test_wire_helpers() -> None:
    text = encode_wire(_WRAPPED)

    assert json.loads(text) == _BARE
    assert decode_wire(text) == _WRAPPED


@pytest.mark.parametrize("raw", ["not json", "[1, 2]", '{"type": "bogus"}', '{"type": "offer"}'])
def test_unparseable_payloads(raw: str) -> None:
    with pytest.raises(NegotiationError):
        parse_negotiation(raw)
