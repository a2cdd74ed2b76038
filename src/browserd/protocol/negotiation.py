"""Negotiation payloads exchanged through the signaling channel.

A negotiation message is either a session description (``offer``/``answer``)
or an ICE candidate. Candidates travel in one of two shapes:

* *bare*: ``{"candidate": "candidate:...", "sdpMid": "0", "sdpMLineIndex": 0}``
* *wrapped*: ``{"candidate": {"candidate": "candidate:...", "sdpMid": ..., "sdpMLineIndex": ...}}``

The signaling wire always carries the bare shape; the local peer link
speaks the wrapped one. :func:`candidate_shape` is the single discriminator
both directions go through.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

from browserd.errors import NegotiationError

DESCRIPTION_TYPES = ("offer", "answer", "pranswer", "rollback")


class CandidateShape(str, Enum):
    BARE = "bare"
    WRAPPED = "wrapped"


@dataclass(frozen=True, slots=True)
class SessionDescription:
    type: str
    sdp: str

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "sdp": self.sdp}


@dataclass(frozen=True, slots=True)
class IceCandidate:
    candidate: str
    sdp_mid: Optional[str] = None
    sdp_mline_index: Optional[int] = None

    def to_bare(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"candidate": self.candidate}
        if self.sdp_mid is not None:
            payload["sdpMid"] = self.sdp_mid
        if self.sdp_mline_index is not None:
            payload["sdpMLineIndex"] = self.sdp_mline_index
        return payload

    def to_wrapped(self) -> Dict[str, Any]:
        return {"candidate": self.to_bare()}


NegotiationMessage = Union[SessionDescription, IceCandidate]


def candidate_shape(payload: Mapping[str, Any]) -> Optional[CandidateShape]:
    """Return the candidate shape of ``payload`` or ``None`` for descriptions."""

    if "candidate" not in payload:
        return None
    inner = payload["candidate"]
    if isinstance(inner, Mapping):
        return CandidateShape.WRAPPED
    if isinstance(inner, str):
        return CandidateShape.BARE
    raise NegotiationError(f"candidate field has unsupported type {type(inner).__name__}")


def _candidate_from_fields(fields: Mapping[str, Any]) -> IceCandidate:
    line = fields.get("candidate")
    if not isinstance(line, str):
        raise NegotiationError("candidate line must be a string")
    mline = fields.get("sdpMLineIndex")
    return IceCandidate(
        candidate=line,
        sdp_mid=fields.get("sdpMid"),
        sdp_mline_index=int(mline) if mline is not None else None,
    )


def parse_negotiation(payload: Union[Mapping[str, Any], str, bytes]) -> NegotiationMessage:
    """Decode either candidate shape or a session description into a typed message."""

    if isinstance(payload, (str, bytes, bytearray)):
        try:
            payload = json.loads(payload)
        except ValueError as exc:
            raise NegotiationError(f"negotiation payload is not JSON: {exc}") from None
    if not isinstance(payload, Mapping):
        raise NegotiationError("negotiation payload must be a JSON object")

    shape = candidate_shape(payload)
    if shape is CandidateShape.WRAPPED:
        return _candidate_from_fields(payload["candidate"])
    if shape is CandidateShape.BARE:
        return _candidate_from_fields(payload)

    kind = payload.get("type")
    sdp = payload.get("sdp")
    if kind not in DESCRIPTION_TYPES or not isinstance(sdp, str):
        raise NegotiationError(f"unrecognised negotiation payload (type={kind!r})")
    return SessionDescription(type=str(kind), sdp=sdp)


def wrap_candidate(payload: Union[Mapping[str, Any], str, bytes]) -> Dict[str, Any]:
    """Normalise an inbound wire payload to the shape the local peer link expects."""

    message = parse_negotiation(payload)
    if isinstance(message, IceCandidate):
        return message.to_wrapped()
    return message.to_dict()


def unwrap_candidate(payload: Union[Mapping[str, Any], str, bytes]) -> Dict[str, Any]:
    """Normalise an outbound peer-link signal to the bare wire shape."""

    message = parse_negotiation(payload)
    if isinstance(message, IceCandidate):
        return message.to_bare()
    return message.to_dict()


def encode_wire(payload: Mapping[str, Any]) -> str:
    return json.dumps(unwrap_candidate(payload))


def decode_wire(raw: Union[str, bytes]) -> Dict[str, Any]:
    return wrap_candidate(raw)


__all__ = [
    "CandidateShape",
    "IceCandidate",
    "NegotiationMessage",
    "SessionDescription",
    "candidate_shape",
    "decode_wire",
    "encode_wire",
    "parse_negotiation",
    "unwrap_candidate",
    "wrap_candidate",
]
