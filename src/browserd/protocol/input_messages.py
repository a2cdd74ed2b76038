"""Versioned input wire protocol carried over the session data channel.

Every message is a JSON object ``{"type", "version", "data"}``. Four types
exist: ``touch``, ``wheel``, ``keyboard`` and ``resize``. Only version 1 is
defined. Payloads are always read as mappings so key order on the wire is
irrelevant.

Wheel messages carry a sequence of deltas for forward compatibility, but
only the first entry is authoritative for the receiving translator.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Sequence, Union

from browserd.errors import MalformedInputMessage, UnknownMessageType, UnsupportedVersion

PROTOCOL_VERSION = 1


class MessageType(str, Enum):
    TOUCH = "touch"
    WHEEL = "wheel"
    KEYBOARD = "keyboard"
    RESIZE = "resize"


class TouchState(str, Enum):
    START = "start"
    END = "end"
    MOVE = "move"
    NONE = "none"


class KeyState(str, Enum):
    PRESSED = "pressed"
    RELEASED = "released"


def _require_mapping(value: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise MalformedInputMessage(f"{what} must be a mapping, got {type(value).__name__}")
    return value


def _number(data: Mapping[str, Any], key: str, default: float | None = None) -> float:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedInputMessage(f"field {key!r} must be numeric, got {value!r}")
    return value


def _pointer_list(data: Mapping[str, Any]) -> Sequence[Any]:
    pointers = data.get("pointers")
    if not isinstance(pointers, (list, tuple)):
        raise MalformedInputMessage("data.pointers must be a sequence")
    return pointers


def _enum(cls, value: Any, key: str):  # type: ignore[no-untyped-def]
    try:
        return cls(value)
    except ValueError:
        raise MalformedInputMessage(f"field {key!r} has unknown value {value!r}") from None


@dataclass(frozen=True, slots=True)
class PointerData:
    id: int
    x: float
    y: float
    z: float = 0
    state: TouchState = TouchState.NONE

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "x": self.x, "y": self.y, "z": self.z, "state": self.state.value}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PointerData":
        data = _require_mapping(data, "pointer")
        return cls(
            id=data.get("id", 0),
            x=_number(data, "x"),
            y=_number(data, "y"),
            z=_number(data, "z", 0),
            state=_enum(TouchState, data.get("state"), "state"),
        )


@dataclass(frozen=True, slots=True)
class WheelDelta:
    dx: float
    dy: float
    dz: float = 0
    mode: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"dx": self.dx, "dy": self.dy, "dz": self.dz, "mode": self.mode}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "WheelDelta":
        data = _require_mapping(data, "wheel pointer")
        return cls(
            dx=_number(data, "dx", 0),
            dy=_number(data, "dy", 0),
            dz=_number(data, "dz", 0),
            mode=int(_number(data, "mode", 0)),
        )


@dataclass(frozen=True, slots=True)
class TouchData:
    pointers: tuple[PointerData, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {"pointers": [p.to_dict() for p in self.pointers]}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TouchData":
        return cls(pointers=tuple(PointerData.from_dict(p) for p in _pointer_list(data)))


@dataclass(frozen=True, slots=True)
class WheelData:
    pointers: tuple[WheelDelta, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {"pointers": [p.to_dict() for p in self.pointers]}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "WheelData":
        pointers = tuple(WheelDelta.from_dict(p) for p in _pointer_list(data))
        if not pointers:
            raise MalformedInputMessage("wheel message carries no deltas")
        return cls(pointers=pointers)

    @property
    def primary(self) -> WheelDelta:
        return self.pointers[0]


@dataclass(frozen=True, slots=True)
class KeyboardData:
    key: str
    state: KeyState

    def to_dict(self) -> Dict[str, Any]:
        return {"key": self.key, "state": self.state.value}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "KeyboardData":
        key = data.get("key")
        if not isinstance(key, str) or not key:
            raise MalformedInputMessage("keyboard data.key must be a non-empty string")
        return cls(key=key, state=_enum(KeyState, data.get("state"), "state"))


@dataclass(frozen=True, slots=True)
class ResizeData:
    width: int
    height: int

    def to_dict(self) -> Dict[str, Any]:
        return {"width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ResizeData":
        width = _number(data, "width")
        height = _number(data, "height")
        if width <= 0 or height <= 0:
            raise MalformedInputMessage(f"resize to non-positive size {width}x{height}")
        return cls(width=int(width), height=int(height))


InputData = Union[TouchData, WheelData, KeyboardData, ResizeData]

_DATA_TYPES: Dict[MessageType, Any] = {
    MessageType.TOUCH: TouchData,
    MessageType.WHEEL: WheelData,
    MessageType.KEYBOARD: KeyboardData,
    MessageType.RESIZE: ResizeData,
}


@dataclass(frozen=True, slots=True)
class InputMessage:
    type: MessageType
    data: InputData
    version: int = PROTOCOL_VERSION

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.value, "version": self.version, "data": self.data.to_dict()}


def _message_type(tag: Any) -> MessageType:
    try:
        return MessageType(tag)
    except ValueError:
        raise UnknownMessageType(tag) from None


def encode(message_type: Union[MessageType, str], payload: Union[InputData, Mapping[str, Any]]) -> Dict[str, Any]:
    """Build a wire message stamped with the current protocol version.

    ``payload`` may be a typed data object or a plain mapping; mappings are
    validated through the typed loader so nothing malformed leaves the process.
    """

    mtype = _message_type(message_type.value if isinstance(message_type, MessageType) else message_type)
    data_cls = _DATA_TYPES[mtype]
    if isinstance(payload, Mapping):
        data = data_cls.from_dict(payload)
    elif isinstance(payload, data_cls):
        data = payload
    else:
        raise MalformedInputMessage(f"{mtype.value} payload has unexpected type {type(payload).__name__}")
    return InputMessage(type=mtype, data=data).to_dict()


def encode_json(message_type: Union[MessageType, str], payload: Union[InputData, Mapping[str, Any]]) -> str:
    return json.dumps(encode(message_type, payload), separators=(",", ":"))


def decode(wire: Union[Mapping[str, Any], str, bytes, bytearray]) -> InputMessage:
    """Decode a wire message.

    Raises :class:`UnsupportedVersion` first (any version other than 1),
    then :class:`UnknownMessageType` for unrecognised tags, and
    :class:`MalformedInputMessage` for structural problems.
    """

    if isinstance(wire, (str, bytes, bytearray)):
        try:
            wire = json.loads(wire)
        except ValueError as exc:
            raise MalformedInputMessage(f"input message is not JSON: {exc}") from None
    envelope = _require_mapping(wire, "input message")
    version = envelope.get("version")
    if isinstance(version, bool) or version != PROTOCOL_VERSION:
        raise UnsupportedVersion(version)
    mtype = _message_type(envelope.get("type"))
    data = _require_mapping(envelope.get("data"), "input message data")
    return InputMessage(type=mtype, data=_DATA_TYPES[mtype].from_dict(data), version=PROTOCOL_VERSION)


__all__ = [
    "PROTOCOL_VERSION",
    "InputData",
    "InputMessage",
    "KeyState",
    "KeyboardData",
    "MessageType",
    "PointerData",
    "ResizeData",
    "TouchData",
    "TouchState",
    "WheelData",
    "WheelDelta",
    "decode",
    "encode",
    "encode_json",
]
