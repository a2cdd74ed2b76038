from __future__ import annotations

import json

import pytest

from browserd.errors import MalformedInputMessage, UnknownMessageType, UnsupportedVersion
from browserd.protocol import (
    PROTOCOL_VERSION,
    KeyState,
    MessageType,
    PointerData,
    TouchData,
    TouchState,
    decode,
    encode,
    encode_json,
)


_PAYLOADS = {
    "touch": {"pointers": [{"id": 1, "x": 10.5, "y": 20.0, "z": 0, "state": "start"}]},
    "wheel": {"pointers": [{"dx": 0, "dy": 120, "dz": 0, "mode": 0}, {"dx": 4, "dy": 2, "dz": 0, "mode": 1}]},
    "keyboard": {"key": "a", "state": "pressed"},
    "resize": {"width": 1280, "height": 720},
}


@pytest.mark.parametrize("tag", sorted(_PAYLOADS))
def test_decode_inverts_encode(tag: str) -> None:
    wire = encode(tag, _PAYLOADS[tag])

    assert wire["version"] == PROTOCOL_VERSION
    assert wire["type"] == tag
    decoded = decode(wire)
    assert decoded.type is MessageType(tag)
    assert decoded.data.to_dict() == _PAYLOADS[tag]


def test_encode_accepts_typed_payload() -> None:
    data = TouchData(pointers=(PointerData(id=2, x=1, y=2, state=TouchState.MOVE),))
    text = encode_json(MessageType.TOUCH, data)

    assert json.loads(text) == {
        "type": "touch",
        "version": 1,
        "data": {"pointers": [{"id": 2, "x": 1, "y": 2, "z": 0, "state": "move"}]},
    }


def test_decode_reads_payload_as_mapping() -> None:
    raw = '{"data": {"state": "released", "key": "Shift"}, "version": 1, "type": "keyboard"}'

    message = decode(raw)

    assert message.data.key == "Shift"
    assert message.data.state is KeyState.RELEASED


def test_wheel_version_two_is_unsupported() -> None:
    wire = {"type": "wheel", "version": 2, "data": _PAYLOADS["wheel"]}

    with pytest.raises(UnsupportedVersion) as excinfo:
        decode(wire)
    assert excinfo.value.version == 2


def test_version_is_checked_before_type() -> None:
    with pytest.raises(UnsupportedVersion):
        decode({"type": "gamepad", "version": 7, "data": {}})


def test_unknown_type_is_reported() -> None:
    with pytest.raises(UnknownMessageType) as excinfo:
        decode({"type": "gamepad", "version": 1, "data": {}})
    assert excinfo.value.message_type == "gamepad"


def test_encode_rejects_unknown_type() -> None:
    with pytest.raises(UnknownMessageType):
        encode("gamepad", {})


@pytest.mark.parametrize(
    "wire",
    [
        {"type": "touch", "version": 1, "data": {"pointers": "nope"}},
        {"type": "touch", "version": 1, "data": {"pointers": [{"x": 1, "y": 2, "state": "hover"}]}},
        {"type": "keyboard", "version": 1, "data": {"key": "", "state": "pressed"}},
        {"type": "resize", "version": 1, "data": {"width": 0, "height": 10}},
        {"type": "wheel", "version": 1, "data": {"pointers": []}},
        {"type": "touch", "version": 1, "data": None},
    ],
)
def test_malformed_payloads(wire) -> None:
    with pytest.raises(MalformedInputMessage):
        decode(wire)


def test_non_json_text_is_malformed() -> None:
    with pytest.raises(MalformedInputMessage):
        decode("not json")


def test_wheel_primary_is_first_entry() -> None:
    message = decode(encode("wheel", _PAYLOADS["wheel"]))

    assert message.data.primary.dy == 120
    assert len(message.data.pointers) == 2
