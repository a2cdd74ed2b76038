"""Translate decoded input messages into native pointer and key actions.

Translation is pure: :meth:`InputTranslator.translate` returns the actions a
message maps to, and :meth:`InputTranslator.apply` hands them to a
:class:`TargetSurface`. Nothing here touches the peer link.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Optional, Protocol, Union

from browserd.protocol.input_messages import (
    InputMessage,
    KeyboardData,
    KeyState,
    MessageType,
    ResizeData,
    TouchData,
    TouchState,
    WheelData,
)

logger = logging.getLogger(__name__)


# Single printable characters sent as ``char`` actions.
_PRINTABLE = re.compile(r"[0-9A-Za-z)!@#$%^&*(:+<_>?~{|}\";=,\-./`\[\\\]']")
# Characters that need Shift on a US layout.
_SHIFTED = re.compile(r"[A-Z)!@#$%^&*(:+<_>?~{|}\"]")
_SPECIAL = re.compile(
    r"F(?:[1-9]|1[0-9]|2[0-4])|Plus|Space|Tab|Backspace|Delete|Insert|Return|Enter"
    r"|(?:Arrow)?(?:Up|Down|Left|Right)|Home|End|PageUp|PageDown|Escape|Esc"
    r"|VolumeUp|VolumeDown|VolumeMute|MediaNextTrack|MediaPreviousTrack|MediaStop|MediaPlayPause"
    r"|PrintScreen",
    re.IGNORECASE,
)
_MODIFIERS = re.compile(
    r"Command|Cmd|Control|Ctrl|CommandOrControl|CmdOrCtrl|Alt|Option|AltGr|Shift|Super|Meta",
    re.IGNORECASE,
)

_POINTER_ACTIONS = {
    TouchState.START: "mouseDown",
    TouchState.END: "mouseUp",
    TouchState.MOVE: "mouseMove",
}


@dataclass(frozen=True, slots=True)
class PointerAction:
    type: str
    x: float
    y: float
    button: str = "left"
    click_count: int = 1


@dataclass(frozen=True, slots=True)
class WheelAction:
    delta_x: float
    delta_y: float
    type: str = "mouseWheel"


@dataclass(frozen=True, slots=True)
class KeyAction:
    type: str
    key_code: Optional[str] = None
    modifiers: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class ResizeAction:
    width: int
    height: int


NativeAction = Union[PointerAction, WheelAction, KeyAction, ResizeAction]


class TargetSurface(Protocol):
    """The captured window that receives synthesized input."""

    def send_input_event(self, action: Union[PointerAction, WheelAction, KeyAction]) -> None: ...

    def resize(self, width: int, height: int) -> None: ...


def case_key(key: str) -> str:
    """``"pageup"`` -> ``"Pageup"``; first character upper, rest lower."""

    return key[:1].upper() + key[1:].lower()


def classify_key(key: str, state: Union[KeyState, str]) -> Optional[KeyAction]:
    """Map a single keyboard event onto a native key action, or ``None``."""

    state = KeyState(state)
    if not key:
        return None
    if _PRINTABLE.fullmatch(key):
        if state is not KeyState.PRESSED:
            return None
        modifiers = ("Shift",) if _SHIFTED.fullmatch(key) else ()
        return KeyAction(type="char", key_code=key, modifiers=modifiers)

    kind = "keyDown" if state is KeyState.PRESSED else "keyUp"
    cased = case_key(key)
    if _SPECIAL.fullmatch(key):
        return KeyAction(type=kind, key_code=cased)
    if _MODIFIERS.fullmatch(key):
        return KeyAction(type=kind, modifiers=(cased,))
    return None


def pointer_actions(data: TouchData) -> list[PointerAction]:
    actions = []
    for pointer in data.pointers:
        kind = _POINTER_ACTIONS.get(pointer.state)
        if kind is None:
            continue
        actions.append(PointerAction(type=kind, x=pointer.x, y=pointer.y))
    return actions


class InputTranslator:
    def __init__(self, target: TargetSurface, *, log_input: bool = False) -> None:
        self.target = target
        self._log_input = bool(log_input)

    def translate(self, message: InputMessage) -> list[NativeAction]:
        data = message.data
        if message.type is MessageType.TOUCH:
            assert isinstance(data, TouchData)
            return list(pointer_actions(data))
        if message.type is MessageType.WHEEL:
            assert isinstance(data, WheelData)
            # Only the first entry is authoritative.
            primary = data.primary
            return [WheelAction(delta_x=primary.dx, delta_y=primary.dy)]
        if message.type is MessageType.KEYBOARD:
            assert isinstance(data, KeyboardData)
            action = classify_key(data.key, data.state)
            return [action] if action is not None else []
        if message.type is MessageType.RESIZE:
            assert isinstance(data, ResizeData)
            return [ResizeAction(width=data.width, height=data.height)]
        return []

    def apply(self, message: InputMessage) -> int:
        """Deliver ``message`` to the target; returns the number of actions applied."""

        actions = self.translate(message)
        for action in actions:
            if self._log_input:
                logger.info("apply %s", action)
            if isinstance(action, ResizeAction):
                self.target.resize(action.width, action.height)
            else:
                self.target.send_input_event(action)
        return len(actions)


__all__ = [
    "InputTranslator",
    "KeyAction",
    "NativeAction",
    "PointerAction",
    "ResizeAction",
    "TargetSurface",
    "WheelAction",
    "case_key",
    "classify_key",
    "pointer_actions",
]
