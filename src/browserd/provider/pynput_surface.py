"""Target surface that synthesizes OS input with pynput.

Coordinates arrive relative to the captured window and are offset by the
window origin before the cursor is moved.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from typing import Any, Optional, Union

from pynput import keyboard, mouse

from browserd.provider.translator import KeyAction, PointerAction, WheelAction

logger = logging.getLogger(__name__)

Key = keyboard.Key

# Cased key codes (see ``translator.case_key``) to pynput ``Key`` attribute names.
_SPECIAL_KEYS: dict[str, str] = {
    "Space": "space",
    "Tab": "tab",
    "Backspace": "backspace",
    "Delete": "delete",
    "Insert": "insert",
    "Return": "enter",
    "Enter": "enter",
    "Up": "up",
    "Down": "down",
    "Left": "left",
    "Right": "right",
    "Arrowup": "up",
    "Arrowdown": "down",
    "Arrowleft": "left",
    "Arrowright": "right",
    "Home": "home",
    "End": "end",
    "Pageup": "page_up",
    "Pagedown": "page_down",
    "Escape": "esc",
    "Esc": "esc",
    "Volumeup": "media_volume_up",
    "Volumedown": "media_volume_down",
    "Volumemute": "media_volume_mute",
    "Medianexttrack": "media_next",
    "Mediaprevioustrack": "media_previous",
    "Mediaplaypause": "media_play_pause",
    "Printscreen": "print_screen",
}

_PRIMARY = "cmd" if sys.platform == "darwin" else "ctrl"

_MODIFIER_KEYS: dict[str, str] = {
    "Command": "cmd",
    "Cmd": "cmd",
    "Super": "cmd",
    "Meta": "cmd",
    "Control": "ctrl",
    "Ctrl": "ctrl",
    "Commandorcontrol": _PRIMARY,
    "Cmdorctrl": _PRIMARY,
    "Alt": "alt",
    "Option": "alt",
    "Altgr": "alt_gr",
    "Shift": "shift",
}


def key_attribute(action: KeyAction) -> Optional[str]:
    """Name of the ``pynput.keyboard.Key`` member for ``action``, or the literal character."""

    if action.modifiers and action.key_code is None:
        return _MODIFIER_KEYS.get(action.modifiers[0])
    code = action.key_code or ""
    if code == "Plus":
        return "+"
    if code[:1] == "F" and code[1:].isdigit():
        return code.lower()
    return _SPECIAL_KEYS.get(code)


def resolve_key(action: KeyAction) -> Optional[Union[Key, str]]:
    name = key_attribute(action)
    if name is None:
        return None
    if len(name) == 1:
        return name
    return getattr(Key, name, None)


class PynputSurface:
    def __init__(
        self,
        *,
        origin: tuple[int, int] = (0, 0),
        on_resize: Optional[Callable[[int, int], None]] = None,
        scroll_step: float = 120.0,
        mouse_controller: Optional[Any] = None,
        keyboard_controller: Optional[Any] = None,
    ) -> None:
        self.origin = (int(origin[0]), int(origin[1]))
        self._on_resize = on_resize
        self._scroll_step = float(scroll_step) if scroll_step > 0 else 120.0
        self._mouse = mouse_controller if mouse_controller is not None else mouse.Controller()
        self._keyboard = keyboard_controller if keyboard_controller is not None else keyboard.Controller()
        self._scroll_rest = [0.0, 0.0]

    def send_input_event(self, action: Union[PointerAction, WheelAction, KeyAction]) -> None:
        if isinstance(action, PointerAction):
            self._pointer(action)
        elif isinstance(action, WheelAction):
            self._wheel(action)
        elif isinstance(action, KeyAction):
            self._key(action)
        else:
            raise TypeError(f"unsupported action {action!r}")

    def resize(self, width: int, height: int) -> None:
        if self._on_resize is None:
            logger.debug("resize to %dx%d ignored (no handler)", width, height)
            return
        self._on_resize(int(width), int(height))

    def _pointer(self, action: PointerAction) -> None:
        self._mouse.position = (int(round(self.origin[0] + action.x)), int(round(self.origin[1] + action.y)))
        if action.type == "mouseDown":
            self._mouse.press(mouse.Button.left)
        elif action.type == "mouseUp":
            self._mouse.release(mouse.Button.left)

    def _wheel(self, action: WheelAction) -> None:
        # Positive deltas scroll right/down; pynput scrolls up for positive dy.
        rest = self._scroll_rest
        rest[0] += action.delta_x / self._scroll_step
        rest[1] += -action.delta_y / self._scroll_step
        steps_x, steps_y = int(rest[0]), int(rest[1])
        rest[0] -= steps_x
        rest[1] -= steps_y
        if steps_x or steps_y:
            self._mouse.scroll(steps_x, steps_y)

    def _key(self, action: KeyAction) -> None:
        if action.type == "char":
            self._keyboard.type(action.key_code or "")
            return
        key = resolve_key(action)
        if key is None:
            logger.debug("no native key for %s", action)
            return
        if action.type == "keyDown":
            self._keyboard.press(key)
        else:
            self._keyboard.release(key)


__all__ = ["PynputSurface", "key_attribute", "resolve_key"]
