from __future__ import annotations

from typing import Any

import pytest

pytest.importorskip("pynput")

from browserd.provider.pynput_surface import PynputSurface, key_attribute, resolve_key  # noqa: E402
from browserd.provider.translator import (  # noqa: E402
    KeyAction,
    PointerAction,
    WheelAction,
    classify_key,
)


class _MouseStub:
    def __init__(self) -> None:
        self.position = (0, 0)
        self.calls: list[tuple[Any, ...]] = []

    def press(self, button: Any) -> None:
        self.calls.append(("press", self.position, button.name))

    def release(self, button: Any) -> None:
        self.calls.append(("release", self.position, button.name))

    def scroll(self, dx: int, dy: int) -> None:
        self.calls.append(("scroll", dx, dy))


class _KeyboardStub:
    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []

    def type(self, text: str) -> None:
        self.calls.append(("type", text))

    def press(self, key: Any) -> None:
        self.calls.append(("press", key))

    def release(self, key: Any) -> None:
        self.calls.append(("release", key))


def _surface(**kwargs: Any) -> tuple[PynputSurface, _MouseStub, _KeyboardStub]:
    mouse, keyboard = _MouseStub(), _KeyboardStub()
    surface = PynputSurface(mouse_controller=mouse, keyboard_controller=keyboard, **kwargs)
    return surface, mouse, keyboard


@pytest.mark.parametrize(
    "key, expected",
    [
        ("F1", "f1"),
        ("f12", "f12"),
        ("F24", "f24"),
        ("ArrowUp", "up"),
        ("arrowleft", "left"),
        ("PageDown", "page_down"),
        ("Enter", "enter"),
        ("Escape", "esc"),
        ("Plus", "+"),
        ("Shift", "shift"),
        ("AltGr", "alt_gr"),
        ("Meta", "cmd"),
    ],
)
def test_key_attribute_for_classified_keys(key: str, expected: str) -> None:
    action = classify_key(key, "pressed")

    assert action is not None
    assert key_attribute(action) == expected


def test_command_or_control_follows_platform() -> None:
    from browserd.provider import pynput_surface

    action = classify_key("CommandOrControl", "released")

    assert action == KeyAction(type="keyUp", modifiers=("Commandorcontrol",))
    assert key_attribute(action) == pynput_surface._PRIMARY
    assert pynput_surface._PRIMARY in ("cmd", "ctrl")


def test_unknown_key_code_resolves_to_nothing() -> None:
    assert key_attribute(KeyAction(type="keyDown", key_code="Mediastop")) is None
    assert resolve_key(KeyAction(type="keyDown", key_code="Mediastop")) is None
    assert resolve_key(KeyAction(type="keyDown", key_code="Plus")) == "+"


def test_pointer_is_offset_by_window_origin() -> None:
    surface, mouse, _ = _surface(origin=(100, 50))

    surface.send_input_event(PointerAction(type="mouseDown", x=10.4, y=20.6))
    surface.send_input_event(PointerAction(type="mouseMove", x=30, y=40))
    surface.send_input_event(PointerAction(type="mouseUp", x=31, y=41))

    assert mouse.calls == [("press", (110, 71), "left"), ("release", (131, 91), "left")]
    assert mouse.position == (131, 91)


def test_wheel_accumulates_partial_steps_and_flips_vertical_sign() -> None:
    surface, mouse, _ = _surface(scroll_step=120)

    surface.send_input_event(WheelAction(delta_x=0, delta_y=60))
    assert mouse.calls == []

    surface.send_input_event(WheelAction(delta_x=0, delta_y=60))
    surface.send_input_event(WheelAction(delta_x=-240, delta_y=-120))

    assert mouse.calls == [("scroll", 0, -1), ("scroll", -2, 1)]


def test_chars_are_typed_and_keys_pressed() -> None:
    surface, _, keyboard = _surface()

    surface.send_input_event(KeyAction(type="char", key_code="A", modifiers=("Shift",)))
    surface.send_input_event(KeyAction(type="keyDown", key_code="Tab"))
    surface.send_input_event(KeyAction(type="keyUp", key_code="Tab"))
    surface.send_input_event(KeyAction(type="keyDown", key_code="Nosuchkey"))

    tab = resolve_key(KeyAction(type="keyDown", key_code="Tab"))
    assert keyboard.calls == [("type", "A"), ("press", tab), ("release", tab)]


def test_resize_goes_to_handler() -> None:
    sizes: list[tuple[int, int]] = []
    surface, _, _ = _surface(on_resize=lambda w, h: sizes.append((w, h)))

    surface.resize(800, 600)

    assert sizes == [(800, 600)]
