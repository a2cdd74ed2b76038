from __future__ import annotations

import logging
import time
from typing import Any, Callable, Mapping, Optional

from qtpy import QtCore, QtWidgets  # type: ignore

from browserd.protocol.input_messages import KeyState, MessageType, TouchState

logger = logging.getLogger(__name__)

PostInput = Callable[[MessageType, Mapping[str, Any]], bool]

_Key = QtCore.Qt

# Non-printable Qt keys to the key names the provider understands.
_KEY_NAMES: dict[int, str] = {
    int(_Key.Key_Return): "Enter",
    int(_Key.Key_Enter): "Enter",
    int(_Key.Key_Space): "Space",
    int(_Key.Key_Tab): "Tab",
    int(_Key.Key_Backspace): "Backspace",
    int(_Key.Key_Delete): "Delete",
    int(_Key.Key_Insert): "Insert",
    int(_Key.Key_Escape): "Escape",
    int(_Key.Key_Home): "Home",
    int(_Key.Key_End): "End",
    int(_Key.Key_PageUp): "PageUp",
    int(_Key.Key_PageDown): "PageDown",
    int(_Key.Key_Up): "ArrowUp",
    int(_Key.Key_Down): "ArrowDown",
    int(_Key.Key_Left): "ArrowLeft",
    int(_Key.Key_Right): "ArrowRight",
    int(_Key.Key_Print): "PrintScreen",
    int(_Key.Key_VolumeUp): "VolumeUp",
    int(_Key.Key_VolumeDown): "VolumeDown",
    int(_Key.Key_VolumeMute): "VolumeMute",
    int(_Key.Key_MediaNext): "MediaNextTrack",
    int(_Key.Key_MediaPrevious): "MediaPreviousTrack",
    int(_Key.Key_MediaStop): "MediaStop",
    int(_Key.Key_MediaTogglePlayPause): "MediaPlayPause",
    int(_Key.Key_MediaPlay): "MediaPlayPause",
    int(_Key.Key_Shift): "Shift",
    int(_Key.Key_Control): "Control",
    int(_Key.Key_Alt): "Alt",
    int(_Key.Key_AltGr): "AltGr",
    int(_Key.Key_Meta): "Meta",
}
_KEY_NAMES.update({int(getattr(_Key, f"Key_F{n}")): f"F{n}" for n in range(1, 25)})


def key_name(key: int, text: str) -> Optional[str]:
    """Name a Qt key event the way the input protocol spells it."""

    name = _KEY_NAMES.get(int(key))
    if name is not None:
        return name
    if len(text) == 1 and text.isprintable() and not text.isspace():
        return text
    return None


def _pointer_xy(event) -> tuple[float, float]:  # type: ignore[no-untyped-def]
    if hasattr(event, "position"):
        pos = event.position()
    else:
        pos = event.pos()
    assert pos is not None, "pointer event returned no position"
    return float(pos.x()), float(pos.y())


class _EventFilter(QtCore.QObject):  # type: ignore[misc]
    """Turn widget events into input protocol messages.

    - Mouse press/move/release become single-pointer touch messages.
    - Wheel events are coalesced to at most ``max_rate_hz``.
    - Resize events are debounced so a drag produces one message.
    """

    def __init__(
        self,
        widget: QtWidgets.QWidget,  # type: ignore[valid-type]
        post: PostInput,
        *,
        max_rate_hz: float = 120.0,
        log_input: bool = False,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        super().__init__(widget)
        self._widget = widget
        self._post = post
        self._min_dt = 1.0 / float(max(1.0, max_rate_hz))
        self._clock = clock
        self._last_wheel_send: Optional[float] = None
        self._pending_resize: Optional[tuple[int, int]] = None
        self._resize_timer = QtCore.QTimer(self)  # type: ignore[no-untyped-call]
        self._resize_timer.setSingleShot(True)
        self._resize_timer.timeout.connect(self._flush_resize)
        self._log_input = bool(log_input)

    def eventFilter(self, obj, event):  # type: ignore[no-untyped-def]
        if obj is not self._widget:
            return False
        event_type = event.type()
        if event_type == QtCore.QEvent.MouseButtonPress:  # type: ignore[attr-defined]
            return self._handle_pointer(event, TouchState.START)
        if event_type == QtCore.QEvent.MouseMove:  # type: ignore[attr-defined]
            return self._handle_pointer(event, TouchState.MOVE)
        if event_type == QtCore.QEvent.MouseButtonRelease:  # type: ignore[attr-defined]
            return self._handle_pointer(event, TouchState.END)
        if event_type == QtCore.QEvent.Wheel:  # type: ignore[attr-defined]
            return self._handle_wheel(event)
        if event_type == QtCore.QEvent.KeyPress:  # type: ignore[attr-defined]
            return self._handle_key(event, KeyState.PRESSED)
        if event_type == QtCore.QEvent.KeyRelease:  # type: ignore[attr-defined]
            return self._handle_key(event, KeyState.RELEASED)
        if event_type == QtCore.QEvent.Resize:  # type: ignore[attr-defined]
            return self._handle_resize(event)
        return False

    def _send(self, message_type: MessageType, data: Mapping[str, Any]) -> bool:
        ok = self._post(message_type, data)
        assert isinstance(ok, bool), "post must return bool"
        if self._log_input:
            logger.info("%s sent=%s %s", message_type.value, ok, data)
        return ok

    # --- Pointer -------------------------------------------------------------------
    def _handle_pointer(self, ev, state: TouchState) -> bool:  # type: ignore[no-untyped-def]
        x, y = _pointer_xy(ev)
        self._send(MessageType.TOUCH, {"pointers": [{"id": 1, "x": x, "y": y, "z": 0, "state": state.value}]})
        ev.accept()
        return True

    # --- Wheel ---------------------------------------------------------------------
    def _handle_wheel(self, ev) -> bool:  # type: ignore[no-untyped-def]
        now = self._clock()
        if self._last_wheel_send is not None and (now - self._last_wheel_send) < self._min_dt:
            ev.accept()
            return True
        pixel = ev.pixelDelta()
        angle = ev.angleDelta()
        # Prefer pixel deltas (touchpads); angle deltas are 120 per notch.
        dx = pixel.x() or angle.x()
        dy = pixel.y() or angle.y()
        # Qt reports positive deltas for scrolling up; the wire uses positive for down.
        ok = self._send(MessageType.WHEEL, {"pointers": [{"dx": -float(dx), "dy": -float(dy), "dz": 0, "mode": 0}]})
        if ok:
            self._last_wheel_send = now
        ev.accept()
        return True

    # --- Keyboard ------------------------------------------------------------------
    def _handle_key(self, ev, state: KeyState) -> bool:  # type: ignore[no-untyped-def]
        name = key_name(int(ev.key()), str(ev.text()))
        if name is None:
            logger.debug("unmapped key %s", int(ev.key()))
            return False
        self._send(MessageType.KEYBOARD, {"key": name, "state": state.value})
        ev.accept()
        return True

    # --- Resize --------------------------------------------------------------------
    def _handle_resize(self, ev) -> bool:  # type: ignore[no-untyped-def]
        self._pending_resize = (int(self._widget.width()), int(self._widget.height()))
        self._resize_timer.start(int(self._resize_timer.interval()))
        return False

    def _flush_resize(self) -> None:
        pending, self._pending_resize = self._pending_resize, None
        if pending is None:
            return
        width, height = pending
        if width > 0 and height > 0:
            self._send(MessageType.RESIZE, {"width": width, "height": height})


class InputMonitor:
    """Attach input forwarding to the video widget.

    ``post(message_type, data)`` receives protocol payloads and returns
    whether they were sent.
    """

    def __init__(
        self,
        widget: QtWidgets.QWidget,  # type: ignore[valid-type]
        post: PostInput,
        *,
        max_rate_hz: float = 120.0,
        resize_debounce_ms: int = 80,
        log_input: bool = False,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._widget = widget
        self._filter = _EventFilter(widget, post, max_rate_hz=max_rate_hz, log_input=log_input, clock=clock)
        self._filter._resize_timer.setInterval(int(max(0, resize_debounce_ms)))
        self._started = False

    def start(self) -> None:
        if self._started:
            return
        self._started = True
        self._widget.setMouseTracking(True)
        self._widget.setFocusPolicy(QtCore.Qt.StrongFocus)  # type: ignore[attr-defined]
        self._widget.installEventFilter(self._filter)
        self.send_size()

    def send_size(self) -> bool:
        """Post the current widget size; call again whenever a session starts streaming."""

        width, height = int(self._widget.width()), int(self._widget.height())
        if width <= 0 or height <= 0:
            return False
        return self._filter._send(MessageType.RESIZE, {"width": width, "height": height})

    def stop(self) -> None:
        if not self._started:
            return
        self._started = False
        self._widget.removeEventFilter(self._filter)
        self._filter._resize_timer.stop()


__all__ = ["InputMonitor", "PostInput", "key_name"]
