"""Provider side: capture, input translation and the responder role.

``pynput_surface`` is not imported here; pynput needs a display at import.
"""

from .capture import CaptureDevice, CaptureSource, FrameTrack, MssCaptureSource, select_device
from .role import ProviderRole
from .translator import (
    InputTranslator,
    KeyAction,
    NativeAction,
    PointerAction,
    ResizeAction,
    TargetSurface,
    WheelAction,
    case_key,
    classify_key,
)

__all__ = [
    "CaptureDevice",
    "CaptureSource",
    "FrameTrack",
    "InputTranslator",
    "KeyAction",
    "MssCaptureSource",
    "NativeAction",
    "PointerAction",
    "ProviderRole",
    "ResizeAction",
    "TargetSurface",
    "WheelAction",
    "case_key",
    "classify_key",
    "select_device",
]
