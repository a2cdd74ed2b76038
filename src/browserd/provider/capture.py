"""Screen capture devices and the video track fed from them."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Optional, Protocol

import mss
import numpy as np
from aiortc import VideoStreamTrack
from aiortc.mediastreams import MediaStreamError, MediaStreamTrack
from av import VideoFrame

from browserd.errors import CaptureUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CaptureDevice:
    name: str
    id: str
    left: int = 0
    top: int = 0
    width: int = 0
    height: int = 0

    @property
    def region(self) -> dict[str, int]:
        return {"left": self.left, "top": self.top, "width": self.width, "height": self.height}


class CaptureSource(Protocol):
    def enumerate_devices(self) -> list[CaptureDevice]: ...

    def create_stream(self, device: CaptureDevice) -> MediaStreamTrack: ...


def select_device(devices: Sequence[CaptureDevice], title: str) -> CaptureDevice:
    """Prefer the device named like ``title``; fall back to the first one."""

    if not devices:
        raise CaptureUnavailable("no capture devices available")
    needle = title.casefold()
    for device in devices:
        if device.name.casefold() == needle:
            return device
    for device in devices:
        if needle and needle in device.name.casefold():
            return device
    logger.info("no capture device named %r; using %r", title, devices[0].name)
    return devices[0]


class FrameTrack(VideoStreamTrack):
    """Video track that paces calls to ``grab`` at ``fps``.

    ``grab`` returns an ``(H, W, 3)`` uint8 array in ``pixel_format`` order.
    ``grab`` and ``on_stop`` run on one dedicated worker thread; the event
    loop never blocks on a grab.
    """

    def __init__(
        self,
        grab: Callable[[], np.ndarray],
        *,
        fps: int = 30,
        pixel_format: str = "bgr24",
        on_stop: Optional[Callable[[], None]] = None,
    ) -> None:
        super().__init__()
        if fps <= 0:
            raise ValueError("fps must be positive")
        self._grab = grab
        self._interval = 1.0 / float(fps)
        self._pixel_format = pixel_format
        self._on_stop = on_stop
        self._last: Optional[float] = None
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="browserd-grab")
        self.frames = 0

    async def recv(self) -> VideoFrame:
        if self.readyState != "live":
            raise MediaStreamError
        now = time.perf_counter()
        if self._last is not None:
            wait = self._interval - (now - self._last)
            if wait > 0:
                await asyncio.sleep(wait)
        self._last = time.perf_counter()
        grabbed = await asyncio.get_running_loop().run_in_executor(self._executor, self._grab)
        arr = np.ascontiguousarray(grabbed)
        frame = VideoFrame.from_ndarray(arr, format=self._pixel_format)
        frame.pts, frame.time_base = await self.next_timestamp()
        self.frames += 1
        return frame

    def stop(self) -> None:
        callback, self._on_stop = self._on_stop, None
        super().stop()
        if callback is not None:
            self._executor.submit(callback)
        self._executor.shutdown(wait=True)


class MssCaptureSource:
    """Monitors (and optionally one fixed window region) captured with mss."""

    def __init__(self, *, fps: int = 30, region_name: Optional[str] = None, region: Optional[tuple[int, int, int, int]] = None) -> None:
        self.fps = int(fps)
        self._region_name = region_name
        self._region = region

    def enumerate_devices(self) -> list[CaptureDevice]:
        devices: list[CaptureDevice] = []
        if self._region is not None:
            left, top, width, height = self._region
            devices.append(
                CaptureDevice(self._region_name or "region", "region", left, top, width, height)
            )
        with mss.mss() as sct:
            # Index 0 is the union of all monitors.
            for idx, mon in enumerate(sct.monitors[1:], start=1):
                devices.append(
                    CaptureDevice(
                        name=f"screen {idx}",
                        id=str(idx),
                        left=int(mon["left"]),
                        top=int(mon["top"]),
                        width=int(mon["width"]),
                        height=int(mon["height"]),
                    )
                )
        return devices

    def create_stream(self, device: CaptureDevice) -> FrameTrack:
        region = device.region
        # Encoders want even dimensions.
        region["width"] -= region["width"] % 2
        region["height"] -= region["height"] % 2
        if region["width"] <= 0 or region["height"] <= 0:
            raise CaptureUnavailable(f"capture device {device.name!r} has an empty region")

        # Created on the grab thread at the first frame.
        handles: list[Any] = []

        def _grab() -> np.ndarray:
            if not handles:
                handles.append(mss.mss())
            shot = handles[0].grab(region)
            return np.asarray(shot)[:, :, :3]

        def _close() -> None:
            while handles:
                handles.pop().close()

        logger.info(
            "capturing %s at %dx%d+%d+%d, %d fps",
            device.name,
            region["width"],
            region["height"],
            region["left"],
            region["top"],
            self.fps,
        )
        return FrameTrack(_grab, fps=self.fps, pixel_format="bgr24", on_stop=_close)


__all__ = ["CaptureDevice", "CaptureSource", "FrameTrack", "MssCaptureSource", "select_device"]
