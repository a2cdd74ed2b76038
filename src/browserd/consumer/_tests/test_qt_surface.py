from __future__ import annotations

import asyncio
from typing import Any

import numpy as np
import pytest

pytest.importorskip("pytestqt")

from aiortc.mediastreams import MediaStreamError  # noqa: E402

from browserd.consumer.qt_surface import VideoSurface, frame_to_image  # noqa: E402


class _FrameStub:
    def __init__(self, value: int) -> None:
        self.value = value

    def to_ndarray(self, format: str) -> np.ndarray:
        assert format == "rgb24"
        return np.full((12, 16, 3), self.value, dtype=np.uint8)


class _TrackStub:
    kind = "video"

    def __init__(self, frames: int) -> None:
        self.remaining = frames

    async def recv(self) -> Any:
        if self.remaining <= 0:
            raise MediaStreamError
        self.remaining -= 1
        return _FrameStub(self.remaining)


def test_frame_to_image_copies_pixels(qapp) -> None:  # type: ignore[no-untyped-def]
    rgb = np.zeros((4, 6, 3), dtype=np.uint8)
    rgb[1, 2] = (255, 0, 0)

    image = frame_to_image(rgb)

    assert (image.width(), image.height()) == (6, 4)
    assert image.pixelColor(2, 1).red() == 255
    assert image.pixelColor(0, 0).red() == 0


def test_surface_renders_until_track_ends(qtbot) -> None:  # type: ignore[no-untyped-def]
    surface = VideoSurface()
    qtbot.addWidget(surface)
    surface.resize(64, 48)

    async def runner() -> None:
        surface.attach(_TrackStub(frames=3))
        assert surface.attached
        for _ in range(20):
            await asyncio.sleep(0)
        surface.detach()

    asyncio.run(runner())

    assert surface.frames == 3
    assert not surface.attached
