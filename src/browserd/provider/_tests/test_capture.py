from __future__ import annotations

import asyncio
import threading

import numpy as np
import pytest
from aiortc.mediastreams import MediaStreamError

from browserd.errors import CaptureUnavailable
from browserd.provider import CaptureDevice, FrameTrack, select_device


def test_select_device_prefers_matching_title() -> None:
    devices = [CaptureDevice("screen 1", "1"), CaptureDevice("browserd", "region")]

    assert select_device(devices, "BrowserD").id == "region"


def test_select_device_falls_back_to_first() -> None:
    devices = [CaptureDevice("screen 1", "1"), CaptureDevice("screen 2", "2")]

    assert select_device(devices, "missing").id == "1"


def test_select_device_without_devices_raises() -> None:
    with pytest.raises(CaptureUnavailable):
        select_device([], "browserd")


def test_frame_track_wraps_grabbed_arrays() -> None:
    stopped: list[bool] = []

    def grab() -> np.ndarray:
        return np.zeros((24, 32, 3), dtype=np.uint8)

    async def runner() -> None:
        track = FrameTrack(grab, fps=1000, on_stop=lambda: stopped.append(True))
        first = await track.recv()
        second = await track.recv()
        assert (first.width, first.height) == (32, 24)
        assert second.pts > first.pts
        assert track.frames == 2
        track.stop()
        track.stop()

    asyncio.run(runner())
    assert stopped == [True]


def test_frame_track_rejects_non_positive_fps() -> None:
    with pytest.raises(ValueError):
        FrameTrack(lambda: np.zeros((2, 2, 3), dtype=np.uint8), fps=0)


def test_frame_track_grabs_off_the_event_loop_thread() -> None:
    threads: list[str] = []

    def grab() -> np.ndarray:
        threads.append(threading.current_thread().name)
        return np.zeros((4, 4, 3), dtype=np.uint8)

    def close() -> None:
        threads.append(threading.current_thread().name)

    async def runner() -> None:
        track = FrameTrack(grab, fps=1000, on_stop=close)
        await track.recv()
        await track.recv()
        track.stop()
        with pytest.raises(MediaStreamError):
            await track.recv()

    asyncio.run(runner())
    assert len(threads) == 3
    assert len(set(threads)) == 1
    assert threads[0].startswith("browserd-grab")
