from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import numpy as np
from aiortc.mediastreams import MediaStreamError
from qtpy import QtCore, QtGui, QtWidgets  # type: ignore

logger = logging.getLogger(__name__)


def frame_to_image(rgb: np.ndarray) -> QtGui.QImage:  # type: ignore[name-defined]
    """Copy an ``(H, W, 3)`` uint8 RGB array into a QImage."""

    assert rgb.ndim == 3 and rgb.shape[2] == 3, f"expected HxWx3 array, got {rgb.shape}"
    rgb = np.ascontiguousarray(rgb, dtype=np.uint8)
    height, width = rgb.shape[:2]
    image = QtGui.QImage(rgb.data, width, height, 3 * width, QtGui.QImage.Format_RGB888)
    # QImage borrows the buffer; copy before the array goes away.
    return image.copy()


class VideoSurface(QtWidgets.QLabel):  # type: ignore[misc]
    """Render the remote video track into a label, one frame per ``recv``."""

    def __init__(self, parent: Optional[QtWidgets.QWidget] = None) -> None:  # type: ignore[name-defined]
        super().__init__(parent)
        self.setAlignment(QtCore.Qt.AlignCenter)  # type: ignore[attr-defined]
        self.setMinimumSize(64, 48)
        self.setText("waiting for stream")
        self._track: Optional[Any] = None
        self._task: Optional[asyncio.Task[None]] = None
        self.frames = 0

    @property
    def attached(self) -> bool:
        return self._track is not None

    def attach(self, track: Any) -> None:
        self.detach()
        self._track = track
        self._task = asyncio.get_event_loop().create_task(self._render(track))
        logger.info("video surface attached to %s track", getattr(track, "kind", "video"))

    def detach(self) -> None:
        task, self._task = self._task, None
        self._track = None
        if task is not None and not task.done():
            task.cancel()
        self.setText("waiting for stream")

    def show_frame(self, rgb: np.ndarray) -> None:
        pixmap = QtGui.QPixmap.fromImage(frame_to_image(rgb))
        if self.width() > 0 and self.height() > 0:
            pixmap = pixmap.scaled(
                self.size(),
                QtCore.Qt.IgnoreAspectRatio,  # type: ignore[attr-defined]
                QtCore.Qt.SmoothTransformation,  # type: ignore[attr-defined]
            )
        self.setPixmap(pixmap)
        self.frames += 1

    async def _render(self, track: Any) -> None:
        while self._track is track:
            try:
                frame = await track.recv()
            except MediaStreamError:
                logger.info("remote track ended")
                return
            self.show_frame(frame.to_ndarray(format="rgb24"))


__all__ = ["VideoSurface", "frame_to_image"]
