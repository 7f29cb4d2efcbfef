from __future__ import annotations

import functools
import logging
from typing import Callable, List, Optional, Tuple

import cv2
import numpy as np

from .assets import JewelryBitmap
from .config import OVERLAY_OPACITY
from .drawing import draw_bitmap
from .placement import detection_status, is_tracking, place
from .scheduler import FrameScheduler
from .types import JewelryCategory, LandmarkEstimate, PlacementRect

logger = logging.getLogger(__name__)


class OverlaySurface:
    """Transparent BGRA drawing surface holding only the jewelry for the current frame."""

    def __init__(self) -> None:
        self.pixels: Optional[np.ndarray] = None

    @property
    def size(self) -> Optional[Tuple[int, int]]:
        if self.pixels is None:
            return None
        h, w = self.pixels.shape[:2]
        return (w, h)

    def resize(self, width: int, height: int) -> None:
        """Match the video's native size. Like a canvas, resizing always clears."""
        if self.size != (width, height):
            self.pixels = np.zeros((height, width, 4), dtype=np.uint8)
        else:
            self.clear()

    def clear(self) -> None:
        if self.pixels is not None:
            self.pixels.fill(0)

    def release(self) -> None:
        self.pixels = None


class RenderLoop:
    """
    Per-frame overlay renderer.

    Each tick resizes and clears the overlay, places the jewelry using the latest
    estimate (whatever its age), draws it, and schedules the next tick. Every
    scheduled tick carries the loop's token; `cancel()` changes the token so a
    tick already handed to the scheduler cannot run or reschedule.
    """

    def __init__(
        self,
        scheduler: FrameScheduler,
        video,
        overlay: OverlaySurface,
        bitmap: JewelryBitmap,
        category: JewelryCategory,
        estimate_fn: Callable[[], Optional[LandmarkEstimate]],
        opacity: float = OVERLAY_OPACITY,
    ) -> None:
        self._scheduler = scheduler
        self._video = video
        self._overlay = overlay
        self._bitmap = bitmap
        self._category = category
        self._estimate_fn = estimate_fn
        self._opacity = opacity

        self._handle: Optional[int] = None
        self._token = 0
        self.frames_rendered = 0
        self.last_rects: List[PlacementRect] = []
        self.status_text = ""
        self.tracking = False

    @property
    def running(self) -> bool:
        return self._handle is not None

    def start(self) -> None:
        if self._handle is None:
            self._schedule(self._token)

    def cancel(self) -> None:
        self._token += 1
        self._scheduler.cancel_frame(self._handle)
        self._handle = None

    def _schedule(self, token: int) -> None:
        self._handle = self._scheduler.request_frame(functools.partial(self._tick, token))

    def _tick(self, token: int, now: float) -> None:
        if token != self._token:
            return
        self._handle = None
        self.render_frame()
        if token == self._token:
            self._schedule(token)

    def render_frame(self) -> bool:
        """Render one overlay frame. Returns False while the video has no frame yet."""
        size = self._video.native_size
        if size is None:
            return False
        w, h = size
        self._overlay.resize(w, h)
        self._overlay.clear()

        image = self._bitmap.image
        if image is None:
            return True

        estimate = self._estimate_fn()
        rects = place(self._category, estimate, w, h)
        try:
            for rect in rects:
                draw_bitmap(self._overlay.pixels, image, rect, self._opacity)
        except (cv2.error, ValueError):
            logger.debug("Skipping overlay frame after draw error", exc_info=True)
            self._overlay.clear()

        self.last_rects = rects
        self.status_text = detection_status(self._category, estimate)
        self.tracking = is_tracking(self._category, estimate)
        self.frames_rendered += 1
        return True
