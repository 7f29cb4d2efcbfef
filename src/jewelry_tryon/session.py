"""
Try-on session lifecycle.

`TryOnSession` owns everything one try-on view needs: the camera, the landmark
source chosen by jewelry category, the overlay surface, the render loop and the
jewelry bitmap. Camera, overlay and render loop belong to a *generation* that is
rebuilt on every (re)start, so frames never leak across restarts.

    Idle -> Initializing -> Active
                 |            |
                 v            v
               Error  ---> Idle   (stop_camera / close)

Teardown always runs in the same order (render tick, detection, camera) and is
safe to repeat.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import numpy as np

from .assets import JewelryBitmap
from .camera import CAMERA_DENIED_MESSAGE, CameraStream
from .capture import composite_capture, export_capture
from .config import TryOnConfig
from .detector import LandmarkSource, create_landmark_source
from .drawing import compose_preview
from .errors import CameraPermissionError
from .placement import instructions_text
from .render import OverlaySurface, RenderLoop
from .scheduler import FrameScheduler
from .types import JewelryAsset, LandmarkEstimate, LandmarkKind, SessionState

logger = logging.getLogger(__name__)


FALLBACK_STATUS = "Using fallback mode"


@dataclass
class _Generation:
    camera: CameraStream
    overlay: OverlaySurface
    loop: Optional[RenderLoop] = None


class TryOnSession:
    """Session controller for one try-on view."""

    def __init__(
        self,
        asset: JewelryAsset,
        config: Optional[TryOnConfig] = None,
        scheduler: Optional[FrameScheduler] = None,
        camera_factory: Callable[[TryOnConfig], CameraStream] = CameraStream,
        source_factory: Callable[[LandmarkKind, TryOnConfig], LandmarkSource] = create_landmark_source,
        bitmap_factory: Callable[[str], JewelryBitmap] = JewelryBitmap,
    ) -> None:
        self.asset = asset
        self.config = config or TryOnConfig()
        self.scheduler = scheduler or FrameScheduler()
        self.mirrored = self.config.mirrored
        self.state = SessionState.IDLE
        self.error_message: Optional[str] = None

        self._camera_factory = camera_factory
        self._source_factory = source_factory
        self._bitmap_factory = bitmap_factory

        self._gen: Optional[_Generation] = None
        self._source: Optional[LandmarkSource] = None
        self._bitmap: Optional[JewelryBitmap] = None
        self._fallback = False
        self._status = ""

    # -- observation -------------------------------------------------------

    @property
    def landmark_kind(self) -> LandmarkKind:
        return self.asset.category.landmark_kind

    @property
    def active_source(self) -> Optional[LandmarkSource]:
        return self._source if self._gen is not None else None

    @property
    def active_tracks(self) -> int:
        return self._gen.camera.active_tracks if self._gen is not None else 0

    @property
    def render_loop(self) -> Optional[RenderLoop]:
        return self._gen.loop if self._gen is not None else None

    @property
    def bitmap(self) -> Optional[JewelryBitmap]:
        return self._bitmap

    @property
    def fallback_mode(self) -> bool:
        return self._fallback

    @property
    def status_text(self) -> str:
        if self.state is SessionState.ERROR:
            return self.error_message or ""
        if self._fallback:
            return FALLBACK_STATUS
        loop = self.render_loop
        if loop is not None and loop.status_text:
            return loop.status_text
        return self._status

    @property
    def tracking(self) -> bool:
        loop = self.render_loop
        return loop is not None and loop.tracking

    @property
    def instructions(self) -> str:
        return instructions_text(self.asset.category)

    def current_estimate(self) -> Optional[LandmarkEstimate]:
        source = self.active_source
        return source.current_estimate if source is not None else None

    # -- lifecycle ---------------------------------------------------------

    def open(self) -> SessionState:
        """
        Start the try-on: camera, detector, render loop.

        A camera failure ends in `SessionState.ERROR` (call `open()` again to
        retry). A detector failure only switches the session to fallback placement.
        """
        if self.state in (SessionState.INITIALIZING, SessionState.ACTIVE):
            return self.state

        self.state = SessionState.INITIALIZING
        self.error_message = None
        self._fallback = False
        self._status = "Starting camera..."
        logger.info("Opening try-on for %r (%s)", self.asset.name, self.asset.category.value)

        try:
            try:
                camera = self._camera_factory(self.config)
                self._gen = _Generation(camera=camera, overlay=OverlaySurface())
                camera.open()
                camera.play()
            except CameraPermissionError as e:
                logger.error("Camera error: %s", e)
                self._teardown()
                self.state = SessionState.ERROR
                self.error_message = CAMERA_DENIED_MESSAGE
                return self.state

            if self._bitmap is None:
                self._bitmap = self._bitmap_factory(self.asset.image_url)
            self._bitmap.load_async()

            source = self._landmark_source()
            self._status = "Loading AI models..."
            if source.initialize():
                self._status = f"{source.kind.value.capitalize()} detection ready"
            else:
                self._fallback = True
            source.start(camera)

            gen = self._gen
            gen.loop = RenderLoop(
                self.scheduler,
                camera,
                gen.overlay,
                self._bitmap,
                self.asset.category,
                self.current_estimate,
                opacity=self.config.opacity,
            )
            gen.loop.start()
        except BaseException:
            self._teardown()
            self.state = SessionState.IDLE
            raise

        self.state = SessionState.ACTIVE
        return self.state

    def stop_camera(self) -> SessionState:
        """Release the camera generation and return to Idle. Idempotent."""
        try:
            self._teardown()
        finally:
            self.state = SessionState.IDLE
            self.error_message = None
            self._fallback = False
            self._status = ""
        return self.state

    def restart_camera(self) -> SessionState:
        self.stop_camera()
        return self.open()

    def close(self) -> None:
        """End the session: stop everything and drop the model and bitmap."""
        self.stop_camera()
        if self._source is not None:
            self._source.close()
            self._source = None
        if self._bitmap is not None:
            self._bitmap.release()
            self._bitmap = None

    def switch_asset(self, asset: JewelryAsset) -> SessionState:
        """Try on a different item; the landmark source follows the new category."""
        was_running = self.state is not SessionState.IDLE
        self.stop_camera()
        if self._source is not None and self._source.kind is not asset.category.landmark_kind:
            self._source.close()
            self._source = None
        if self._bitmap is not None:
            self._bitmap.release()
            self._bitmap = None
        self.asset = asset
        return self.open() if was_running else self.state

    def toggle_mirror(self) -> bool:
        self.mirrored = not self.mirrored
        return self.mirrored

    def _landmark_source(self) -> LandmarkSource:
        if self._source is None or self._source.kind is not self.landmark_kind:
            self._source = self._source_factory(self.landmark_kind, self.config)
        return self._source

    def _teardown(self) -> None:
        gen, self._gen = self._gen, None
        try:
            if gen is not None and gen.loop is not None:
                gen.loop.cancel()
        finally:
            try:
                if self._source is not None:
                    self._source.stop()
            finally:
                if gen is not None:
                    try:
                        gen.camera.stop()
                    finally:
                        gen.overlay.release()

    # -- output ------------------------------------------------------------

    def preview_frame(self) -> Optional[np.ndarray]:
        """The live view as shown on screen (mirrored when the mirror flag is set)."""
        if self._gen is None:
            return None
        _, frame = self._gen.camera.read_frame()
        overlay = self._gen.overlay.pixels
        if frame is None:
            return None
        if overlay is None or overlay.shape[:2] != frame.shape[:2]:
            overlay = np.zeros(frame.shape[:2] + (4,), dtype=np.uint8)
        return compose_preview(frame, overlay, self.mirrored)

    def capture_image(self) -> Optional[np.ndarray]:
        """Composite of the current frame and overlay, or None when not ready."""
        if self.state is not SessionState.ACTIVE or self._gen is None:
            return None
        _, frame = self._gen.camera.read_frame()
        return composite_capture(frame, self._gen.overlay.pixels, self.mirrored)

    def capture(self, directory: Optional[str] = None) -> Optional[Path]:
        """Save the current composite as `tryon-<name>.png`. Returns None when not ready or not written."""
        image = self.capture_image()
        if image is None:
            logger.info("Capture ignored: video or overlay not ready")
            return None
        try:
            return export_capture(image, directory or self.config.export_dir, self.asset.name)
        except OSError:
            logger.exception("Could not save capture")
            return None

    def __enter__(self) -> "TryOnSession":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
