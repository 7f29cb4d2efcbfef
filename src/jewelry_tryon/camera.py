from __future__ import annotations

import logging
import platform
import threading
import time
from typing import Optional, Tuple

import cv2
import numpy as np

from .config import TryOnConfig
from .errors import CameraPermissionError

logger = logging.getLogger(__name__)


CAMERA_DENIED_MESSAGE = "Camera access denied. Please allow camera access to try on jewelry."


class CameraStream:
    """
    Live camera feed.

    A reader thread pulls frames from the device continuously; `read_frame()`
    always returns the most recent one in native (unmirrored) resolution.
    """

    def __init__(self, config: Optional[TryOnConfig] = None) -> None:
        self._config = config or TryOnConfig()
        self._cap: Optional[cv2.VideoCapture] = None
        self._lock = threading.Lock()
        self._frame: Optional[np.ndarray] = None
        self._frame_index = 0
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    @property
    def active_tracks(self) -> int:
        return 1 if self._cap is not None else 0

    @property
    def native_size(self) -> Optional[Tuple[int, int]]:
        """(width, height) of the latest frame, or None before the first frame."""
        with self._lock:
            if self._frame is None:
                return None
            h, w = self._frame.shape[:2]
            return (w, h)

    def open(self) -> None:
        """Acquire the device (ideal resolution is best effort)."""
        if self._cap is not None:
            return
        index = self._config.camera_index
        if platform.system() == "Darwin":
            cap = cv2.VideoCapture(index, cv2.CAP_AVFOUNDATION)
        else:
            cap = cv2.VideoCapture(index)
        if not cap.isOpened():
            cap.release()
            raise CameraPermissionError(
                f"Could not open camera index {index}. "
                "On macOS: System Settings -> Privacy & Security -> Camera -> allow your terminal."
            )

        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self._config.width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self._config.height)
        self._cap = cap

    def play(self) -> None:
        """Start delivering frames; waits for the first one."""
        if self._cap is None:
            raise CameraPermissionError("Camera is not open")
        if self._thread is not None:
            return

        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run, args=(self._cap, self._stop_event), name="camera-reader", daemon=True
        )
        self._thread.start()

        deadline = time.monotonic() + self._config.first_frame_timeout_s
        while self.native_size is None:
            if not self._thread.is_alive() or time.monotonic() > deadline:
                raise CameraPermissionError("Camera opened but delivered no frames")
            time.sleep(0.01)

        w, h = self.native_size
        logger.info("Camera %d streaming at %dx%d", self._config.camera_index, w, h)

    def read_frame(self) -> Tuple[int, Optional[np.ndarray]]:
        with self._lock:
            return self._frame_index, self._frame

    def stop(self) -> None:
        """Stop the device track. Safe to call repeatedly."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=2.0)
            self._thread = None
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        with self._lock:
            self._frame = None

    def _run(self, cap: cv2.VideoCapture, stop_event: threading.Event) -> None:
        while not stop_event.is_set():
            ok, frame = cap.read()
            if not ok:
                logger.warning("Camera stream ended")
                break
            with self._lock:
                self._frame = frame
                self._frame_index += 1

    def __enter__(self) -> "CameraStream":
        self.open()
        self.play()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
