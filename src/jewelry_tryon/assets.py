from __future__ import annotations

import logging
import ssl
import threading
import urllib.request
from typing import Callable, Optional

import certifi
import cv2
import numpy as np

logger = logging.getLogger(__name__)


def _to_bgra(image: np.ndarray) -> np.ndarray:
    # 16-bit PNGs decode as uint16; drawing expects 8-bit channels
    if image.dtype == np.uint16:
        image = (image >> 8).astype(np.uint8)
    elif image.dtype != np.uint8:
        image = cv2.convertScaleAbs(image)
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGRA)
    if image.shape[2] == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2BGRA)
    return image


def load_image_bgra(image_url: str, *, timeout_s: int = 30) -> np.ndarray:
    """Decode a jewelry image from an http(s) URL or a local path as BGRA."""
    if image_url.startswith(("http://", "https://")):
        ctx = ssl.create_default_context(cafile=certifi.where())
        with urllib.request.urlopen(image_url, context=ctx, timeout=timeout_s) as r:
            data = np.frombuffer(r.read(), dtype=np.uint8)
        image = cv2.imdecode(data, cv2.IMREAD_UNCHANGED)
    else:
        image = cv2.imread(image_url, cv2.IMREAD_UNCHANGED)
    if image is None:
        raise ValueError(f"Could not decode jewelry image: {image_url}")
    return _to_bgra(image)


class JewelryBitmap:
    """
    The decoded jewelry image for one session.

    Loaded once in the background; `image` stays None until decoding finishes
    (or forever, if it fails). Shared read-only by rendering and capture.
    """

    def __init__(self, image_url: str, loader: Callable[[str], np.ndarray] = load_image_bgra) -> None:
        self.image_url = image_url
        self._loader = loader
        self._lock = threading.Lock()
        self._image: Optional[np.ndarray] = None
        self._thread: Optional[threading.Thread] = None
        self._released = False

    @property
    def image(self) -> Optional[np.ndarray]:
        with self._lock:
            return self._image

    @property
    def loaded(self) -> bool:
        return self.image is not None

    def load(self) -> None:
        """Decode synchronously. Failures are logged and leave the bitmap unloaded."""
        try:
            image = self._loader(self.image_url)
        except (OSError, ValueError, cv2.error):
            logger.exception("Failed to load jewelry image %s", self.image_url)
            return
        image.setflags(write=False)
        with self._lock:
            if not self._released:
                self._image = image

    def load_async(self) -> None:
        if self._thread is not None or self.loaded:
            return
        self._thread = threading.Thread(target=self.load, name="jewelry-bitmap", daemon=True)
        self._thread.start()

    def release(self) -> None:
        with self._lock:
            self._released = True
            self._image = None
