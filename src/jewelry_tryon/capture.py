from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Optional

import cv2
import numpy as np

from .drawing import composite_over

logger = logging.getLogger(__name__)


_UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]')


def capture_filename(product_name: str) -> str:
    """`tryon-<name>.png` with whitespace runs and characters unsafe in filenames as dashes."""
    slug = re.sub(r"\s+", "-", product_name)
    slug = _UNSAFE_FILENAME_CHARS.sub("-", slug)
    return f"tryon-{slug}.png"


def composite_capture(
    frame_bgr: Optional[np.ndarray],
    overlay_bgra: Optional[np.ndarray],
    mirrored: bool,
) -> Optional[np.ndarray]:
    """
    Flatten the current video frame and overlay into one BGR image.

    The frame is flipped when `mirrored` so the still matches the preview. The
    overlay is composited as-is at (0, 0): its pixels are already in native
    unmirrored space and must not be flipped a second time.

    Returns None when either surface is not ready yet.
    """
    if frame_bgr is None or overlay_bgra is None:
        return None
    if frame_bgr.size == 0 or overlay_bgra.size == 0:
        return None

    base = cv2.flip(frame_bgr, 1) if mirrored else frame_bgr
    return composite_over(base, overlay_bgra)


def export_capture(image: np.ndarray, directory: str, product_name: str) -> Path:
    """Encode `image` as PNG in `directory`. Returns the written path."""
    os.makedirs(directory, exist_ok=True)
    path = Path(directory) / capture_filename(product_name)
    ok = cv2.imwrite(str(path), image)
    if not ok:
        raise OSError(f"Could not write capture: {path}")
    logger.info("Photo saved! %s", path)
    return path
