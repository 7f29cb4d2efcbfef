from __future__ import annotations

import logging
import os
import ssl
import urllib.request

import certifi

from .errors import DetectorInitError

logger = logging.getLogger(__name__)


HAND_LANDMARKER_TASK_URL = (
    "https://storage.googleapis.com/mediapipe-models/hand_landmarker/hand_landmarker/float16/latest/hand_landmarker.task"
)
FACE_LANDMARKER_TASK_URL = (
    "https://storage.googleapis.com/mediapipe-models/face_landmarker/face_landmarker/float16/latest/face_landmarker.task"
)


def ensure_task_model(model_path: str, url: str, *, timeout_s: int = 30) -> str:
    """
    Ensure a MediaPipe Tasks `.task` model exists at `model_path`.

    If missing, downloads it once from the official MediaPipe model bucket. A failed
    download raises `DetectorInitError`; callers treat that as "no detector" rather
    than retrying.
    """

    if os.path.exists(model_path):
        return model_path

    os.makedirs(os.path.dirname(model_path) or ".", exist_ok=True)
    logger.info("Downloading %s -> %s", url, model_path)

    # Some macOS Python builds (python.org) ship without root certificates.
    ctx = ssl.create_default_context(cafile=certifi.where())
    try:
        with urllib.request.urlopen(url, context=ctx, timeout=timeout_s) as r, open(model_path, "wb") as f:
            f.write(r.read())
    except OSError as e:
        # Clean up partial downloads (common if interrupted).
        if os.path.exists(model_path):
            os.remove(model_path)
        raise DetectorInitError(
            "Missing MediaPipe Tasks model file and download failed.\n\n"
            f"Expected model at: {model_path}\n"
            f"URL: {url}\n\n"
            "Download it manually:\n"
            f'  mkdir -p "{os.path.dirname(model_path) or "."}"\n'
            f'  curl -L -o "{model_path}" "{url}"\n'
        ) from e

    return model_path


def ensure_hand_landmarker_task(model_path: str) -> str:
    return ensure_task_model(model_path, HAND_LANDMARKER_TASK_URL)


def ensure_face_landmarker_task(model_path: str) -> str:
    return ensure_task_model(model_path, FACE_LANDMARKER_TASK_URL)
