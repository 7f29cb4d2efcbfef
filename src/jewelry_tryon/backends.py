"""
MediaPipe landmark backends.

Each backend takes a **BGR** frame (OpenCV default) and returns the detected
faces or hands as pixel-space keypoints in the frame's native resolution.
The legacy Solutions API is preferred; builds without `mp.solutions` fall back
to the Tasks API, which needs a `.task` model asset on disk.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Protocol

import cv2

from .config import TryOnConfig
from .errors import DetectorInitError
from .model_assets import ensure_face_landmarker_task, ensure_hand_landmarker_task
from .types import Point
from .utils import clamp_int, point_from_normalized

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawLandmarks:
    """Keypoints of one detected face or hand."""

    points: List[Point]
    label: Optional[str] = None  # handedness for hands


class LandmarkBackend(Protocol):
    def detect(self, frame_bgr) -> List[RawLandmarks]:
        ...

    def close(self) -> None:
        ...


def _to_points(landmarks, w: int, h: int) -> List[Point]:
    pts: List[Point] = []
    for lm in landmarks:
        p = point_from_normalized(lm.x, lm.y, w, h)
        x_px = clamp_int(int(round(p.x)), 0, w - 1)
        y_px = clamp_int(int(round(p.y)), 0, h - 1)
        pts.append(Point(float(x_px), float(y_px)))
    return pts


def _import_tasks():
    # Import locations can differ slightly across builds.
    try:
        from mediapipe.tasks.python import BaseOptions  # type: ignore
        from mediapipe.tasks.python import vision  # type: ignore
    except ImportError:  # pragma: no cover
        from mediapipe.tasks import python as mp_python  # type: ignore

        BaseOptions = mp_python.BaseOptions
        vision = mp_python.vision
    return BaseOptions, vision


class _TasksClock:
    """Tasks VIDEO mode requires monotonically increasing timestamps."""

    def __init__(self) -> None:
        self._last_ms = 0

    def next_ms(self) -> int:
        ts = max(self._last_ms + 1, int(time.monotonic() * 1000))
        self._last_ms = ts
        return ts


class SolutionsHandsBackend:
    def __init__(self, mp, config: TryOnConfig) -> None:
        self._hands = mp.solutions.hands.Hands(
            static_image_mode=False,
            max_num_hands=config.max_num_hands,
            model_complexity=1,
            min_detection_confidence=config.min_detection_confidence,
            min_tracking_confidence=config.min_tracking_confidence,
        )

    def detect(self, frame_bgr) -> List[RawLandmarks]:
        h, w = frame_bgr.shape[:2]
        results = self._hands.process(cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB))
        if not results.multi_hand_landmarks:
            return []

        handedness_list = results.multi_handedness or []
        hands: List[RawLandmarks] = []
        for i, hand_landmarks in enumerate(results.multi_hand_landmarks):
            label: Optional[str] = None
            if i < len(handedness_list) and handedness_list[i].classification:
                c = handedness_list[i].classification[0]
                label = getattr(c, "label", None)
            hands.append(RawLandmarks(_to_points(hand_landmarks.landmark, w, h), label))
        return hands

    def close(self) -> None:
        self._hands.close()


class TasksHandsBackend:
    def __init__(self, mp, config: TryOnConfig) -> None:
        BaseOptions, vision = _import_tasks()
        options = vision.HandLandmarkerOptions(
            base_options=BaseOptions(model_asset_path=ensure_hand_landmarker_task(config.hand_model_path)),
            running_mode=vision.RunningMode.VIDEO,
            num_hands=config.max_num_hands,
            min_hand_detection_confidence=config.min_detection_confidence,
            min_tracking_confidence=config.min_tracking_confidence,
        )
        self._mp = mp
        self._landmarker = vision.HandLandmarker.create_from_options(options)
        self._clock = _TasksClock()

    def detect(self, frame_bgr) -> List[RawLandmarks]:
        h, w = frame_bgr.shape[:2]
        mp_image = self._mp.Image(image_format=self._mp.ImageFormat.SRGB, data=cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB))
        result = self._landmarker.detect_for_video(mp_image, self._clock.next_ms())

        handedness_list = getattr(result, "handedness", None) or []
        hands: List[RawLandmarks] = []
        for i, landmarks in enumerate(getattr(result, "hand_landmarks", None) or []):
            label = None
            if i < len(handedness_list) and handedness_list[i]:
                cat0 = handedness_list[i][0]
                label = getattr(cat0, "category_name", None) or getattr(cat0, "display_name", None)
            hands.append(RawLandmarks(_to_points(landmarks, w, h), label))
        return hands

    def close(self) -> None:
        self._landmarker.close()


class SolutionsFaceMeshBackend:
    def __init__(self, mp, config: TryOnConfig) -> None:
        self._mesh = mp.solutions.face_mesh.FaceMesh(
            static_image_mode=False,
            max_num_faces=config.max_num_faces,
            refine_landmarks=True,
            min_detection_confidence=config.min_detection_confidence,
            min_tracking_confidence=config.min_tracking_confidence,
        )

    def detect(self, frame_bgr) -> List[RawLandmarks]:
        h, w = frame_bgr.shape[:2]
        results = self._mesh.process(cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB))
        return [RawLandmarks(_to_points(face.landmark, w, h)) for face in (results.multi_face_landmarks or [])]

    def close(self) -> None:
        self._mesh.close()


class TasksFaceBackend:
    def __init__(self, mp, config: TryOnConfig) -> None:
        BaseOptions, vision = _import_tasks()
        options = vision.FaceLandmarkerOptions(
            base_options=BaseOptions(model_asset_path=ensure_face_landmarker_task(config.face_model_path)),
            running_mode=vision.RunningMode.VIDEO,
            num_faces=config.max_num_faces,
            min_face_detection_confidence=config.min_detection_confidence,
            min_tracking_confidence=config.min_tracking_confidence,
        )
        self._mp = mp
        self._landmarker = vision.FaceLandmarker.create_from_options(options)
        self._clock = _TasksClock()

    def detect(self, frame_bgr) -> List[RawLandmarks]:
        h, w = frame_bgr.shape[:2]
        mp_image = self._mp.Image(image_format=self._mp.ImageFormat.SRGB, data=cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB))
        result = self._landmarker.detect_for_video(mp_image, self._clock.next_ms())
        return [RawLandmarks(_to_points(face, w, h)) for face in (getattr(result, "face_landmarks", None) or [])]

    def close(self) -> None:
        self._landmarker.close()


def _create(solutions_cls, tasks_cls, solutions_module: str, config: TryOnConfig) -> LandmarkBackend:
    try:
        import mediapipe as mp  # type: ignore
    except ImportError as e:
        raise DetectorInitError("MediaPipe is required. Install with: pip install mediapipe") from e

    try:
        if hasattr(mp, "solutions") and hasattr(mp.solutions, solutions_module):
            logger.debug("Using MediaPipe Solutions API (mp.solutions.%s)", solutions_module)
            return solutions_cls(mp, config)
        logger.debug("MediaPipe build has no mp.solutions; using the Tasks API")
        return tasks_cls(mp, config)
    except DetectorInitError:
        raise
    except Exception as e:
        raise DetectorInitError(f"Could not initialize MediaPipe {solutions_module}: {e}") from e


def create_hand_backend(config: TryOnConfig) -> LandmarkBackend:
    return _create(SolutionsHandsBackend, TasksHandsBackend, "hands", config)


def create_face_backend(config: TryOnConfig) -> LandmarkBackend:
    return _create(SolutionsFaceMeshBackend, TasksFaceBackend, "face_mesh", config)
