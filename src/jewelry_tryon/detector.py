from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional, Protocol, Sequence, Tuple

import cv2
import numpy as np

from .backends import LandmarkBackend, RawLandmarks, create_face_backend, create_hand_backend
from .config import TryOnConfig
from .errors import DetectorInitError
from .types import FaceEstimate, HandEstimate, LandmarkEstimate, LandmarkKind, Point
from .utils import bbox_from_points

logger = logging.getLogger(__name__)


# Face mesh indices (468/478-point topology).
FACE_KEYPOINTS = {
    "left_ear": 234,  # tragion
    "right_ear": 454,
    "chin": 152,
    "nose": 1,
    "left_eye": 159,
    "right_eye": 386,
}

# MediaPipe Hands indices.
HAND_KEYPOINTS = {
    "wrist": 0,
    "index_mcp": 5,
    "ring_mcp": 13,
    "ring_tip": 16,
    "pinky_mcp": 17,
}

NECK_OFFSET_FACE_HEIGHTS = 0.3


class VideoSource(Protocol):
    def read_frame(self) -> Tuple[int, Optional[np.ndarray]]:
        """Return (frame_index, latest native BGR frame or None)."""
        ...


def _get(points: Sequence[Point], idx: int) -> Optional[Point]:
    if 0 <= idx < len(points):
        return points[idx]
    return None


def _positive(v: float) -> Optional[float]:
    return v if v > 0 else None


def face_estimate_from_points(points: Sequence[Point]) -> FaceEstimate:
    """Build a detected `FaceEstimate` from one face's mesh keypoints."""
    x0, y0, x1, y1 = bbox_from_points(points)
    face_width = x1 - x0
    face_height = y1 - y0

    chin = _get(points, FACE_KEYPOINTS["chin"])
    neck_base = Point(chin.x, chin.y + face_height * NECK_OFFSET_FACE_HEIGHTS) if chin else None

    return FaceEstimate(
        detected=True,
        left_ear=_get(points, FACE_KEYPOINTS["left_ear"]),
        right_ear=_get(points, FACE_KEYPOINTS["right_ear"]),
        chin=chin,
        neck_base=neck_base,
        nose=_get(points, FACE_KEYPOINTS["nose"]),
        left_eye=_get(points, FACE_KEYPOINTS["left_eye"]),
        right_eye=_get(points, FACE_KEYPOINTS["right_eye"]),
        face_width=_positive(face_width),
        face_height=_positive(face_height),
    )


def hand_estimate_from_points(points: Sequence[Point], handedness: Optional[str] = None) -> HandEstimate:
    """Build a detected `HandEstimate`; hand width is the index-to-pinky knuckle span."""
    index_mcp = _get(points, HAND_KEYPOINTS["index_mcp"])
    pinky_mcp = _get(points, HAND_KEYPOINTS["pinky_mcp"])
    hand_width = abs(index_mcp.x - pinky_mcp.x) if index_mcp and pinky_mcp else 0.0

    return HandEstimate(
        detected=True,
        wrist=_get(points, HAND_KEYPOINTS["wrist"]),
        ring_finger_base=_get(points, HAND_KEYPOINTS["ring_mcp"]),
        ring_finger_tip=_get(points, HAND_KEYPOINTS["ring_tip"]),
        index_finger_base=index_mcp,
        hand_width=_positive(hand_width),
        handedness=handedness if handedness in ("Left", "Right") else None,
    )


class LandmarkSource:
    """
    Base landmark provider: initialize / start / stop / current_estimate.

    Detection runs on its own thread at its own cadence. Each cycle overwrites a
    single estimate slot; readers always get the latest value and never wait.
    """

    kind: LandmarkKind

    def __init__(
        self,
        config: Optional[TryOnConfig] = None,
        backend_factory: Optional[Callable[[TryOnConfig], LandmarkBackend]] = None,
    ) -> None:
        self._config = config or TryOnConfig()
        self._backend_factory = backend_factory or self._default_backend_factory
        self._backend: Optional[LandmarkBackend] = None
        self._initialized: Optional[bool] = None
        self.init_error: Optional[DetectorInitError] = None

        self._lock = threading.Lock()
        self._estimate: LandmarkEstimate = self._empty_estimate()
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    def _default_backend_factory(self, config: TryOnConfig) -> LandmarkBackend:
        raise NotImplementedError

    def _empty_estimate(self) -> LandmarkEstimate:
        raise NotImplementedError

    def _estimate_from(self, detections: List[RawLandmarks]) -> LandmarkEstimate:
        raise NotImplementedError

    @property
    def ready(self) -> bool:
        return self._backend is not None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def current_estimate(self) -> LandmarkEstimate:
        with self._lock:
            return self._estimate

    def _publish(self, estimate: LandmarkEstimate) -> None:
        with self._lock:
            self._estimate = estimate

    def initialize(self) -> bool:
        """
        Load the model. Idempotent; never raises.

        Returns:
            True when a backend is ready, False when running without one (fallback mode).
            Later calls return the first outcome.
        """
        if self._initialized is not None:
            return self._initialized
        try:
            self._backend = self._backend_factory(self._config)
            self._initialized = True
            logger.info("%s detector initialized", self.kind.value)
        except DetectorInitError as e:
            self.init_error = e
            self._initialized = False
            logger.warning("Failed to initialize %s detector; using fallback mode", self.kind.value, exc_info=True)
        return self._initialized

    def start(self, video: VideoSource) -> None:
        """Begin the detection cycle against `video`. Non-blocking; no-op without a backend."""
        if self._backend is None or self.running:
            return
        self._publish(self._empty_estimate())
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            args=(video, self._backend, self._stop_event),
            name=f"{self.kind.value}-landmarks",
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout_s: float = 2.0) -> None:
        """Halt the detection cycle. Safe when never started."""
        self._stop_event.set()
        thread = self._thread
        self._thread = None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout_s)
            if thread.is_alive():
                logger.warning("%s detection thread did not stop within %.1fs", self.kind.value, timeout_s)
        self._publish(self._empty_estimate())

    def close(self) -> None:
        """Stop and dispose of the model."""
        self.stop()
        if self._backend is not None:
            self._backend.close()
            self._backend = None
        self._initialized = None

    def _run(self, video: VideoSource, backend: LandmarkBackend, stop_event: threading.Event) -> None:
        last_index = -1
        interval = self._config.detection_interval_s
        while not stop_event.is_set():
            index, frame = video.read_frame()
            if frame is None or index == last_index:
                stop_event.wait(0.005)
                continue
            last_index = index

            try:
                detections = backend.detect(frame)
            except (RuntimeError, ValueError, cv2.error):
                # Keep the previous estimate; the next frame gets another chance.
                logger.exception("%s detection error", self.kind.value)
                continue

            if stop_event.is_set():
                break
            self._publish(self._estimate_from(detections) if detections else self._empty_estimate())

            if interval > 0:
                stop_event.wait(interval)

    def __enter__(self) -> "LandmarkSource":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class FaceLandmarkSource(LandmarkSource):
    """Face landmarks for earrings and necklaces."""

    kind = LandmarkKind.FACE

    def _default_backend_factory(self, config: TryOnConfig) -> LandmarkBackend:
        return create_face_backend(config)

    def _empty_estimate(self) -> LandmarkEstimate:
        return FaceEstimate()

    def _estimate_from(self, detections: List[RawLandmarks]) -> LandmarkEstimate:
        return face_estimate_from_points(detections[0].points)


class HandLandmarkSource(LandmarkSource):
    """Hand landmarks for rings and bangles."""

    kind = LandmarkKind.HAND

    def _default_backend_factory(self, config: TryOnConfig) -> LandmarkBackend:
        return create_hand_backend(config)

    def _empty_estimate(self) -> LandmarkEstimate:
        return HandEstimate()

    def _estimate_from(self, detections: List[RawLandmarks]) -> LandmarkEstimate:
        first = detections[0]
        return hand_estimate_from_points(first.points, first.label)


def create_landmark_source(kind: LandmarkKind, config: Optional[TryOnConfig] = None) -> LandmarkSource:
    if kind is LandmarkKind.HAND:
        return HandLandmarkSource(config)
    return FaceLandmarkSource(config)
