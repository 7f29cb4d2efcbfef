from __future__ import annotations

from dataclasses import dataclass


CAPTURE_WIDTH = 1280        # ideal camera width (best effort)
CAPTURE_HEIGHT = 720        # ideal camera height (best effort)
OVERLAY_OPACITY = 0.95      # global alpha for every jewelry draw
FACE_MODEL_PATH = "models/face_landmarker.task"
HAND_MODEL_PATH = "models/hand_landmarker.task"


@dataclass(frozen=True)
class TryOnConfig:
    """Runtime knobs for one try-on session."""

    camera_index: int = 0
    width: int = CAPTURE_WIDTH
    height: int = CAPTURE_HEIGHT
    mirrored: bool = True
    opacity: float = OVERLAY_OPACITY
    max_num_faces: int = 1
    max_num_hands: int = 2
    min_detection_confidence: float = 0.5
    min_tracking_confidence: float = 0.5
    face_model_path: str = FACE_MODEL_PATH
    hand_model_path: str = HAND_MODEL_PATH
    detection_interval_s: float = 0.0  # pause between detector cycles
    first_frame_timeout_s: float = 5.0
    export_dir: str = "."
