"""
Jewelry placement rules.

Every function here is pure: the same category, estimate and canvas size always
give the same rectangles. When an estimate is not detected (or lacks the anchor a
category needs) the category's canvas-relative fallback is used instead.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional

from .types import (
    FaceEstimate,
    HandEstimate,
    JewelryCategory,
    LandmarkEstimate,
    LandmarkKind,
    PlacementRect,
)


def _face(estimate: Optional[LandmarkEstimate]) -> Optional[FaceEstimate]:
    if isinstance(estimate, FaceEstimate) and estimate.detected:
        return estimate
    return None


def _hand(estimate: Optional[LandmarkEstimate]) -> Optional[HandEstimate]:
    if isinstance(estimate, HandEstimate) and estimate.detected:
        return estimate
    return None


def _place_earrings(estimate: Optional[LandmarkEstimate], w: float, h: float) -> List[PlacementRect]:
    face = _face(estimate)
    if face is not None and face.left_ear and face.right_ear and face.face_width:
        width = face.face_width * 0.25
        height = width * 1.4
        return [
            PlacementRect(ear.x - width / 2, ear.y + 10, width, height)
            for ear in (face.left_ear, face.right_ear)
        ]

    center_x = w / 2
    offset = w * 0.18
    size = min(w, h) * 0.15
    y = h / 2 - h * 0.05
    return [
        PlacementRect(center_x - offset - size / 2, y, size, size * 1.2),
        PlacementRect(center_x + offset - size / 2, y, size, size * 1.2),
    ]


def _place_necklace(estimate: Optional[LandmarkEstimate], w: float, h: float) -> List[PlacementRect]:
    face = _face(estimate)
    if face is not None and face.chin and face.neck_base and face.face_width:
        width = face.face_width * 1.8
        return [PlacementRect(face.chin.x - width / 2, face.neck_base.y, width, width * 0.35)]

    width = w * 0.4
    return [PlacementRect(w / 2 - width / 2, h / 2 + h * 0.1, width, width * 0.3)]


def _place_ring(estimate: Optional[LandmarkEstimate], w: float, h: float) -> List[PlacementRect]:
    hand = _hand(estimate)
    if hand is not None and hand.ring_finger_base and hand.hand_width:
        side = hand.hand_width * 0.35
        anchor = hand.ring_finger_base
        return [PlacementRect(anchor.x - side / 2, anchor.y - side / 3, side, side)]

    side = min(w, h) * 0.12
    return [PlacementRect(w / 2 - side / 2, h / 2 + h * 0.15, side, side)]


def _place_bangle(estimate: Optional[LandmarkEstimate], w: float, h: float) -> List[PlacementRect]:
    hand = _hand(estimate)
    if hand is not None and hand.wrist and hand.hand_width:
        width = hand.hand_width * 1.5
        height = width * 0.35
        return [PlacementRect(hand.wrist.x - width / 2, hand.wrist.y - height / 2, width, height)]

    width = min(w, h) * 0.25
    return [PlacementRect(w / 2 - width / 2, h / 2 + h * 0.1, width, width * 0.4)]


_PLACERS: Dict[JewelryCategory, Callable[[Optional[LandmarkEstimate], float, float], List[PlacementRect]]] = {
    JewelryCategory.EARRINGS: _place_earrings,
    JewelryCategory.NECKLACES: _place_necklace,
    JewelryCategory.RINGS: _place_ring,
    JewelryCategory.BANGLES: _place_bangle,
}


def place(
    category: JewelryCategory,
    estimate: Optional[LandmarkEstimate],
    canvas_width: float,
    canvas_height: float,
) -> List[PlacementRect]:
    """
    Compute the destination rectangle(s) for one frame.

    Args:
        category: Jewelry category being tried on.
        estimate: Most recent estimate from the active landmark source (may be stale or None).
        canvas_width: Overlay width in native video pixels.
        canvas_height: Overlay height in native video pixels.

    Returns:
        Two rectangles for earrings (left ear, right ear), one for everything else.
    """
    return _PLACERS[category](estimate, float(canvas_width), float(canvas_height))


def is_tracking(category: JewelryCategory, estimate: Optional[LandmarkEstimate]) -> bool:
    if category.landmark_kind is LandmarkKind.HAND:
        return _hand(estimate) is not None
    return _face(estimate) is not None


def detection_status(category: JewelryCategory, estimate: Optional[LandmarkEstimate]) -> str:
    """Human-readable tracking feedback derived from the `detected` flag."""
    tracking = is_tracking(category, estimate)
    if category is JewelryCategory.EARRINGS:
        return "Face detected - tracking ears" if tracking else "Position your face in frame"
    if category is JewelryCategory.NECKLACES:
        return "Face detected - tracking neck" if tracking else "Position your face in frame"

    handedness = getattr(estimate, "handedness", None)
    if category is JewelryCategory.RINGS:
        if not tracking:
            return "Show your hand to try on ring"
        return f"{handedness} hand detected" if handedness else "Hand detected"
    if not tracking:
        return "Show your wrist to try on bangle"
    return f"{handedness} wrist detected" if handedness else "Wrist detected"


def instructions_text(category: JewelryCategory) -> str:
    if category.landmark_kind is LandmarkKind.HAND:
        return "Show your hand clearly for best tracking"
    return "Position your face in the center for best results"
