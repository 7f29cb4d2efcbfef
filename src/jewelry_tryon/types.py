from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional, Tuple, Union


Box2 = Tuple[int, int, int, int]  # (x_min, y_min, x_max, y_max)


@dataclass(frozen=True)
class Point:
    """A landmark position in native (unmirrored) video pixel space."""

    x: float
    y: float


@dataclass(frozen=True)
class FaceEstimate:
    """Latest face landmarks. Positional fields are meaningless when `detected` is False."""

    detected: bool = False
    left_ear: Optional[Point] = None
    right_ear: Optional[Point] = None
    chin: Optional[Point] = None
    neck_base: Optional[Point] = None
    nose: Optional[Point] = None
    left_eye: Optional[Point] = None
    right_eye: Optional[Point] = None
    face_width: Optional[float] = None  # > 0 when present
    face_height: Optional[float] = None


@dataclass(frozen=True)
class HandEstimate:
    """Latest hand landmarks for the first detected hand."""

    detected: bool = False
    wrist: Optional[Point] = None
    ring_finger_base: Optional[Point] = None
    ring_finger_tip: Optional[Point] = None
    index_finger_base: Optional[Point] = None
    hand_width: Optional[float] = None  # > 0 when present
    handedness: Optional[str] = None  # "Left" / "Right"


LandmarkEstimate = Union[FaceEstimate, HandEstimate]


class LandmarkKind(enum.Enum):
    FACE = "face"
    HAND = "hand"


class JewelryCategory(str, enum.Enum):
    EARRINGS = "earrings"
    NECKLACES = "necklaces"
    RINGS = "rings"
    BANGLES = "bangles"

    @property
    def landmark_kind(self) -> LandmarkKind:
        if self in (JewelryCategory.RINGS, JewelryCategory.BANGLES):
            return LandmarkKind.HAND
        return LandmarkKind.FACE

    @classmethod
    def parse(cls, value: Optional[str]) -> "JewelryCategory":
        """Case-insensitive lookup; a missing category means earrings."""
        if value is None or not value.strip():
            return cls.EARRINGS
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown jewelry category '{value}'. Available: {[c.value for c in cls]}"
            ) from None


@dataclass(frozen=True)
class PlacementRect:
    """Destination rectangle for the jewelry bitmap, in overlay pixel space."""

    x: float
    y: float
    width: float
    height: float

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)

    def to_box(self) -> Box2:
        x0 = int(round(self.x))
        y0 = int(round(self.y))
        return (x0, y0, x0 + int(round(self.width)), y0 + int(round(self.height)))


@dataclass(frozen=True)
class JewelryAsset:
    """The catalog item being tried on."""

    image_url: str
    category: JewelryCategory
    name: str = ""


class SessionState(enum.Enum):
    IDLE = "idle"
    INITIALIZING = "initializing"
    ACTIVE = "active"
    ERROR = "error"
