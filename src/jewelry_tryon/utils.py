from __future__ import annotations

from typing import Iterable, Tuple

from .types import Point


def clamp_int(v: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, v))


def bbox_from_points(points: Iterable[Point]) -> Tuple[float, float, float, float]:
    xs = []
    ys = []
    for p in points:
        xs.append(p.x)
        ys.append(p.y)
    if not xs:
        return (0.0, 0.0, 0.0, 0.0)
    return (min(xs), min(ys), max(xs), max(ys))


def point_from_normalized(x_norm: float, y_norm: float, w: int, h: int) -> Point:
    """Map a MediaPipe normalized coordinate to native frame pixels."""
    return Point(float(x_norm) * w, float(y_norm) * h)
