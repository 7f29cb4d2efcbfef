from .config import TryOnConfig
from .placement import detection_status, place
from .session import TryOnSession
from .types import FaceEstimate, HandEstimate, JewelryAsset, JewelryCategory, PlacementRect, Point, SessionState

__all__ = [
    "TryOnSession",
    "TryOnConfig",
    "place",
    "detection_status",
    "JewelryAsset",
    "JewelryCategory",
    "FaceEstimate",
    "HandEstimate",
    "PlacementRect",
    "Point",
    "SessionState",
]
