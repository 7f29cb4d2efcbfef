from __future__ import annotations

from typing import Tuple

import cv2
import numpy as np

from .types import PlacementRect


def draw_bitmap(surface: np.ndarray, bitmap: np.ndarray, rect: PlacementRect, opacity: float = 1.0) -> np.ndarray:
    """
    Draw a BGRA bitmap stretched into `rect` on a BGRA surface ("source-over").

    Parts of the rectangle outside the surface are clipped.
    """
    x0, y0, x1, y1 = rect.to_box()
    dst_w, dst_h = x1 - x0, y1 - y0
    if dst_w < 1 or dst_h < 1:
        return surface

    sh, sw = surface.shape[:2]
    cx0, cy0 = max(x0, 0), max(y0, 0)
    cx1, cy1 = min(x1, sw), min(y1, sh)
    if cx0 >= cx1 or cy0 >= cy1:
        return surface

    resized = cv2.resize(bitmap, (dst_w, dst_h), interpolation=cv2.INTER_LINEAR)
    src = resized[cy0 - y0 : cy1 - y0, cx0 - x0 : cx1 - x0].astype(np.float32)
    dst = surface[cy0:cy1, cx0:cx1].astype(np.float32)

    a_s = src[..., 3:4] / 255.0 * opacity
    a_d = dst[..., 3:4] / 255.0
    a_o = a_s + a_d * (1.0 - a_s)
    color = src[..., :3] * a_s + dst[..., :3] * a_d * (1.0 - a_s)
    color = np.divide(color, a_o, out=np.zeros_like(color), where=a_o > 0)

    out = np.concatenate([color, a_o * 255.0], axis=2)
    surface[cy0:cy1, cx0:cx1] = np.clip(np.round(out), 0, 255).astype(np.uint8)
    return surface


def composite_over(frame_bgr: np.ndarray, overlay_bgra: np.ndarray) -> np.ndarray:
    """Return a new BGR image: the overlay drawn over the frame at (0, 0), no transform."""
    out = frame_bgr.copy()
    h = min(out.shape[0], overlay_bgra.shape[0])
    w = min(out.shape[1], overlay_bgra.shape[1])
    if h == 0 or w == 0:
        return out

    ov = overlay_bgra[:h, :w].astype(np.float32)
    alpha = ov[..., 3:4] / 255.0
    base = out[:h, :w].astype(np.float32)
    out[:h, :w] = np.clip(np.round(ov[..., :3] * alpha + base * (1.0 - alpha)), 0, 255).astype(np.uint8)
    return out


def compose_preview(frame_bgr: np.ndarray, overlay_bgra: np.ndarray, mirrored: bool) -> np.ndarray:
    """On-screen view: video and overlay share one presentation transform."""
    view = composite_over(frame_bgr, overlay_bgra)
    if mirrored:
        view = cv2.flip(view, 1)
    return view


def draw_text(frame, text: str, org: Tuple[int, int], color=(255, 255, 255), scale=0.6, thickness=2):
    cv2.putText(frame, text, org, cv2.FONT_HERSHEY_SIMPLEX, scale, (0, 0, 0), thickness + 2, cv2.LINE_AA)
    cv2.putText(frame, text, org, cv2.FONT_HERSHEY_SIMPLEX, scale, color, thickness, cv2.LINE_AA)
    return frame


def draw_status_badge(frame, text: str, tracking: bool, org: Tuple[int, int] = (30, 32)):
    # green while tracking, yellow while using fallback placement
    color = (80, 220, 80) if tracking else (40, 210, 230)
    (tw, th), _ = cv2.getTextSize(text, cv2.FONT_HERSHEY_SIMPLEX, 0.6, 2)
    x, y = org
    cv2.rectangle(frame, (x - 24, y - th - 8), (x + tw + 6, y + 8), (0, 0, 0), -1)
    cv2.circle(frame, (x - 14, y - th // 2), 5, color, -1, lineType=cv2.LINE_AA)
    return draw_text(frame, text, org, color=color)
