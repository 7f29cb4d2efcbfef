from __future__ import annotations

import argparse
import logging
import os
import sys

import cv2
import numpy as np

# Allow running without installing the package (repo-local usage).
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC_ROOT = os.path.join(REPO_ROOT, "src")
if SRC_ROOT not in sys.path:
    sys.path.insert(0, SRC_ROOT)

from jewelry_tryon.config import TryOnConfig  # noqa: E402
from jewelry_tryon.drawing import draw_status_badge, draw_text  # noqa: E402
from jewelry_tryon.session import TryOnSession  # noqa: E402
from jewelry_tryon.types import JewelryAsset, JewelryCategory, SessionState  # noqa: E402

WINDOW = "jewelry try-on"
KEYS_HELP = "m mirror | c capture | r restart | s stop/start | q quit"


def main() -> int:
    ap = argparse.ArgumentParser(description="Webcam jewelry try-on.")
    ap.add_argument("--image", required=True, help="Jewelry image path or http(s) URL (PNG with alpha works best)")
    ap.add_argument("--category", default=None, help="earrings | necklaces | rings | bangles (default: earrings)")
    ap.add_argument("--name", default="jewelry", help="Product name, used for the capture filename")
    ap.add_argument("--camera", type=int, default=0, help="Camera index (default: 0)")
    ap.add_argument("--width", type=int, default=1280, help="Capture width (best effort)")
    ap.add_argument("--height", type=int, default=720, help="Capture height (best effort)")
    ap.add_argument("--out-dir", default=".", help="Where captures are saved")
    ap.add_argument(
        "--no-mirror",
        action="store_true",
        help="Disable horizontal mirroring (default is mirrored/selfie mode)",
    )
    ap.add_argument("--verbose", action="store_true", help="Debug logging")
    args = ap.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format="[%(levelname)s] %(message)s")

    config = TryOnConfig(
        camera_index=args.camera,
        width=args.width,
        height=args.height,
        mirrored=not args.no_mirror,
        export_dir=args.out_dir,
    )
    asset = JewelryAsset(image_url=args.image, category=JewelryCategory.parse(args.category), name=args.name)

    with TryOnSession(asset, config) as session:
        while True:
            session.scheduler.run_frame()

            view = session.preview_frame()
            if view is None:
                view = np.full((config.height, config.width, 3), 30, dtype=np.uint8)
                message = session.error_message or "Camera stopped"
                draw_text(view, message, (12, config.height // 2))
                if session.state is SessionState.ERROR:
                    draw_text(view, "press r to try again", (12, config.height // 2 + 32))
            else:
                draw_status_badge(view, session.status_text, session.tracking)
                draw_text(view, session.instructions, (12, view.shape[0] - 40), scale=0.5, thickness=1)
                draw_text(view, KEYS_HELP, (12, view.shape[0] - 14), scale=0.5, thickness=1)

            cv2.imshow(WINDOW, view)
            key = cv2.waitKey(1) & 0xFF
            if key in (ord("q"), 27):
                break
            if key == ord("m"):
                session.toggle_mirror()
            elif key == ord("c"):
                path = session.capture()
                if path is not None:
                    print(f"saved {path}")
            elif key == ord("r"):
                session.restart_camera()
            elif key == ord("s"):
                if session.state is SessionState.ACTIVE:
                    session.stop_camera()
                else:
                    session.open()

    cv2.destroyAllWindows()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
