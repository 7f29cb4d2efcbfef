"""Tests for overlay drawing and the render loop."""

import numpy as np
import pytest

from conftest import FakeBitmap, FakeCamera
from jewelry_tryon.drawing import compose_preview, draw_bitmap
from jewelry_tryon.render import OverlaySurface, RenderLoop
from jewelry_tryon.scheduler import FrameScheduler
from jewelry_tryon.types import HandEstimate, JewelryCategory, PlacementRect, Point


def _loop(camera=None, bitmap=None, estimate=None, category=JewelryCategory.RINGS, scheduler=None):
    camera = camera or FakeCamera()
    camera.open()
    camera.play()
    return RenderLoop(
        scheduler or FrameScheduler(),
        camera,
        OverlaySurface(),
        bitmap or FakeBitmap("x.png"),
        category,
        lambda: estimate,
    )


class TestDrawBitmap:
    def test_opaque_bitmap_with_opacity(self):
        surface = np.zeros((50, 50, 4), dtype=np.uint8)
        bitmap = np.zeros((5, 5, 4), dtype=np.uint8)
        bitmap[:] = (0, 0, 255, 255)

        draw_bitmap(surface, bitmap, PlacementRect(10, 10, 20, 10), opacity=0.95)

        assert tuple(surface[15, 15]) == (0, 0, 255, 242)
        assert surface[5, 5, 3] == 0
        assert surface[25, 15, 3] == 0
        assert surface[15, 31, 3] == 0

    def test_clipped_at_edges(self):
        surface = np.zeros((20, 20, 4), dtype=np.uint8)
        bitmap = np.full((4, 4, 4), 255, dtype=np.uint8)

        draw_bitmap(surface, bitmap, PlacementRect(-5, -5, 10, 10))
        assert surface[0, 0, 3] == 255
        assert surface[4, 4, 3] == 255
        assert surface[5, 5, 3] == 0

    def test_fully_outside_or_degenerate_is_ignored(self):
        surface = np.zeros((20, 20, 4), dtype=np.uint8)
        bitmap = np.full((4, 4, 4), 255, dtype=np.uint8)

        draw_bitmap(surface, bitmap, PlacementRect(100, 100, 10, 10))
        draw_bitmap(surface, bitmap, PlacementRect(5, 5, 0.2, 10))
        assert not surface.any()

    def test_transparent_pixels_leave_surface_alone(self):
        surface = np.zeros((10, 10, 4), dtype=np.uint8)
        surface[:] = (1, 2, 3, 255)
        bitmap = np.zeros((10, 10, 4), dtype=np.uint8)

        draw_bitmap(surface, bitmap, PlacementRect(0, 0, 10, 10))
        assert tuple(surface[5, 5]) == (1, 2, 3, 255)


class TestPreview:
    def test_mirror_flips_video_and_overlay_together(self):
        frame = np.zeros((2, 4, 3), dtype=np.uint8)
        frame[:, 0] = (255, 0, 0)
        overlay = np.zeros((2, 4, 4), dtype=np.uint8)
        overlay[:, 1] = (0, 255, 0, 255)

        view = compose_preview(frame, overlay, mirrored=True)
        assert tuple(view[0, 3]) == (255, 0, 0)
        assert tuple(view[0, 2]) == (0, 255, 0)


class TestOverlaySurface:
    def test_resize_clears(self):
        surface = OverlaySurface()
        surface.resize(4, 3)
        assert surface.size == (4, 3)
        surface.pixels[:] = 9

        surface.resize(4, 3)
        assert not surface.pixels.any()

        surface.pixels[:] = 9
        surface.resize(8, 6)
        assert surface.pixels.shape == (6, 8, 4)
        assert not surface.pixels.any()

    def test_release(self):
        surface = OverlaySurface()
        surface.resize(2, 2)
        surface.release()
        assert surface.size is None


class TestRenderLoop:
    def test_tick_matches_video_resolution(self):
        camera = FakeCamera(frame=np.zeros((480, 640, 3), dtype=np.uint8))
        loop = _loop(camera=camera)
        loop.start()
        loop._scheduler.run_frame()

        assert loop._overlay.size == (640, 480)
        assert loop.frames_rendered == 1

    def test_follows_resolution_changes(self):
        camera = FakeCamera(frame=np.zeros((480, 640, 3), dtype=np.uint8))
        loop = _loop(camera=camera)
        loop.render_frame()
        camera.frame = np.zeros((720, 1280, 3), dtype=np.uint8)
        loop.render_frame()
        assert loop._overlay.size == (1280, 720)

    def test_draws_at_placement(self):
        estimate = HandEstimate(detected=True, ring_finger_base=Point(400, 300), hand_width=200, handedness="Left")
        loop = _loop(estimate=estimate)
        assert loop.render_frame()

        (rect,) = loop.last_rects
        assert rect.x == pytest.approx(365)
        pixels = loop._overlay.pixels
        assert pixels[300, 400, 3] > 0
        assert pixels[100, 100, 3] == 0
        assert loop.status_text == "Left hand detected"
        assert loop.tracking

    def test_nothing_drawn_until_bitmap_loads(self):
        bitmap = FakeBitmap("x.png")
        bitmap.image = None
        loop = _loop(bitmap=bitmap)

        assert loop.render_frame()
        assert not loop._overlay.pixels.any()
        assert loop.frames_rendered == 0

    def test_waits_for_first_video_frame(self):
        camera = FakeCamera()
        loop = RenderLoop(FrameScheduler(), camera, OverlaySurface(), FakeBitmap("x"), JewelryCategory.RINGS, lambda: None)
        assert loop.render_frame() is False
        assert loop._overlay.size is None

    def test_clears_previous_frame(self):
        estimate = HandEstimate(detected=True, wrist=Point(100, 100), hand_width=100)
        current = {"estimate": estimate}
        camera = FakeCamera()
        camera.open()
        camera.play()
        loop = RenderLoop(
            FrameScheduler(), camera, OverlaySurface(), FakeBitmap("x"), JewelryCategory.BANGLES, lambda: current["estimate"]
        )
        loop.render_frame()
        assert loop._overlay.pixels[100, 100, 3] > 0

        current["estimate"] = HandEstimate(detected=True, wrist=Point(1000, 600), hand_width=100)
        loop.render_frame()
        assert loop._overlay.pixels[100, 100, 3] == 0

    def test_reschedules_each_tick(self):
        scheduler = FrameScheduler()
        loop = _loop(scheduler=scheduler)
        loop.start()
        loop.start()
        assert scheduler.pending == 1

        for _ in range(3):
            assert scheduler.run_frame() == 1
        assert loop.frames_rendered == 3
        assert loop.running

    def test_cancel_leaves_no_pending_tick(self):
        scheduler = FrameScheduler()
        loop = _loop(scheduler=scheduler)
        loop.start()
        loop.cancel()

        assert not loop.running
        assert scheduler.pending == 0
        assert scheduler.run_frame() == 0
        assert loop.frames_rendered == 0

    def test_stale_tick_cannot_run_after_cancel(self):
        scheduler = FrameScheduler()
        loop = _loop(scheduler=scheduler)
        loop.start()
        stale_tick = scheduler._queued[loop._handle]
        loop.cancel()
        loop.start()

        # a tick captured before the cancel is inert even if something fires it
        stale_tick(0.0)
        assert loop.frames_rendered == 0
        assert scheduler.pending == 1

        scheduler.run_frame()
        assert loop.frames_rendered == 1
        assert scheduler.pending == 1

    def test_cancel_from_inside_a_frame(self):
        scheduler = FrameScheduler()
        loop = _loop(scheduler=scheduler)
        loop.start()
        scheduler.request_frame(lambda now: loop.cancel())
        scheduler.run_frame()
        assert scheduler.pending == 0
