"""Tests for jewelry placement rules."""

import pytest

from jewelry_tryon.placement import detection_status, instructions_text, place
from jewelry_tryon.types import FaceEstimate, HandEstimate, JewelryCategory, PlacementRect, Point


def _face(**kw):
    return FaceEstimate(detected=True, **kw)


def _hand(**kw):
    return HandEstimate(detected=True, **kw)


def _as_tuple(rect: PlacementRect):
    return (rect.x, rect.y, rect.width, rect.height)


class TestEarrings:
    def test_anchored_below_each_ear(self):
        face = _face(left_ear=Point(100, 200), right_ear=Point(300, 210), face_width=200)
        left, right = place(JewelryCategory.EARRINGS, face, 640, 480)

        assert (left.x, left.y, left.width) == (75, 210, 50)
        assert left.height == pytest.approx(70)
        assert right.x == 275
        assert right.y == 220

    @pytest.mark.parametrize("anchor", [Point(50, 60), Point(333.5, 12.25), Point(0, 0)])
    @pytest.mark.parametrize("face_width", [40.0, 123.0, 480.0])
    def test_scale_invariance(self, anchor, face_width):
        other = Point(anchor.x + 100, anchor.y)
        base = place(JewelryCategory.EARRINGS, _face(left_ear=anchor, right_ear=other, face_width=face_width), 640, 480)
        doubled = place(
            JewelryCategory.EARRINGS, _face(left_ear=anchor, right_ear=other, face_width=face_width * 2), 640, 480
        )

        for small, big, ear in zip(base, doubled, (anchor, other)):
            assert big.width == pytest.approx(small.width * 2)
            assert big.height == pytest.approx(small.height * 2)
            assert small.x + small.width / 2 == pytest.approx(ear.x)
            assert big.x + big.width / 2 == pytest.approx(ear.x)

    @pytest.mark.parametrize("size", [(640, 480), (1280, 720), (720, 1280), (301, 97)])
    def test_fallback_is_symmetric(self, size):
        w, h = size
        left, right = place(JewelryCategory.EARRINGS, FaceEstimate(), w, h)
        offset = w * 0.18

        assert left.x + left.width / 2 == pytest.approx(w / 2 - offset)
        assert right.x + right.width / 2 == pytest.approx(w / 2 + offset)
        assert left.y == right.y == pytest.approx(h / 2 - h * 0.05)
        assert left.width == pytest.approx(min(w, h) * 0.15)
        assert left.height == pytest.approx(left.width * 1.2)

    def test_missing_ear_uses_fallback(self):
        face = _face(left_ear=Point(100, 200), face_width=200)
        assert place(JewelryCategory.EARRINGS, face, 640, 480) == place(
            JewelryCategory.EARRINGS, FaceEstimate(), 640, 480
        )


class TestNecklaces:
    def test_detected(self):
        face = _face(chin=Point(320, 300), neck_base=Point(320, 360), face_width=200)
        (rect,) = place(JewelryCategory.NECKLACES, face, 640, 480)

        assert rect.width == pytest.approx(360)
        assert rect.height == pytest.approx(126)
        assert rect.x == pytest.approx(140)
        assert rect.y == 360

    def test_fallback_800x600(self):
        (rect,) = place(JewelryCategory.NECKLACES, FaceEstimate(detected=False), 800, 600)
        assert _as_tuple(rect) == pytest.approx((240, 360, 320, 96))

    def test_fallback_ignores_stale_positions(self):
        stale = FaceEstimate(detected=False, chin=Point(1, 1), neck_base=Point(2, 2), face_width=999)
        (rect,) = place(JewelryCategory.NECKLACES, stale, 800, 600)
        assert _as_tuple(rect) == pytest.approx((240, 360, 320, 96))


class TestRings:
    def test_happy_path(self):
        hand = _hand(ring_finger_base=Point(400, 300), hand_width=200, handedness="Left")
        (rect,) = place(JewelryCategory.RINGS, hand, 1280, 720)

        assert rect.width == pytest.approx(70)
        assert rect.height == pytest.approx(70)
        assert rect.x == pytest.approx(365)
        assert rect.y == pytest.approx(300 - 70 / 3)

    def test_fallback(self):
        (rect,) = place(JewelryCategory.RINGS, HandEstimate(), 800, 600)
        assert rect.width == rect.height == pytest.approx(72)
        assert rect.x == pytest.approx(364)
        assert rect.y == pytest.approx(390)


class TestBangles:
    def test_centered_on_wrist(self):
        hand = _hand(wrist=Point(500, 400), hand_width=100)
        (rect,) = place(JewelryCategory.BANGLES, hand, 1280, 720)

        assert rect.center == pytest.approx((500, 400))
        assert rect.width == pytest.approx(150)
        assert rect.height == pytest.approx(52.5)

    def test_fallback(self):
        (rect,) = place(JewelryCategory.BANGLES, HandEstimate(), 800, 600)
        assert rect.width == pytest.approx(150)
        assert rect.height == pytest.approx(60)
        assert rect.x == pytest.approx(325)
        assert rect.y == pytest.approx(360)

    def test_zero_width_is_not_a_scale(self):
        hand = _hand(wrist=Point(500, 400), hand_width=None)
        assert place(JewelryCategory.BANGLES, hand, 800, 600) == place(JewelryCategory.BANGLES, HandEstimate(), 800, 600)


class TestFallbackDeterminism:
    @pytest.mark.parametrize("category", list(JewelryCategory))
    def test_no_memory_of_previous_detection(self, category):
        undetected = HandEstimate() if category in (JewelryCategory.RINGS, JewelryCategory.BANGLES) else FaceEstimate()
        first = place(category, undetected, 640, 480)

        detected_face = _face(
            left_ear=Point(10, 10), right_ear=Point(90, 10), chin=Point(50, 50), neck_base=Point(50, 80), face_width=80
        )
        detected_hand = _hand(wrist=Point(10, 10), ring_finger_base=Point(20, 20), hand_width=50)
        place(category, detected_face, 640, 480)
        place(category, detected_hand, 640, 480)

        assert place(category, undetected, 640, 480) == first
        assert place(category, None, 640, 480) == first

    def test_wrong_estimate_kind_falls_back(self):
        hand = _hand(wrist=Point(10, 10), ring_finger_base=Point(20, 20), hand_width=50)
        assert place(JewelryCategory.EARRINGS, hand, 640, 480) == place(JewelryCategory.EARRINGS, None, 640, 480)


class TestStatusText:
    def test_face_categories(self):
        face = _face(left_ear=Point(1, 1), right_ear=Point(2, 2), face_width=10)
        assert detection_status(JewelryCategory.EARRINGS, face) == "Face detected - tracking ears"
        assert detection_status(JewelryCategory.NECKLACES, face) == "Face detected - tracking neck"
        assert detection_status(JewelryCategory.EARRINGS, FaceEstimate()) == "Position your face in frame"
        assert detection_status(JewelryCategory.NECKLACES, None) == "Position your face in frame"

    def test_hand_categories(self):
        assert detection_status(JewelryCategory.RINGS, _hand(handedness="Right")) == "Right hand detected"
        assert detection_status(JewelryCategory.BANGLES, _hand(handedness="Left")) == "Left wrist detected"
        assert detection_status(JewelryCategory.RINGS, _hand()) == "Hand detected"
        assert detection_status(JewelryCategory.RINGS, HandEstimate()) == "Show your hand to try on ring"
        assert detection_status(JewelryCategory.BANGLES, HandEstimate()) == "Show your wrist to try on bangle"

    def test_instructions(self):
        assert instructions_text(JewelryCategory.RINGS) == "Show your hand clearly for best tracking"
        assert instructions_text(JewelryCategory.EARRINGS) == "Position your face in the center for best results"
