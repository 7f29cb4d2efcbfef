"""Fakes for the camera, landmark sources and jewelry bitmap."""

from typing import List, Optional

import numpy as np
import pytest

from jewelry_tryon.errors import CameraPermissionError
from jewelry_tryon.types import FaceEstimate, HandEstimate, LandmarkKind


class FakeCamera:
    def __init__(self, config=None, frame: Optional[np.ndarray] = None, fail: bool = False):
        self.config = config
        self.frame = frame if frame is not None else np.zeros((720, 1280, 3), dtype=np.uint8)
        self.fail = fail
        self.opened = False
        self.playing = False
        self.stop_calls = 0
        self.index = 0

    @property
    def active_tracks(self) -> int:
        return 1 if self.opened else 0

    @property
    def native_size(self):
        if not self.playing:
            return None
        h, w = self.frame.shape[:2]
        return (w, h)

    def open(self):
        if self.fail:
            raise CameraPermissionError("denied")
        self.opened = True

    def play(self):
        self.playing = True

    def read_frame(self):
        if not self.playing:
            return self.index, None
        self.index += 1
        return self.index, self.frame

    def stop(self):
        self.stop_calls += 1
        self.opened = False
        self.playing = False


class FakeSource:
    def __init__(self, kind: LandmarkKind, config=None, init_ok: bool = True):
        self.kind = kind
        self.config = config
        self.init_ok = init_ok
        self.init_calls = 0
        self.started_with = None
        self.stop_calls = 0
        self.closed = False
        self.estimate = FaceEstimate() if kind is LandmarkKind.FACE else HandEstimate()

    @property
    def current_estimate(self):
        return self.estimate

    def initialize(self) -> bool:
        self.init_calls += 1
        return self.init_ok

    def start(self, video):
        self.started_with = video

    def stop(self):
        self.stop_calls += 1
        self.started_with = None

    def close(self):
        self.closed = True


class FakeBitmap:
    def __init__(self, image_url: str, image: Optional[np.ndarray] = None):
        self.image_url = image_url
        self.image = image if image is not None else np.full((20, 10, 4), 255, dtype=np.uint8)
        self.released = False

    @property
    def loaded(self) -> bool:
        return self.image is not None

    def load_async(self):
        pass

    def release(self):
        self.released = True
        self.image = None


class Recorder:
    """Factory that remembers what it built."""

    def __init__(self, build):
        self._build = build
        self.built: List = []

    def __call__(self, *args):
        obj = self._build(*args)
        self.built.append(obj)
        return obj

    @property
    def last(self):
        return self.built[-1]


@pytest.fixture
def cameras():
    return Recorder(lambda config: FakeCamera(config))


@pytest.fixture
def denied_cameras():
    return Recorder(lambda config: FakeCamera(config, fail=True))


@pytest.fixture
def sources():
    return Recorder(lambda kind, config: FakeSource(kind, config))


@pytest.fixture
def failing_sources():
    return Recorder(lambda kind, config: FakeSource(kind, config, init_ok=False))


@pytest.fixture
def bitmaps():
    return Recorder(lambda url: FakeBitmap(url))
