from __future__ import annotations

import itertools
import time
from typing import Callable, Dict, Optional

FrameCallback = Callable[[float], None]


class FrameScheduler:
    """
    Cooperative per-frame callback queue, pumped by the UI loop.

    `request_frame()` queues a callback for the next `run_frame()`; callbacks
    requested while a frame runs wait for the following one. Cancelling a
    handle guarantees its callback never fires.
    """

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self._queued: Dict[int, FrameCallback] = {}
        self._running: Dict[int, FrameCallback] = {}

    @property
    def pending(self) -> int:
        return len(self._queued) + len(self._running)

    def request_frame(self, callback: FrameCallback) -> int:
        handle = next(self._ids)
        self._queued[handle] = callback
        return handle

    def cancel_frame(self, handle: Optional[int]) -> None:
        if handle is None:
            return
        self._queued.pop(handle, None)
        self._running.pop(handle, None)

    def run_frame(self, now: Optional[float] = None) -> int:
        """Run every callback queued before this call. Returns how many ran."""
        if now is None:
            now = time.monotonic()
        self._running, self._queued = self._queued, {}
        ran = 0
        while self._running:
            handle = next(iter(self._running))
            callback = self._running.pop(handle)
            callback(now)
            ran += 1
        return ran
