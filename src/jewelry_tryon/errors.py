from __future__ import annotations


class TryOnError(RuntimeError):
    """Base class for try-on engine failures."""


class CameraPermissionError(TryOnError):
    """The camera could not be opened (access denied, missing device, no frames)."""


class DetectorInitError(TryOnError):
    """A landmark model could not be loaded. The session keeps running in fallback mode."""
