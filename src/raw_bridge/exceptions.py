from __future__ import annotations

from typing import Optional


class RawBridgeError(Exception):
    """Base class for raw_bridge errors.

    ``code`` is the engine's native status code when one exists.
    """

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code


class EngineOpenError(RawBridgeError):
    """The engine rejected the input buffer in its open stage."""


class UnpackError(RawBridgeError):
    pass


class ProcessError(RawBridgeError):
    pass


class ThumbnailError(RawBridgeError):
    """Thumbnail unpack failed, or the engine holds no thumbnail data."""


class SessionClosedError(RawBridgeError):
    """Raised when a session is used after its resources were torn down."""
