"""Exception hierarchy for the dsiot bridge."""

from __future__ import annotations


class DsiotError(Exception):
    """Base class for all bridge errors."""


class TransportError(DsiotError):
    """Raised when the device cannot be reached or rejects a request."""


class ProtocolDecodeError(DsiotError):
    """Raised when a response is malformed or lacks an expected field."""


class FieldNotFoundError(ProtocolDecodeError):
    """Raised when a field required for encoding is absent from the tree."""

    def __init__(self, frame: str, path: str) -> None:
        """Record the frame and path that failed to resolve."""

        super().__init__(f"No value found for {path!r} in frame {frame!r}")
        self.frame = frame
        self.path = path


class UnsupportedValueError(DsiotError, ValueError):
    """Raised when a requested value is outside the device capability."""


class ClassificationError(DsiotError):
    """Raised when a device reports an unknown family tag."""


class LockTimeoutError(DsiotError, TimeoutError):
    """Raised when the per-device exclusive section cannot be entered in time."""
