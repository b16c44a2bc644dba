"""
Error types raised while building ICO files.
"""


class IcoError(Exception):
    """Base class for all conversion errors."""


class InputNotFound(IcoError):
    """Source image does not exist or cannot be opened."""


class UnsupportedFormat(IcoError):
    """Source extension or content is not a supported image format."""


class DecodeError(IcoError):
    """Source image was recognized but could not be decoded."""


class RasterizeError(IcoError):
    """Source could not be resampled or encoded at a requested size."""


class InvalidSize(IcoError, ValueError):
    """Requested icon size is outside the encodable 1-256 range."""


class WriteFailure(IcoError):
    """Output file or its directory could not be written."""


class EncodeInvariantViolation(IcoError, RuntimeError):
    """
    The encoder received input it must never see.

    Raised for an empty payload sequence, an empty payload or a size the
    directory entry cannot hold. Seeing this means the caller skipped
    validation; it is not a user error.
    """


class IcoFormatError(IcoError):
    """Bytes are not a well-formed ICO container."""
