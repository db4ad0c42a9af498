"""Session-level failure taxonomy.

Every session ends in exactly one outcome; a rejected outcome carries one of
these exceptions. `UserCancelled` is an expected result, not a defect, so
callers should not surface error UI for it.
"""

from __future__ import annotations


class CropError(Exception):
    """Base class for all crop session failures."""


class LoadError(CropError):
    """The source raster could not be decoded."""


class ExportError(CropError):
    """Rasterising or encoding the selection failed."""


class UserCancelled(CropError):
    """The user dismissed the editor via cancel or close."""

    def __init__(self, message: str = "User cancelled") -> None:
        super().__init__(message)
