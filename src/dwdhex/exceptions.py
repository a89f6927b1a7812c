"""
Exceptions for dwdhex operations.
"""

from typing import Optional


class DWDHexError(Exception):
    """Base exception for all dwdhex errors."""

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} ({self.details})"
        return self.message


class DWDConnectionError(DWDHexError):
    """Error connecting to the DWD open data server."""

    pass


class DWDQueryError(DWDHexError):
    """Requested file or listing not found, or the response was unusable."""

    pass


class ArchiveError(DWDHexError):
    """Corrupt, empty or unreadable station archive."""

    pass


class CacheError(DWDHexError):
    """Error reading from or writing to the observation cache."""

    pass


class SpatialIndexError(DWDHexError):
    """Invalid cell identifier or grid resolution mismatch."""

    pass


class NoDataError(DWDHexError):
    """Raised when a pipeline stage has nothing to work with."""

    pass


class EncodingError(DWDHexError):
    """Raised when the frame set cannot be encoded into an animation."""

    pass
