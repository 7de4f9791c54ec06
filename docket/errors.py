"""
Error types for docket.

Absence (unknown artifact, unpublished version, missing documentation file)
is never an exception: those lookups return None or an empty sequence.
"""

from typing import Optional


class DocketError(Exception):
    """Base class for docket errors."""


class ValidationError(DocketError, ValueError):
    """Raised when a canonical artifact name is malformed."""


class FetchError(DocketError):
    """
    Raised when a registry, source or API response is not usable.

    Attributes:
        url: The URL that was requested, if known
        status_code: HTTP status of the last response, if there was one
    """

    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code
