"""
Custom exception classes for the VidStream insights core.

Upstream failures are split by category so the caller can decide how to
degrade: a missing credential, an exhausted quota, and a plain transient
failure each raise a different class. The scoring engine never raises for
well-typed numeric input; empty upstream results are data, not errors.

Hierarchy:
    Exception
    +-- VidstreamError (base for domain errors)
    |   +-- UpstreamError
    |   |   +-- YouTubeAPIError
    |   |   +-- YouTubeQuotaExceededError
    |   |   +-- ChannelNotFoundError
    |   +-- CompetitorAnalysisError
    |   +-- FetchTimeoutError
    +-- ConfigurationError
    |   +-- MissingYouTubeApiKeyError
    +-- ValidationError (ValueError)
    |   +-- BoundaryValidationError
    +-- RetryExhaustedError
"""

from typing import List, Optional


# =============================================================================
# BASE EXCEPTION
# =============================================================================


class VidstreamError(Exception):
    """Base exception for all domain errors."""

    pass


# =============================================================================
# CORE EXCEPTIONS
# =============================================================================


class ValidationError(ValueError):
    """Raised when input validation fails."""

    pass


class ConfigurationError(Exception):
    """Raised when system configuration is invalid."""

    pass


class MissingYouTubeApiKeyError(ConfigurationError):
    """Raised when ``YOUTUBE_API_KEY`` is not configured."""

    def __init__(self, message: str = "YOUTUBE_API_KEY is not configured"):
        super().__init__(message)


class RetryExhaustedError(Exception):
    """Raised when all retry attempts have been exhausted.

    Attributes:
        operation: Name of the operation that was retried.
        attempts: Total number of attempts made.
        last_error: The last exception raised before giving up.
    """

    def __init__(self, operation: str, attempts: int, last_error: Exception):
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"{operation} failed after {attempts} attempts. "
            f"Last error: {last_error}"
        )


# =============================================================================
# UPSTREAM EXCEPTIONS
# =============================================================================


class UpstreamError(VidstreamError):
    """Raised when the upstream video platform fails."""

    pass


class YouTubeAPIError(UpstreamError):
    """Raised for non-2xx YouTube Data API responses other than quota errors.

    Attributes:
        endpoint: API endpoint that was called (``search``, ``videos``...).
        status_code: HTTP status code, or ``None`` when no response exists.
    """

    def __init__(
        self,
        message: str,
        endpoint: str = "",
        status_code: Optional[int] = None,
    ):
        self.endpoint = endpoint
        self.status_code = status_code
        super().__init__(message)


class YouTubeQuotaExceededError(UpstreamError):
    """Raised when the YouTube API quota (or rate limit) is exhausted."""

    def __init__(self, message: str = "YouTube API quota exceeded"):
        super().__init__(message)


class ChannelNotFoundError(UpstreamError):
    """Raised when a channel search returns no match."""

    pass


# =============================================================================
# PIPELINE EXCEPTIONS
# =============================================================================


class CompetitorAnalysisError(VidstreamError):
    """Raised when a competitor analysis request cannot be served."""

    pass


class FetchTimeoutError(VidstreamError):
    """Raised when a cached fetch exceeds the caller's deadline.

    Attributes:
        key: Cache key of the fetch that timed out.
        timeout: Deadline in seconds.
    """

    def __init__(self, key: str, timeout: float):
        self.key = key
        self.timeout = timeout
        super().__init__(f"Fetch for '{key}' timed out after {timeout} seconds")


# =============================================================================
# VALIDATION EXCEPTIONS
# =============================================================================


class BoundaryValidationError(ValidationError):
    """Raised when external input fails validation at the service boundary.

    Attributes:
        boundary: Name of the payload being validated.
        issues: List of validation issues found.
    """

    def __init__(self, boundary: str, issues: List[str]):
        self.boundary = boundary
        self.issues = issues
        super().__init__(f"Validation failed for {boundary}: {issues}")


# =============================================================================
# PUBLIC API
# =============================================================================

__all__ = [
    # Base
    "VidstreamError",
    # Core
    "ValidationError",
    "ConfigurationError",
    "MissingYouTubeApiKeyError",
    "RetryExhaustedError",
    # Upstream
    "UpstreamError",
    "YouTubeAPIError",
    "YouTubeQuotaExceededError",
    "ChannelNotFoundError",
    # Pipeline
    "CompetitorAnalysisError",
    "FetchTimeoutError",
    # Validation
    "BoundaryValidationError",
]
