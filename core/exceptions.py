"""
Custom exceptions for the collector pipeline with structured error context.

Every failure of a collection cycle surfaces at the job boundary as one of
these exceptions. Each carries context information for logging and for the
per-source status exposed by the API.

Exception Hierarchy:
    CollectorException (base)
    ├── ConfigError
    │   └── ScheduleError
    ├── FetchError
    │   ├── AuthenticationError
    │   ├── RateLimitError
    │   ├── NetworkError (retryable)
    │   └── SourceAPIError
    ├── ParseError
    │   ├── MetricValueError
    │   └── RowShapeError
    ├── PublishError
    └── RetryableError (mixin)
"""

from typing import Optional, Dict, Any
from datetime import datetime, timezone


class CollectorException(Exception):
    """
    Base exception for all collector errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (source, field, operation, etc.)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = dict(context or {})
        self.original_exception = original_exception
        self.timestamp = datetime.now(timezone.utc)

        self.context["error_timestamp"] = self.timestamp.isoformat()

        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += (
                f" | Caused by: {type(self.original_exception).__name__}: "
                f"{str(self.original_exception)}"
            )

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/status."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


# ============================================================================
# Configuration Errors
# ============================================================================

class ConfigError(CollectorException):
    """
    Exception raised when a source configuration is unusable.

    Context should include:
        - source_name: Name of the source
        - field_name: Configuration field that failed
    """
    pass


class ScheduleError(ConfigError):
    """
    Exception raised when a schedule expression cannot be parsed.

    Context should include:
        - schedule: The offending expression
    """
    pass


# ============================================================================
# Retry Strategy Mixin
# ============================================================================

class RetryableError(CollectorException):
    """
    Mixin for transport errors the source client retries before giving up.

    Use this for transient errors like:
    - Network timeouts
    - Service unavailable (HTTP 5xx)
    """
    pass


# ============================================================================
# Fetch Errors
# ============================================================================

class FetchError(CollectorException):
    """
    Base exception for source fetch failures.

    Context should include:
        - source_name: Name of the source
        - api_url: Endpoint that failed
        - status_code: HTTP status code (if applicable)
    """
    pass


class AuthenticationError(FetchError):
    """Credential or authorization failures (HTTP 401, 403, token refresh)."""
    pass


class RateLimitError(FetchError):
    """Rate limiting errors (HTTP 429)."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
        retry_after: Optional[int] = None
    ):
        super().__init__(message, context, original_exception)
        self.retry_after = retry_after
        if retry_after:
            self.context["retry_after"] = retry_after


class NetworkError(RetryableError, FetchError):
    """Network-related errors and server errors."""
    pass


class SourceAPIError(FetchError):
    """The analytics API rejected the query or answered with an unreadable body."""
    pass


# ============================================================================
# Parse Errors
# ============================================================================

class ParseError(CollectorException):
    """Base exception for tabular response parsing failures."""
    pass


class MetricValueError(ParseError):
    """
    Exception raised when a realtime metric cell is not an integer.

    Context should include:
        - row_index: Index of the offending row
        - cell_value: The cell that failed to parse
    """
    pass


class RowShapeError(ParseError):
    """
    Exception raised when a row's cell count differs from the header count.

    Context should include:
        - row_index: Index of the offending row
        - cell_count: Number of cells in that row
        - header_count: Number of column headers
    """
    pass


# ============================================================================
# Publish Errors
# ============================================================================

class PublishError(CollectorException):
    """
    Exception describing one event the sink rejected.

    Context should include:
        - source_name: Name of the source
        - event_index: Index of the event within the batch
    """
    pass
