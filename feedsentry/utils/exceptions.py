"""
FeedSentry Custom Exceptions
============================

Exception hierarchy for the ingestion pipeline with error codes, context
information, and user-friendly messages.

Only StaleCollectionError and ConsecutiveFailureLimitExceeded are fatal at the
subsystem level, and they lead to a bounded restart of the collector. All other
errors are recovered where they occur and surface as log entries.
"""

from typing import Optional, Dict, Any
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for categorizing exceptions."""

    # Configuration errors (C001-C099)
    CONFIG_INVALID = "C001"

    # Database errors (D001-D099)
    DATABASE_CONNECTION = "D001"
    DATABASE_CONSTRAINT = "D003"
    DATABASE_ERROR = "D006"

    # Feed ingestion errors (F001-F099)
    FEED_FETCH_TIMEOUT = "F002"
    FEED_NETWORK_ERROR = "F004"
    FEED_HTTP_ERROR = "F005"
    FEED_SOURCE_UNAVAILABLE = "F006"
    FEED_EMPTY = "F007"

    # Content errors (P001-P099)
    CONTENT_MALFORMED_ITEM = "P002"

    # Collection errors (S001-S099)
    COLLECTION_FAILED = "S001"
    COLLECTION_STALE = "S002"
    COLLECTION_FAILURE_LIMIT = "S003"

    # Validation errors (V001-V099)
    VALIDATION_REQUIRED_FIELD = "V001"
    VALIDATION_INVALID_FORMAT = "V002"


class FeedSentryError(Exception):
    """Base exception for all FeedSentry errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        context: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        recoverable: bool = False,
    ):
        """Initialize FeedSentry error.

        Args:
            message: Technical error message for logging
            error_code: Categorized error code
            context: Additional context information
            user_message: User-friendly error message
            recoverable: Whether the error is recoverable
        """
        super().__init__(message)
        self.error_code = error_code
        self.context = context or {}
        self.user_message = user_message or message
        self.recoverable = recoverable

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code.value if self.error_code else None,
            "error_message": str(self),
            "user_message": self.user_message,
            "context": self.context,
            "recoverable": self.recoverable,
        }

    def __str__(self) -> str:
        """String representation with error code."""
        if self.error_code:
            return f"[{self.error_code.value}] {super().__str__()}"
        return super().__str__()


def _passthrough(kwargs: Dict[str, Any]) -> Dict[str, Any]:
    return {
        k: v
        for k, v in kwargs.items()
        if k not in ["context", "error_code", "user_message", "recoverable"]
    }


class ConfigurationError(FeedSentryError):
    """Configuration-related errors."""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        """Initialize configuration error.

        Args:
            message: Error message
            config_key: Configuration key that caused the error
            **kwargs: Additional arguments for FeedSentryError
        """
        context = kwargs.get("context", {})
        if config_key:
            context["config_key"] = config_key

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.CONFIG_INVALID),
            context=context,
            user_message=kwargs.get("user_message", f"Configuration error: {message}"),
            recoverable=kwargs.get("recoverable", False),
            **_passthrough(kwargs),
        )


class DatabaseError(FeedSentryError):
    """Database-related errors."""

    def __init__(self, message: str, query: Optional[str] = None, **kwargs):
        """Initialize database error.

        Args:
            message: Error message
            query: SQL query that caused the error
            **kwargs: Additional arguments for FeedSentryError
        """
        context = kwargs.get("context", {})
        if query:
            context["query"] = query

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.DATABASE_CONNECTION),
            context=context,
            user_message=kwargs.get("user_message", "Database operation failed"),
            recoverable=kwargs.get("recoverable", True),
            **_passthrough(kwargs),
        )


class DuplicateKeyError(DatabaseError):
    """Store rejected an article whose canonical link already exists.

    The pipeline treats this as a silent skip, never as a failure.
    """

    def __init__(self, message: str, link: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", {})
        if link:
            context["link"] = link
        kwargs.setdefault("error_code", ErrorCode.DATABASE_CONSTRAINT)
        kwargs.setdefault("user_message", "Article already stored")
        super().__init__(message, context=context, **kwargs)


class FeedError(FeedSentryError):
    """Feed ingestion and parsing errors."""

    def __init__(self, message: str, feed_url: Optional[str] = None, **kwargs):
        """Initialize feed error.

        Args:
            message: Error message
            feed_url: Feed URL that caused the error
            **kwargs: Additional arguments for FeedSentryError
        """
        context = kwargs.get("context", {})
        if feed_url:
            context["feed_url"] = feed_url

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.FEED_NETWORK_ERROR),
            context=context,
            user_message=kwargs.get(
                "user_message", f"Feed processing failed: {message}"
            ),
            recoverable=kwargs.get("recoverable", True),
            **_passthrough(kwargs),
        )


class FeedFetchError(FeedError):
    """A single fetch attempt failed (timeout, transport error, HTTP status)."""

    pass


class SourceUnavailableError(FeedError):
    """Feed could not be retrieved after exhausting all retry attempts.

    Scoped to one source; the round carries on without it.
    """

    def __init__(
        self,
        message: str,
        feed_url: Optional[str] = None,
        attempts: Optional[int] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})
        if attempts is not None:
            context["attempts"] = attempts
        kwargs.setdefault("error_code", ErrorCode.FEED_SOURCE_UNAVAILABLE)
        kwargs.setdefault("recoverable", False)
        super().__init__(message, feed_url=feed_url, context=context, **kwargs)


class EmptyFeedError(FeedError):
    """Document contained neither RSS items nor Atom entries."""

    def __init__(self, message: str, feed_url: Optional[str] = None, **kwargs):
        kwargs.setdefault("error_code", ErrorCode.FEED_EMPTY)
        kwargs.setdefault("recoverable", False)
        super().__init__(message, feed_url=feed_url, **kwargs)


class MalformedItemError(FeedSentryError):
    """A single feed item lacked a required field or could not be read."""

    def __init__(self, message: str, field_name: Optional[str] = None, **kwargs):
        context = kwargs.get("context", {})
        if field_name:
            context["field_name"] = field_name

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.CONTENT_MALFORMED_ITEM),
            context=context,
            user_message=kwargs.get("user_message", f"Skipped feed item: {message}"),
            recoverable=kwargs.get("recoverable", True),
            **_passthrough(kwargs),
        )


class ValidationError(FeedSentryError):
    """Data validation errors."""

    def __init__(self, message: str, field_name: Optional[str] = None, **kwargs):
        """Initialize validation error.

        Args:
            message: Error message
            field_name: Field name that failed validation
            **kwargs: Additional arguments for FeedSentryError
        """
        context = kwargs.get("context", {})
        if field_name:
            context["field_name"] = field_name

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.VALIDATION_INVALID_FORMAT),
            context=context,
            user_message=kwargs.get(
                "user_message", f"Invalid {field_name or 'input'}: {message}"
            ),
            recoverable=kwargs.get("recoverable", False),
            **_passthrough(kwargs),
        )


class CollectionError(FeedSentryError):
    """Collection-level failures that warrant a restart of the collector."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.COLLECTION_FAILED),
            context=kwargs.get("context", {}),
            user_message=kwargs.get("user_message", f"Collection failed: {message}"),
            recoverable=kwargs.get("recoverable", True),
            **_passthrough(kwargs),
        )


class StaleCollectionError(CollectionError):
    """No successful round within the staleness threshold."""

    def __init__(self, message: str, seconds_since_success: float = 0.0, **kwargs):
        context = kwargs.pop("context", {})
        context["seconds_since_success"] = round(seconds_since_success, 1)
        kwargs.setdefault("error_code", ErrorCode.COLLECTION_STALE)
        super().__init__(message, context=context, **kwargs)


class ConsecutiveFailureLimitExceeded(CollectionError):
    """Too many rounds in a row ended unsuccessfully."""

    def __init__(self, message: str, error_count: int = 0, **kwargs):
        context = kwargs.pop("context", {})
        context["consecutive_errors"] = error_count
        kwargs.setdefault("error_code", ErrorCode.COLLECTION_FAILURE_LIMIT)
        super().__init__(message, context=context, **kwargs)


def is_retryable_error(exception: Exception) -> bool:
    """Check if an error is worth retrying.

    Args:
        exception: Exception raised by a fetch attempt

    Returns:
        True if the error is potentially retryable
    """
    if not isinstance(exception, FeedSentryError):
        return False

    if not exception.recoverable:
        return False

    # Network and temporary errors are retryable
    retryable_codes = {
        ErrorCode.FEED_NETWORK_ERROR,
        ErrorCode.FEED_FETCH_TIMEOUT,
        ErrorCode.FEED_HTTP_ERROR,
        ErrorCode.DATABASE_CONNECTION,
    }

    return exception.error_code in retryable_codes
