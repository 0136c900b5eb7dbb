"""
Exception hierarchy for the export pipeline.

Errors come in three scopes, and the scope decides what a failure costs:

- startup: the process cannot run (ConfigurationError)
- unit of work: one bulk file or one detail request is abandoned
  (NetworkError, DecompressionError, EncodingError, RequestTimeoutError)
- record: one line or one message is counted as failed and work goes on
  (ParseError, PublishError)

ValidationError rejects an inbound request as the client's fault. Every
class carries the HTTP status the fan-out service answers with.
"""

import asyncio

# ErrorCategory lives in core.types so there is exactly one enum class
from core.types import ErrorCategory


class PipelineError(Exception):
    """
    Base exception for all pipeline errors.

    Attributes:
        message: Human-readable error description
        category: Error classification
        http_status: Status returned when this error ends an HTTP request
        cause: Original exception if wrapping
        context: Additional context dict for debugging
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN
    http_status: int = 500

    def __init__(
        self,
        message: str,
        cause: BaseException | None = None,
        context: dict | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.context = context or {}

    @property
    def is_retryable(self) -> bool:
        """Whether a later run or redelivery could succeed."""
        return self.category is not ErrorCategory.PERMANENT

    def __str__(self) -> str:
        if self.cause is None:
            return self.message
        return f"{self.message} | Caused by: {self.cause}"


class ConfigurationError(PipelineError):
    """Missing or malformed configuration input. Fatal at startup."""

    category = ErrorCategory.PERMANENT


class NetworkError(PipelineError):
    """Outbound fetch failed (connection error, timeout or non-2xx status)."""

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
        category: ErrorCategory | None = None,
        cause: BaseException | None = None,
        context: dict | None = None,
    ):
        super().__init__(message, cause, context)
        self.url = url
        self.status_code = status_code
        if category is None:
            # No status means the request never completed
            category = (
                classify_http_status(status_code)
                if status_code is not None
                else ErrorCategory.TRANSIENT
            )
        self.category = category


class DecompressionError(PipelineError):
    """Downloaded payload is not a valid (or complete) gzip stream."""

    category = ErrorCategory.PERMANENT


class EncodingError(PipelineError):
    """Record does not conform to its schema, or the schema itself is invalid."""

    category = ErrorCategory.PERMANENT


class RequestTimeoutError(PipelineError):
    """Per-request deadline exceeded."""

    category = ErrorCategory.TRANSIENT


class ParseError(PipelineError):
    """A single input line could not be parsed into a record."""

    category = ErrorCategory.PERMANENT


class PublishError(PipelineError):
    """A single message could not be published."""

    category = ErrorCategory.TRANSIENT


class ValidationError(PipelineError):
    """Inbound request is malformed or refers to an unknown entity type."""

    category = ErrorCategory.PERMANENT
    http_status = 400


def classify_http_status(status_code: int) -> ErrorCategory:
    """
    Category of an upstream HTTP status.

    401 is AUTH (bad API key), 429 and 5xx are TRANSIENT, other 4xx are
    PERMANENT. Anything else, including 2xx, is UNKNOWN.
    """
    if status_code == 401:
        return ErrorCategory.AUTH
    if status_code == 429 or 500 <= status_code < 600:
        return ErrorCategory.TRANSIENT
    if 400 <= status_code < 500:
        return ErrorCategory.PERMANENT
    return ErrorCategory.UNKNOWN


# Substrings of third-party error names/messages that indicate a dropped connection
_CONNECTION_MARKERS = (
    "connection refused",
    "connection reset",
    "connectionerror",
    "no route to host",
    "name resolution",
    "broken pipe",
)


def classify_exception(exc: BaseException) -> ErrorCategory:
    """Category of any exception; pipeline errors report their own."""
    if isinstance(exc, PipelineError):
        return exc.category
    if isinstance(exc, (asyncio.TimeoutError, ConnectionError)):
        return ErrorCategory.TRANSIENT

    text = f"{type(exc).__name__} {exc}".lower()
    if "timeout" in text or any(marker in text for marker in _CONNECTION_MARKERS):
        return ErrorCategory.TRANSIENT
    return ErrorCategory.UNKNOWN


def wrap_exception(
    exc: BaseException,
    default_class: type[PipelineError] = PipelineError,
    context: dict | None = None,
) -> PipelineError:
    """
    Return ``exc`` as a PipelineError.

    Pipeline errors pass through (with ``context`` merged in); anything else
    is wrapped in ``default_class`` with the original kept as ``cause``.
    """
    if isinstance(exc, PipelineError):
        exc.context.update(context or {})
        return exc
    return default_class(str(exc) or type(exc).__name__, cause=exc, context=context)
