"""
Error classification and exception hierarchy.

Provides:
- ErrorCategory enum for classifying errors
- PipelineError hierarchy for typed exceptions
- Classification utilities for error handling
"""

from core.errors.exceptions import (
    ConfigurationError,
    DecompressionError,
    EncodingError,
    # Enums
    ErrorCategory,
    NetworkError,
    ParseError,
    # Base classes
    PipelineError,
    PublishError,
    RequestTimeoutError,
    ValidationError,
    # Classification utilities
    classify_exception,
    classify_http_status,
    wrap_exception,
)

__all__ = [
    # Enums
    "ErrorCategory",
    # Base classes
    "PipelineError",
    # Startup
    "ConfigurationError",
    # Unit-of-work
    "NetworkError",
    "DecompressionError",
    "EncodingError",
    "RequestTimeoutError",
    # Record-scoped
    "ParseError",
    "PublishError",
    # Client
    "ValidationError",
    # Functions
    "classify_http_status",
    "classify_exception",
    "wrap_exception",
]
