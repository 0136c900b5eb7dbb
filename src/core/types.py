"""
Core types used across modules.

This module provides base enums shared across the core library to ensure
consistency when classifying failures.
"""

from enum import Enum


class ErrorCategory(Enum):
    """
    Classification of error types for handling decisions.

    Categories:
        TRANSIENT: Temporary failures that may succeed on a later run
                   (e.g., network timeouts, 429/503 errors)
        AUTH: Authentication failures (e.g., 401 errors, bad bearer token)
        PERMANENT: Failures that won't succeed on retry
                   (e.g., 404, validation errors, configuration issues)
        UNKNOWN: Unclassified errors
    """

    TRANSIENT = "transient"
    AUTH = "auth"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"


__all__ = [
    "ErrorCategory",
]
