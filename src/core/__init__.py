"""
Core library: reusable, domain-agnostic components.

Modules:
    errors      - Error classification and exception hierarchy
    logging     - Structured JSON logging with context propagation
    download    - Async HTTP fetch helpers and streaming gzip decoding
    utils       - JSON serialization helpers

Design Principles:
    - No dependencies on the message transport or the TMDB domain
    - All modules are independently testable
    - Async-first where applicable
"""

from .types import ErrorCategory

__version__ = "0.1.0"

__all__ = [
    "ErrorCategory",
]
