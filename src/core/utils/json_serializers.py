"""Shared JSON serialization helpers for log entries and response bodies."""

from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel


def json_serializer(obj: Any) -> Any:
    """
    ``default=`` hook for ``json.dumps``.

    - datetime/date -> ISO 8601 string (export dates render as YYYY-MM-DD)
    - pydantic models -> their JSON-mode dump
    - Enum -> value
    - Path -> string
    - bytes -> UTF-8 text (replacement on invalid bytes)
    - Everything else -> str()
    """
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, bytes):
        return obj.decode("utf-8", errors="replace")
    return str(obj)


__all__ = ["json_serializer"]
