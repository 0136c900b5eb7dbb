"""Queue record and push envelope schemas."""

from tmdb_pipeline.schemas.models import (
    DetailRecord,
    DetailRequest,
    PushEnvelope,
    PushMessage,
    TriggerRecord,
)

__all__ = [
    "DetailRecord",
    "DetailRequest",
    "PushEnvelope",
    "PushMessage",
    "TriggerRecord",
]
