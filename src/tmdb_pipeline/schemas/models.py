"""
Message schemas for the two queue topics and the push endpoint.

Records stay typed throughout the pipeline and are flattened to the
schema-neutral field mapping the encoder expects only through
``to_fields()``.
"""

from datetime import date
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from tmdb_pipeline.common.export_date import format_export_date


class TriggerRecord(BaseModel):
    """One identifier from a bulk export file, published to the trigger topic.

    Example:
        >>> TriggerRecord(id=550, type="movie", export_date=date(2024, 7, 1)).to_fields()
        {'id': 550, 'type': 'movie', 'export_date': '2024-07-01'}
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., description="TMDB entity id")
    type: str = Field(..., description="Export unit name, e.g. movie", min_length=1)
    export_date: date = Field(..., description="Export snapshot date")

    def to_fields(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "export_date": format_export_date(self.export_date),
        }


class DetailRequest(BaseModel):
    """Entity to fan out for, as carried in a push message's data."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., strict=True, description="TMDB entity id, a JSON integer")
    type: str = Field(..., description="Entity type, must be present in the endpoint catalog")
    export_date: date = Field(..., description="Export snapshot date")

    @field_validator("type")
    @classmethod
    def validate_type(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("type cannot be empty or whitespace")
        return v.strip()


class DetailRecord(BaseModel):
    """One detail facet for one entity, published to the detail topic."""

    model_config = ConfigDict(frozen=True)

    id: int
    type: str
    export_date: date
    response_type: str = Field(..., description="Detail facet, e.g. credits or images")
    response_json_string: str = Field(..., description="Response body, verbatim")

    @classmethod
    def from_response(
        cls, request: DetailRequest, response_type: str, body: str
    ) -> "DetailRecord":
        return cls(
            id=request.id,
            type=request.type,
            export_date=request.export_date,
            response_type=response_type,
            response_json_string=body,
        )

    def to_fields(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "export_date": format_export_date(self.export_date),
            "response_type": self.response_type,
            "response_json_string": self.response_json_string,
        }


class PushMessage(BaseModel):
    """The ``message`` object of a push delivery."""

    data: str = Field(..., description="Base64 encoded JSON DetailRequest")
    message_id: str | None = Field(
        default=None, validation_alias=AliasChoices("message_id", "messageId")
    )
    publish_time: str | None = Field(
        default=None, validation_alias=AliasChoices("publish_time", "publishTime")
    )
    attributes: dict[str, str] = Field(default_factory=dict)


class PushEnvelope(BaseModel):
    """Body of ``POST /api/v1/export`` as delivered by a push subscription."""

    message: PushMessage
    subscription: str = ""
