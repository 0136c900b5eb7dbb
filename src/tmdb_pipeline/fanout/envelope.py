"""Decoding of push-delivered queue messages into DetailRequests."""

import base64
import binascii

import pydantic

from core.errors.exceptions import ValidationError
from tmdb_pipeline.schemas.models import DetailRequest, PushEnvelope


def _first_error(exc: pydantic.ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "body"
    return f"{location}: {first.get('msg', 'invalid')}"


def parse_push_envelope(body: bytes | str) -> PushEnvelope:
    """
    Parse the outer push envelope.

    Raises:
        ValidationError: Body is not a JSON envelope with ``message.data``
    """
    try:
        return PushEnvelope.model_validate_json(body)
    except pydantic.ValidationError as e:
        raise ValidationError(
            f"Unable to parse push envelope JSON: {_first_error(e)}", cause=e
        ) from e


def decode_detail_request(envelope: PushEnvelope) -> DetailRequest:
    """
    Decode ``message.data`` (base64 JSON) into a DetailRequest.

    Raises:
        ValidationError: data is not base64, or not a valid DetailRequest
    """
    try:
        raw = base64.b64decode(envelope.message.data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationError("Failed to decode 'message.data' base64 string", cause=e) from e

    try:
        return DetailRequest.model_validate_json(raw)
    except pydantic.ValidationError as e:
        raise ValidationError(
            f"Unable to parse export request JSON: {_first_error(e)}", cause=e
        ) from e


def decode_push_envelope(body: bytes | str) -> DetailRequest:
    """Envelope body straight to the DetailRequest it carries."""
    return decode_detail_request(parse_push_envelope(body))
