"""
Record encoder for the queue's Avro schemas.

Messages are the Avro JSON encoding of one datum, which is what a
schema-validated topic expects from a JSON-encoding publisher. Business
code works with typed records and only hands a plain field mapping to
``RecordEncoder.encode``.
"""

import base64
import binascii
import io
import json
import logging
from pathlib import Path
from typing import Any

import fastavro
from fastavro.schema import SchemaParseException
from fastavro.validation import ValidationError as AvroValidationError

from core.errors.exceptions import EncodingError

logger = logging.getLogger(__name__)

SCHEMA_DIR = Path(__file__).resolve().parent.parent / "schemas"
TRIGGER_SCHEMA_FILE = SCHEMA_DIR / "trigger_topic_schema.avsc"
DETAIL_SCHEMA_FILE = SCHEMA_DIR / "detail_topic_schema.avsc"


class RecordEncoder:
    """
    Validate and serialize field mappings against one parsed Avro schema.

    Parsing happens once, in the constructor; the instance holds no other
    state and can be shared between concurrent requests.

    Example:
        encoder = RecordEncoder.from_file(TRIGGER_SCHEMA_FILE)
        payload = encoder.encode({"id": 1, "type": "movie", "export_date": "2024-07-01"})
    """

    def __init__(self, schema: dict[str, Any]):
        try:
            self._schema = fastavro.parse_schema(schema)
        except (SchemaParseException, ValueError, TypeError, KeyError) as e:
            raise EncodingError(f"Invalid Avro schema: {e}", cause=e) from e

        self.name = self._schema.get("name", "") if isinstance(self._schema, dict) else ""

    @classmethod
    def from_text(cls, text: str) -> "RecordEncoder":
        try:
            schema = json.loads(text)
        except json.JSONDecodeError as e:
            raise EncodingError("Schema document is not valid JSON", cause=e) from e
        return cls(schema)

    @classmethod
    def from_file(cls, path: Path) -> "RecordEncoder":
        try:
            text = Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise EncodingError(f"Unable to read schema file {path}", cause=e) from e
        return cls.from_text(text)

    @classmethod
    def from_base64(cls, value: str) -> "RecordEncoder":
        """Schema delivered as base64 text, as it is through the environment."""
        try:
            text = base64.b64decode(value, validate=True).decode("utf-8")
        except (binascii.Error, ValueError) as e:
            raise EncodingError("Failed to decode base64 topic schema", cause=e) from e
        return cls.from_text(text)

    def encode(self, fields: dict[str, Any]) -> bytes:
        """
        Serialize one datum in Avro JSON encoding.

        Raises:
            EncodingError: Missing required field or type mismatch
        """
        buffer = io.StringIO()
        try:
            fastavro.json_writer(
                buffer,
                self._schema,
                [fields],
                validator=True,
                strict_allow_default=True,
            )
        except (AvroValidationError, ValueError, TypeError, KeyError) as e:
            raise EncodingError(
                f"Record does not conform to schema {self.name or '<anonymous>'}: {e}",
                cause=e,
                context={"fields": sorted(fields)},
            ) from e
        return buffer.getvalue().rstrip("\n").encode("utf-8")

    def decode(self, payload: bytes) -> dict[str, Any]:
        """Read one datum back from its Avro JSON encoding."""
        try:
            records = list(fastavro.json_reader(io.StringIO(payload.decode("utf-8")), self._schema))
        except (ValueError, TypeError, KeyError, UnicodeDecodeError) as e:
            raise EncodingError(f"Payload does not match schema {self.name}", cause=e) from e
        if len(records) != 1:
            raise EncodingError(f"Expected exactly one record, got {len(records)}")
        return records[0]


def load_trigger_encoder() -> RecordEncoder:
    """Encoder for the bundled trigger topic schema."""
    return RecordEncoder.from_file(TRIGGER_SCHEMA_FILE)


def load_detail_encoder(encoded_schema: str | None = None) -> RecordEncoder:
    """Encoder for a base64 detail schema, or the bundled one when none is configured."""
    if encoded_schema:
        return RecordEncoder.from_base64(encoded_schema)
    logger.debug("No topic schema configured, using bundled detail schema")
    return RecordEncoder.from_file(DETAIL_SCHEMA_FILE)
