"""Tests for the json.dumps default hook."""

import json
from datetime import UTC, date, datetime
from pathlib import Path

from core.types import ErrorCategory
from core.utils.json_serializers import json_serializer
from tmdb_pipeline.schemas.models import TriggerRecord


class TestJsonSerializer:
    def test_date(self):
        assert json_serializer(date(2024, 7, 1)) == "2024-07-01"

    def test_datetime(self):
        assert json_serializer(datetime(2024, 7, 1, 8, 0, tzinfo=UTC)) == "2024-07-01T08:00:00+00:00"

    def test_pydantic_model(self):
        record = TriggerRecord(id=1, type="movie", export_date=date(2024, 7, 1))

        assert json_serializer(record) == {"id": 1, "type": "movie", "export_date": "2024-07-01"}

    def test_enum(self):
        assert json_serializer(ErrorCategory.TRANSIENT) == "transient"

    def test_path(self):
        assert json_serializer(Path("/mnt/bucket/export_date=2024-07-01")) == "/mnt/bucket/export_date=2024-07-01"

    def test_bytes_with_invalid_utf8(self):
        assert json_serializer(b"ok\xff") == "ok�"

    def test_fallback_to_str(self):
        class Topic:
            def __str__(self):
                return "tmdb-trigger"

        assert json_serializer(Topic()) == "tmdb-trigger"

    def test_as_dumps_default(self):
        payload = {"export_date": date(2024, 7, 1), "path": Path("a/b")}

        assert json.loads(json.dumps(payload, default=json_serializer)) == {
            "export_date": "2024-07-01",
            "path": "a/b",
        }
