"""Tests for push envelope decoding."""

import base64
import json
from datetime import date

import pytest

from core.errors.exceptions import ValidationError
from tmdb_pipeline.fanout.envelope import (
    decode_detail_request,
    decode_push_envelope,
    parse_push_envelope,
)


def _envelope(payload, **message) -> bytes:
    data = base64.b64encode(payload if isinstance(payload, bytes) else json.dumps(payload).encode()).decode()
    return json.dumps(
        {"message": {"data": data, **message}, "subscription": "projects/p/subscriptions/tmdb-detail"}
    ).encode()


class TestDecodePushEnvelope:
    def test_decodes_request(self):
        body = _envelope({"id": 786892, "type": "movie", "export_date": "2024-07-01"})

        request = decode_push_envelope(body)

        assert request.id == 786892
        assert request.type == "movie"
        assert request.export_date == date(2024, 7, 1)

    def test_keeps_message_metadata(self):
        envelope = parse_push_envelope(
            _envelope({"id": 1, "type": "movie", "export_date": "2024-07-01"}, message_id="99")
        )

        assert envelope.message.message_id == "99"
        assert envelope.subscription == "projects/p/subscriptions/tmdb-detail"
        assert decode_detail_request(envelope).id == 1

    @pytest.mark.parametrize("body", [b"", b"not json", b'{"subscription":"s"}', b'{"message":{"data":1}}'])
    def test_bad_envelope(self, body):
        with pytest.raises(ValidationError, match="push envelope"):
            decode_push_envelope(body)

    def test_data_not_base64(self):
        body = json.dumps({"message": {"data": "@@@"}}).encode()

        with pytest.raises(ValidationError, match="base64"):
            decode_push_envelope(body)

    @pytest.mark.parametrize(
        "payload",
        [
            b"not json",
            {"type": "movie", "export_date": "2024-07-01"},
            {"id": "x", "type": "movie", "export_date": "2024-07-01"},
            {"id": "786892", "type": "movie", "export_date": "2024-07-01"},
            {"id": 786892.5, "type": "movie", "export_date": "2024-07-01"},
            {"id": 1, "type": "movie"},
        ],
    )
    def test_bad_request_payload(self, payload):
        with pytest.raises(ValidationError, match="export request"):
            decode_push_envelope(_envelope(payload))
