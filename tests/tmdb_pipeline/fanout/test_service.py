"""Tests for DetailExportService."""

import json
from datetime import date

import pytest

from core.errors.exceptions import EncodingError, NetworkError, ValidationError
from tmdb_pipeline.common.encoder import load_detail_encoder
from tmdb_pipeline.fanout.catalog import EndpointCatalog
from tmdb_pipeline.fanout.fetcher import DetailFetcher
from tmdb_pipeline.fanout.service import DetailExportService, ExportSummary
from tmdb_pipeline.schemas.models import DetailRequest

TOPIC = "tmdb-detail"
CATALOG = EndpointCatalog.from_mapping(
    {
        "movie": {
            "details": "https://api.themoviedb.org/3/movie/{id}",
            "credits": "https://api.themoviedb.org/3/movie/{id}/credits",
        },
        "tv_network": {},
    }
)
REQUEST = DetailRequest(id=786892, type="movie", export_date=date(2024, 7, 1))


@pytest.fixture
def encoder():
    return load_detail_encoder()


class TestExportSummary:
    def test_text(self):
        summary = ExportSummary(request_count=2, message_count=2, failure_count=0)

        assert summary.to_text() == "API Requests: 2, Messages Sent: 2, Failed Messages: 0"


class TestDetailExportService:
    @pytest.mark.asyncio
    async def test_publishes_one_record_per_facet(
        self, encoder, fake_producer, make_response, make_session
    ):
        session = make_session(
            make_response(200, text='{"id":786892,"title":"Furiosa"}'),
            make_response(200, text='{"cast":[{"name":"Anya Taylor-Joy"}]}'),
        )
        service = DetailExportService(
            CATALOG, DetailFetcher(session, "k"), fake_producer, TOPIC, encoder=encoder
        )

        summary = await service.handle(REQUEST)

        assert summary == ExportSummary(request_count=2, message_count=2, failure_count=0)
        assert [topic for topic, _ in fake_producer.published] == [TOPIC, TOPIC]
        records = [encoder.decode(payload) for _, payload in fake_producer.published]
        assert records[0] == {
            "id": 786892,
            "type": "movie",
            "export_date": "2024-07-01",
            "response_type": "details",
            "response_json_string": '{"id":786892,"title":"Furiosa"}',
        }
        assert records[1]["response_type"] == "credits"
        assert json.loads(records[1]["response_json_string"]) == {
            "cast": [{"name": "Anya Taylor-Joy"}]
        }

    @pytest.mark.asyncio
    async def test_unknown_type_rejected_before_fetching(self, encoder, fake_producer, make_session):
        session = make_session()
        service = DetailExportService(
            CATALOG, DetailFetcher(session, "k"), fake_producer, TOPIC, encoder=encoder
        )
        request = DetailRequest(id=1, type="spaceship", export_date=date(2024, 7, 1))

        with pytest.raises(ValidationError, match="Unable to find type 'spaceship'"):
            await service.handle(request)

        session.get.assert_not_called()
        assert fake_producer.published == []

    @pytest.mark.asyncio
    async def test_type_without_endpoints_rejected(self, encoder, fake_producer, make_session):
        service = DetailExportService(
            CATALOG, DetailFetcher(make_session(), "k"), fake_producer, TOPIC, encoder=encoder
        )

        with pytest.raises(ValidationError):
            await service.handle(DetailRequest(id=1, type="tv_network", export_date=date(2024, 7, 1)))

    @pytest.mark.asyncio
    async def test_failed_fetch_publishes_nothing(
        self, encoder, fake_producer, make_response, make_session
    ):
        session = make_session(
            make_response(200, text="{}"),
            make_response(503, text="Service Unavailable"),
        )
        service = DetailExportService(
            CATALOG, DetailFetcher(session, "k"), fake_producer, TOPIC, encoder=encoder
        )

        with pytest.raises(NetworkError):
            await service.handle(REQUEST)

        assert fake_producer.published == []

    @pytest.mark.asyncio
    async def test_publish_failures_are_counted(
        self, encoder, make_producer, make_response, make_session
    ):
        producer = make_producer(fail_indexes={1})
        session = make_session(make_response(200, text="{}"), make_response(200, text="[]"))
        service = DetailExportService(
            CATALOG, DetailFetcher(session, "k"), producer, TOPIC, encoder=encoder
        )

        summary = await service.handle(REQUEST)

        assert summary == ExportSummary(request_count=2, message_count=2, failure_count=1)
        assert producer.awaited == 2

    @pytest.mark.asyncio
    async def test_schema_error_fails_every_request(self, fake_producer, make_session):
        session = make_session()
        error = EncodingError("Invalid Avro schema: unknown type")
        service = DetailExportService(
            CATALOG, DetailFetcher(session, "k"), fake_producer, TOPIC, schema_error=error
        )

        with pytest.raises(EncodingError, match="Invalid Avro schema"):
            await service.handle(REQUEST)

        session.get.assert_not_called()
        assert fake_producer.published == []

    def test_requires_encoder_or_schema_error(self, fake_producer, make_session):
        with pytest.raises(ValueError):
            DetailExportService(CATALOG, DetailFetcher(make_session(), "k"), fake_producer, TOPIC)
