"""
HTTP surface of the Detail Fan-out service.

Endpoints:
- POST /api/v1/export - push subscription delivery, one DetailRequest each
- GET /health/live    - liveness probe
- GET /metrics        - Prometheus metrics

Status mapping: ValidationError -> 400, any other failure -> 500, both
with a ``{"code": ..., "message": ...}`` JSON body. A 2xx tells the push
subscription the message is done; anything else makes it redeliver.
"""

import asyncio
import logging
import time
import uuid

from aiohttp import web
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from config.config import FanoutConfig
from core.download.http_client import create_session
from core.errors.exceptions import (
    EncodingError,
    PipelineError,
    RequestTimeoutError,
    ValidationError,
)
from core.logging.context_managers import LogContext
from core.logging.utilities import log_exception
from tmdb_pipeline.common.encoder import load_detail_encoder
from tmdb_pipeline.common.metrics import (
    export_request_duration_seconds,
    export_requests_total,
)
from tmdb_pipeline.common.producer import MessageProducer
from tmdb_pipeline.fanout.catalog import EndpointCatalog
from tmdb_pipeline.fanout.envelope import decode_detail_request, parse_push_envelope
from tmdb_pipeline.fanout.fetcher import DetailFetcher
from tmdb_pipeline.fanout.service import DetailExportService

logger = logging.getLogger(__name__)

EXPORT_ROUTE = "/api/v1/export"
MAX_BODY_BYTES = 1 << 20
MAX_HEADER_BYTES = 1 << 20

SERVICE_KEY = web.AppKey("service", DetailExportService)
TIMEOUT_KEY = web.AppKey("timeout_seconds", float)


def error_response(status: int, message: str) -> web.Response:
    return web.json_response({"code": status, "message": message}, status=status)


@web.middleware
async def error_middleware(request: web.Request, handler) -> web.StreamResponse:
    """Turn anything a handler lets escape into a JSON error; the server keeps serving."""
    try:
        return await handler(request)
    except web.HTTPException as e:
        if e.status < 400:
            raise
        return error_response(e.status, e.reason)
    except Exception as e:
        export_requests_total.labels(outcome="failed").inc()
        log_exception(
            logger,
            e,
            "Unhandled error while handling request",
            http_method=request.method,
            api_endpoint=request.path,
        )
        return error_response(500, "Internal server error")


def _rejected(error: ValidationError, subscription: str | None = None) -> web.Response:
    export_requests_total.labels(outcome="rejected").inc()
    logger.debug(
        "Rejected export request",
        extra={"error_message": str(error), "subscription": subscription},
    )
    return error_response(error.http_status, str(error))


def _failed(error: PipelineError, subscription: str | None = None) -> web.Response:
    export_requests_total.labels(outcome="failed").inc()
    log_exception(
        logger,
        error,
        "Export request failed",
        include_traceback=False,
        subscription=subscription,
    )
    return error_response(error.http_status, str(error))


def _deadline_exceeded(timeout_seconds: float, cause: BaseException) -> RequestTimeoutError:
    return RequestTimeoutError(f"Export request exceeded {timeout_seconds}s deadline", cause=cause)


async def handle_export(request: web.Request) -> web.Response:
    start_time = time.perf_counter()
    try:
        return await _export(request)
    finally:
        export_request_duration_seconds.observe(time.perf_counter() - start_time)


async def _export(request: web.Request) -> web.Response:
    service = request.app[SERVICE_KEY]
    timeout_seconds = request.app[TIMEOUT_KEY]
    # Body read and fan-out share one deadline, so a trickled body cannot hold the connection
    deadline = asyncio.get_running_loop().time() + timeout_seconds

    try:
        async with asyncio.timeout_at(deadline):
            body = await request.read()
        envelope = parse_push_envelope(body)
    except TimeoutError as e:
        return _failed(_deadline_exceeded(timeout_seconds, e))
    except ValidationError as e:
        return _rejected(e)

    request_id = envelope.message.message_id or uuid.uuid4().hex
    with LogContext(request_id=request_id):
        try:
            detail_request = decode_detail_request(envelope)
            async with asyncio.timeout_at(deadline):
                summary = await service.handle(detail_request)
        except TimeoutError as e:
            return _failed(_deadline_exceeded(timeout_seconds, e), envelope.subscription)
        except ValidationError as e:
            return _rejected(e, envelope.subscription)
        except PipelineError as e:
            return _failed(e, envelope.subscription)

    export_requests_total.labels(outcome="ok").inc()
    return web.Response(text=summary.to_text())


async def handle_liveness(request: web.Request) -> web.Response:
    return web.Response(text="ok")


async def handle_metrics(request: web.Request) -> web.Response:
    return web.Response(body=generate_latest(), headers={"Content-Type": CONTENT_TYPE_LATEST})


def create_app(service: DetailExportService, timeout_seconds: float = 10) -> web.Application:
    """Create aiohttp application with the export, health and metrics routes."""
    app = web.Application(
        middlewares=[error_middleware],
        client_max_size=MAX_BODY_BYTES,
        handler_args={
            "max_line_size": MAX_HEADER_BYTES,
            "max_field_size": MAX_HEADER_BYTES,
        },
    )
    app[SERVICE_KEY] = service
    app[TIMEOUT_KEY] = float(timeout_seconds)
    app.router.add_post(EXPORT_ROUTE, handle_export)
    app.router.add_get("/health/live", handle_liveness)
    app.router.add_get("/metrics", handle_metrics)
    return app


def build_service(
    config: FanoutConfig, producer: MessageProducer, fetcher: DetailFetcher
) -> DetailExportService:
    """
    Wire the service from configuration.

    Raises:
        ConfigurationError: API_ENDPOINT_LIST missing or undecodable
    """
    catalog = EndpointCatalog.from_base64(config.endpoint_list)
    logger.info(
        "Loaded endpoint catalog",
        extra={"operation": "load_catalog", "entity_types": catalog.entity_types},
    )

    try:
        encoder = load_detail_encoder(config.topic_schema)
    except EncodingError as e:
        # Every export request fails with this until the configuration is fixed
        log_exception(logger, e, "Unable to load detail topic schema", include_traceback=False)
        return DetailExportService(
            catalog, fetcher, producer, config.topic, schema_error=e
        )

    return DetailExportService(catalog, fetcher, producer, config.topic, encoder=encoder)


async def run_service(config: FanoutConfig, shutdown_event: asyncio.Event) -> None:
    """Serve until ``shutdown_event`` is set, then drain and close everything."""
    producer = MessageProducer(config.kafka, config.producer, client_id="tmdb-fanout")
    session = create_session(timeout_total=config.fetch_timeout_seconds)
    fetcher = DetailFetcher(session, config.api_key, config.fetch_timeout_seconds)
    runner: web.AppRunner | None = None

    try:
        service = build_service(config, producer, fetcher)
        await producer.start()

        runner = web.AppRunner(create_app(service, config.timeout_seconds), access_log=None)
        await runner.setup()
        site = web.TCPSite(runner, "0.0.0.0", config.port)
        await site.start()
        logger.info(
            "Fan-out service listening",
            extra={
                "port": config.port,
                "timeout_seconds": config.timeout_seconds,
                "topic": config.topic,
            },
        )

        await shutdown_event.wait()
        logger.info("Shutdown signal received, stopping fan-out service")

    finally:
        if runner is not None:
            await runner.cleanup()
        await session.close()
        await producer.stop()
