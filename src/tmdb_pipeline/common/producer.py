"""Queue publisher built on aiokafka with a two-phase submit/await protocol."""

import asyncio
import logging
import time
from typing import Any

from aiokafka import AIOKafkaProducer
from aiokafka.errors import KafkaError

from config.config import KafkaConfig
from core.errors.exceptions import PipelineError, PublishError, wrap_exception
from tmdb_pipeline.common.kafka_config import build_kafka_security_config
from tmdb_pipeline.common.metrics import (
    message_bytes_produced_total,
    record_messages_produced,
    update_connection_status,
)
from tmdb_pipeline.common.types import PendingPublish, PublishOutcome

logger = logging.getLogger(__name__)


class MessageProducer:
    """
    Async message producer shared by every publish call in a process.

    Publishing is split in two so that network latency for N messages is
    paid once rather than N times:

        pending = await producer.submit_all(topic, payloads)   # enqueue all
        outcome = await producer.await_all(pending)            # then drain

    Messages are unkeyed; ordering across messages comes from the topic
    being provisioned with a single partition.
    """

    def __init__(
        self,
        config: KafkaConfig,
        producer_config: dict[str, Any] | None = None,
        client_id: str = "tmdb-pipeline",
    ):
        self.config = config
        self.client_id = client_id
        self.producer_config = config.get_producer_config(producer_config)
        self._producer: AIOKafkaProducer | None = None
        self._started = False

        logger.info(
            "Initialized message producer",
            extra={
                "bootstrap_servers": config.bootstrap_servers,
                "security_protocol": config.security_protocol,
            },
        )

    def _resolve_acks_and_idempotence(self) -> tuple[Any, bool]:
        """Resolve acks value and idempotence setting, enforcing mutual constraints."""
        acks_value = self.producer_config.get("acks", "all")
        if isinstance(acks_value, str) and acks_value.isdigit():
            acks_value = int(acks_value)

        enable_idempotence = bool(self.producer_config.get("enable_idempotence", True))
        if enable_idempotence and acks_value != "all":
            logger.warning(
                "Overriding acks to 'all' because enable_idempotence=True requires it",
                extra={"operation": "producer_config"},
            )
            acks_value = "all"

        return acks_value, enable_idempotence

    def _build_kafka_config(self) -> dict[str, Any]:
        acks_value, enable_idempotence = self._resolve_acks_and_idempotence()

        kafka_config: dict[str, Any] = {
            "bootstrap_servers": self.config.bootstrap_servers,
            "client_id": self.client_id,
            "request_timeout_ms": self.config.request_timeout_ms,
            "metadata_max_age_ms": self.config.metadata_max_age_ms,
            "connections_max_idle_ms": self.config.connections_max_idle_ms,
            "acks": acks_value,
            "enable_idempotence": enable_idempotence,
            "retry_backoff_ms": self.producer_config.get("retry_backoff_ms", 1000),
        }

        if "linger_ms" in self.producer_config:
            kafka_config["linger_ms"] = self.producer_config["linger_ms"]
        if "batch_size" in self.producer_config:
            kafka_config["max_batch_size"] = self.producer_config["batch_size"]
        if "compression_type" in self.producer_config:
            compression = self.producer_config["compression_type"]
            kafka_config["compression_type"] = None if compression == "none" else compression
        kafka_config["max_request_size"] = self.producer_config.get(
            "max_request_size", 10 * 1024 * 1024
        )

        kafka_config.update(build_kafka_security_config(self.config))
        return kafka_config

    async def start(self) -> None:
        if self._started:
            logger.warning("Producer already started, ignoring duplicate start call")
            return

        logger.info("Starting message producer")
        self._producer = AIOKafkaProducer(**self._build_kafka_config())
        try:
            await self._producer.start()
        except KafkaError as e:
            self._producer = None
            raise PublishError(
                f"Unable to connect to Kafka at {self.config.bootstrap_servers}", cause=e
            ) from e

        self._started = True
        update_connection_status(connected=True)
        logger.info(
            "Message producer started successfully",
            extra={"bootstrap_servers": self.config.bootstrap_servers},
        )

    async def stop(self) -> None:
        # Errors during stop are logged but not re-raised to avoid masking original exceptions
        if self._producer is None:
            logger.debug("Producer already stopped")
            return

        logger.info("Stopping message producer")
        try:
            if self._started:
                await self._producer.flush()
            await self._producer.stop()
            logger.info("Message producer stopped successfully")
        except Exception as e:
            logger.error(
                "Error stopping message producer",
                extra={"error_message": str(e)},
                exc_info=True,
            )
        finally:
            update_connection_status(connected=False)
            self._producer = None
            self._started = False

    async def __aenter__(self) -> "MessageProducer":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    @property
    def is_started(self) -> bool:
        return self._started and self._producer is not None

    async def publish(self, topic: str, payload: bytes) -> PendingPublish:
        """
        Enqueue one message without waiting for the broker.

        A message the client refuses outright (too large, buffer timeout)
        still yields a PendingPublish whose delivery carries the error, so
        it is counted as a failure when awaited like any other.
        """
        if not self.is_started:
            raise RuntimeError("Producer not started. Call start() first.")

        try:
            delivery = await self._producer.send(topic, value=payload)
        except KafkaError as e:
            delivery = asyncio.get_running_loop().create_future()
            delivery.set_exception(
                PublishError(f"Message rejected by producer for topic {topic}", cause=e)
            )

        message_bytes_produced_total.labels(topic=topic).inc(len(payload))
        return PendingPublish(topic=topic, size=len(payload), delivery=delivery)

    async def submit_all(self, topic: str, payloads: list[bytes]) -> list[PendingPublish]:
        """Issue every publish of a batch, in input order, before any is awaited."""
        return [await self.publish(topic, payload) for payload in payloads]

    async def await_all(self, pending: list[PendingPublish]) -> PublishOutcome:
        """
        Resolve every pending publish and tally the results.

        Failures are counted, never retried here; the client library has
        already applied its own delivery retries.
        """
        if not pending:
            return PublishOutcome()

        start_time = time.perf_counter()
        results = await asyncio.gather(
            *(item.delivery for item in pending), return_exceptions=True
        )

        outcome = PublishOutcome()
        per_topic: dict[str, list[int]] = {}
        first_error: PipelineError | None = None
        for item, result in zip(pending, results):
            counts = per_topic.setdefault(item.topic, [0, 0])
            if isinstance(result, BaseException):
                outcome.failure_count += 1
                counts[1] += 1
                first_error = first_error or wrap_exception(result, PublishError)
            else:
                outcome.success_count += 1
                counts[0] += 1

        for topic, (succeeded, failed) in per_topic.items():
            record_messages_produced(topic, succeeded, failed)

        duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
        if outcome.failure_count:
            logger.warning(
                "Publish batch completed with failures",
                extra={
                    "messages_published": outcome.success_count,
                    "messages_failed": outcome.failure_count,
                    "error_message": str(first_error),
                    "error_category": first_error.category.value,
                    "duration_ms": duration_ms,
                },
            )
        else:
            logger.debug(
                "Publish batch completed",
                extra={"messages_published": outcome.success_count, "duration_ms": duration_ms},
            )
        return outcome


__all__ = [
    "MessageProducer",
]
