"""
Bulk Exporter: daily TMDB ID export files to the trigger topic.

For every export unit (movie, person, ...) the exporter downloads the
day's gzip file, persists the decompressed newline-delimited JSON under
``<mount>/export_date=<date>/<unit>.json`` and publishes one TriggerRecord
per line.

Failure tiers:
    - A line that is not a JSON object with an integer ``id`` is counted
      and skipped.
    - A message the broker does not accept is counted, never retried.
    - Download, decompression, storage and encoding failures abort the run;
      the job runner's restart policy takes it from there.
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from datetime import date
from pathlib import Path

import aiohttp

from config.config import BackfillConfig
from core.download.streaming import download_gzip_to_file
from core.errors.exceptions import ParseError
from core.logging.context_managers import log_phase
from tmdb_pipeline.common.encoder import RecordEncoder
from tmdb_pipeline.common.export_date import format_export_date, format_file_date
from tmdb_pipeline.common.metrics import bulk_bytes_written_total, bulk_records_failed_total
from tmdb_pipeline.common.producer import MessageProducer
from tmdb_pipeline.common.types import PendingPublish, PublishOutcome
from tmdb_pipeline.schemas.models import TriggerRecord

logger = logging.getLogger(__name__)

DIRECTORY_MODE = 0o700


@dataclass
class UnitOutcome:
    """Result of exporting one bulk unit."""

    export_type: str
    output_path: Path
    bytes_written: int = 0
    lines_read: int = 0
    records_failed: int = 0
    messages_published: int = 0
    messages_failed: int = 0

    @property
    def publish_attempts(self) -> int:
        return self.messages_published + self.messages_failed


def create_output_path(mount_path: str | Path, export_date: date) -> Path:
    """
    Create (or reuse) the partition directory for one export date.

    Raises:
        OSError: The directory could not be created
    """
    output_path = Path(mount_path) / f"export_date={format_export_date(export_date)}"
    output_path.mkdir(mode=DIRECTORY_MODE, parents=True, exist_ok=True)
    return output_path


def bulk_export_url(host: str, unit: str, export_date: date) -> str:
    """URL of a daily export, e.g. ``http://files.tmdb.org/p/exports/movie_ids_07_01_2024.json.gz``."""
    return f"{host.rstrip('/')}/p/exports/{unit}_ids_{format_file_date(export_date)}.json.gz"


def parse_export_line(line: str, unit: str, export_date: date) -> TriggerRecord:
    """
    Build a TriggerRecord from one line of a bulk export file.

    Only ``id`` is carried over; the other fields of the line (title,
    popularity, ...) are left to the detail fetch.

    Raises:
        ParseError: Not a JSON object, or ``id`` missing or not an integer
    """
    try:
        data = json.loads(line)
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON: {e.msg}", cause=e) from e

    if not isinstance(data, dict):
        raise ParseError(f"Expected a JSON object, got {type(data).__name__}")

    entity_id = data.get("id")
    if isinstance(entity_id, bool) or not isinstance(entity_id, int):
        raise ParseError(f"Missing or non-integer id: {entity_id!r}")

    return TriggerRecord(id=entity_id, type=unit, export_date=export_date)


class BulkExporter:
    """
    Runs every configured export unit, one after another.

    Example:
        async with create_session(timeout_total=None) as session:
            exporter = BulkExporter(config, export_date, producer, encoder, session)
            outcomes = await exporter.run()
    """

    def __init__(
        self,
        config: BackfillConfig,
        export_date: date,
        producer: MessageProducer,
        encoder: RecordEncoder,
        session: aiohttp.ClientSession,
    ):
        self.config = config
        self.export_date = export_date
        self.producer = producer
        self.encoder = encoder
        self.session = session
        self.output_path: Path | None = None

    async def run(self) -> list[UnitOutcome]:
        self.output_path = create_output_path(self.config.bucket_mount_path, self.export_date)
        logger.info(
            "Starting bulk export",
            extra={
                "export_date": format_export_date(self.export_date),
                "export_types": list(self.config.export_types),
                "output_path": str(self.output_path),
                "topic": self.config.topic,
            },
        )

        outcomes = []
        for unit in self.config.export_types:
            outcomes.append(await self.export_unit(unit))

        logger.info(
            "Bulk export complete",
            extra={
                "export_date": format_export_date(self.export_date),
                "messages_published": sum(o.messages_published for o in outcomes),
                "messages_failed": sum(o.messages_failed for o in outcomes),
                "records_failed": sum(o.records_failed for o in outcomes),
            },
        )
        return outcomes

    async def export_unit(self, unit: str) -> UnitOutcome:
        """Download, persist and publish one export unit."""
        if self.output_path is None:
            self.output_path = create_output_path(self.config.bucket_mount_path, self.export_date)

        url = bulk_export_url(self.config.export_host, unit, self.export_date)
        destination = self.output_path / f"{unit}.json"
        outcome = UnitOutcome(export_type=unit, output_path=destination)
        start_time = time.perf_counter()

        with log_phase(logger, "download", export_type=unit):
            result = await download_gzip_to_file(
                url,
                destination,
                self.session,
                token=self.config.api_key,
                sock_read_timeout=self.config.sock_read_timeout_seconds,
            )
        outcome.bytes_written = result.bytes_written
        bulk_bytes_written_total.labels(export_type=unit).inc(result.bytes_written)

        logger.info(
            "Bulk file written",
            extra={
                "export_type": unit,
                "download_url": url,
                "output_path": str(destination),
                "bytes_written": result.bytes_written,
            },
        )

        pending = await self._submit_file(destination, unit, outcome)
        publish_outcome: PublishOutcome = await self.producer.await_all(pending)
        outcome.messages_published = publish_outcome.success_count
        outcome.messages_failed = publish_outcome.failure_count

        logger.info(
            "Export unit published",
            extra={
                "export_type": unit,
                "lines_read": outcome.lines_read,
                "records_failed": outcome.records_failed,
                "messages_published": outcome.messages_published,
                "messages_failed": outcome.messages_failed,
                "duration_ms": round((time.perf_counter() - start_time) * 1000, 2),
            },
        )
        return outcome

    async def _submit_file(
        self, path: Path, unit: str, outcome: UnitOutcome
    ) -> list[PendingPublish]:
        """
        Issue one publish per parsable line, in file order, without awaiting delivery.

        If the file aborts partway (encoding failure, read error), the
        publishes already issued are settled before the error propagates.
        """
        pending: list[PendingPublish] = []
        try:
            await self._submit_lines(path, unit, outcome, pending)
        except Exception:
            await asyncio.gather(*(item.delivery for item in pending), return_exceptions=True)
            raise

        if outcome.records_failed:
            bulk_records_failed_total.labels(export_type=unit).inc(outcome.records_failed)
        return pending

    async def _submit_lines(
        self, path: Path, unit: str, outcome: UnitOutcome, pending: list[PendingPublish]
    ) -> None:
        with open(path, "r", encoding="utf-8") as handle:
            for line in handle:
                line = line.strip()
                if not line:
                    continue
                outcome.lines_read += 1

                try:
                    record = parse_export_line(line, unit, self.export_date)
                except ParseError as e:
                    outcome.records_failed += 1
                    logger.debug(
                        "Skipping unparsable export line",
                        extra={"export_type": unit, "error_message": str(e)},
                    )
                    continue

                payload = self.encoder.encode(record.to_fields())
                pending.append(await self.producer.publish(self.config.topic, payload))
