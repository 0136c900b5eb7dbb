"""
pytest configuration for the pipeline tests.

Adds src directory to Python path for imports and provides shared fakes
for the aiohttp client session and the aiokafka producer.
"""

import asyncio
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add src directory to Python path
src_dir = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_dir))


def _make_response(status=200, text="", chunks=None, headers=None):
    """aiohttp-style response usable as ``async with session.get(...) as response``."""
    response = AsyncMock()
    response.status = status
    response.headers = headers or {"Content-Type": "application/json"}
    response.text = AsyncMock(return_value=text)

    async def iter_chunked(_size):
        for chunk in chunks or []:
            yield chunk

    response.content = MagicMock()
    response.content.iter_chunked = iter_chunked
    response.__aenter__ = AsyncMock(return_value=response)
    response.__aexit__ = AsyncMock(return_value=None)
    return response


def _make_session(*responses):
    """Session whose ``get`` returns the given responses in order."""
    session = AsyncMock()
    session.get = MagicMock(side_effect=list(responses))
    return session


class FakeProducer:
    """
    In-memory stand-in for MessageProducer.

    Records every payload in submission order. Payload indexes listed in
    ``fail_indexes`` resolve with an error when awaited.
    """

    def __init__(self, fail_indexes=()):
        self.published: list[tuple[str, bytes]] = []
        self.fail_indexes = set(fail_indexes)
        self.awaited = 0

    async def publish(self, topic, payload):
        from core.errors.exceptions import PublishError
        from tmdb_pipeline.common.types import PendingPublish

        index = len(self.published)
        self.published.append((topic, payload))
        delivery = asyncio.get_running_loop().create_future()
        if index in self.fail_indexes:
            delivery.set_exception(PublishError("broker rejected message"))
        else:
            delivery.set_result(MagicMock(topic=topic, partition=0, offset=index))
        return PendingPublish(topic=topic, size=len(payload), delivery=delivery)

    async def submit_all(self, topic, payloads):
        return [await self.publish(topic, payload) for payload in payloads]

    async def await_all(self, pending):
        from tmdb_pipeline.common.types import PublishOutcome

        outcome = PublishOutcome()
        for item in pending:
            self.awaited += 1
            try:
                await item.delivery
            except Exception:
                outcome.failure_count += 1
            else:
                outcome.success_count += 1
        return outcome


@pytest.fixture
def make_response():
    return _make_response


@pytest.fixture
def make_session():
    return _make_session


@pytest.fixture
def fake_producer():
    return FakeProducer()


@pytest.fixture
def make_producer():
    return FakeProducer
