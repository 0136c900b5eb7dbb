"""Tests for logging context variables."""

import asyncio

import pytest

from core.logging.context import clear_log_context, get_log_context, set_log_context


@pytest.fixture(autouse=True)
def clear_context():
    clear_log_context()
    yield
    clear_log_context()


class TestLogContext:
    def test_defaults_are_empty(self):
        assert get_log_context() == {"stage": "", "task_index": "", "request_id": ""}

    def test_set_only_given_fields(self):
        set_log_context(stage="backfill")
        set_log_context(task_index="2")

        assert get_log_context() == {"stage": "backfill", "task_index": "2", "request_id": ""}

    def test_clear(self):
        set_log_context(stage="fanout", request_id="r1")
        clear_log_context()

        assert get_log_context()["request_id"] == ""

    @pytest.mark.asyncio
    async def test_request_ids_are_isolated_per_task(self):
        async def handler(request_id):
            set_log_context(request_id=request_id)
            await asyncio.sleep(0)
            return get_log_context()["request_id"]

        results = await asyncio.gather(handler("a"), handler("b"), handler("c"))

        assert results == ["a", "b", "c"]
