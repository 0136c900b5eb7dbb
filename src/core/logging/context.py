"""Context variables for structured logging."""

from contextvars import ContextVar

_stage_name: ContextVar[str] = ContextVar("stage_name", default="")
_task_index: ContextVar[str] = ContextVar("task_index", default="")
_request_id: ContextVar[str] = ContextVar("request_id", default="")


def set_log_context(
    stage: str | None = None,
    task_index: str | None = None,
    request_id: str | None = None,
) -> None:
    if stage is not None:
        _stage_name.set(stage)
    if task_index is not None:
        _task_index.set(task_index)
    if request_id is not None:
        _request_id.set(request_id)


def get_log_context() -> dict[str, str]:
    return {
        "stage": _stage_name.get(),
        "task_index": _task_index.get(),
        "request_id": _request_id.get(),
    }


def clear_log_context() -> None:
    _stage_name.set("")
    _task_index.set("")
    _request_id.set("")
