"""Utilities for running Slack event handling off the request thread."""

from contextvars import copy_context
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable

from structlog.contextvars import bind_contextvars, get_contextvars


_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="land-events")


def run_async(
    func: Callable[..., Any],
    /,
    *args: Any,
    event_id: str | None = None,
    **kwargs: Any,
) -> Future:
    """Submit *func* to the shared thread pool and return a Future.

    The caller's structlog contextvars travel with the work item; *event_id*
    seeds the worker context when the caller has not bound one yet.
    """

    context = copy_context()

    if event_id is not None:
        existing = context.run(lambda: get_contextvars().get("event_id"))
        if existing != event_id:
            context.run(lambda: bind_contextvars(event_id=event_id))

    def runner() -> Any:
        return context.run(func, *args, **kwargs)

    return _executor.submit(runner)
