"""
Entry points for building an explicitly owned dispatcher.
"""

from contextlib import contextmanager
from typing import Any, Iterator, Optional

from sincpro_deferred_worker.config import WorkerSettings, get_settings
from sincpro_deferred_worker.infrastructure.dispatcher import Dispatcher


def create_dispatcher(settings: Optional[WorkerSettings] = None, **overrides: Any) -> Dispatcher:
    """
    Create a dispatcher with its own running worker pool.

    The caller owns the result and is responsible for shutting it down.

    Args:
        settings: Base settings, defaults to the environment-derived settings
        **overrides: Individual settings to replace, e.g. pool_size=8

    Returns:
        A started Dispatcher

    Raises:
        pydantic.ValidationError: If an override is invalid
    """
    base = settings or get_settings()
    if overrides:
        base = WorkerSettings.model_validate({**base.model_dump(), **overrides})
    return Dispatcher(settings=base)


@contextmanager
def deferred_dispatcher(
    settings: Optional[WorkerSettings] = None, wait: bool = True, **overrides: Any
) -> Iterator[Dispatcher]:
    """
    Provide a dispatcher for the duration of a with-block, then shut it down.

    Args:
        wait: Let pending work finish on exit instead of cancelling it
    """
    dispatcher = create_dispatcher(settings, **overrides)
    try:
        yield dispatcher
    finally:
        dispatcher.shutdown(wait=wait)
