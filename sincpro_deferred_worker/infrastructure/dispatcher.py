"""
Dispatcher component: runs user behaviors on the worker pool and settles their handles.
"""

import asyncio
import concurrent.futures
import functools
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from sincpro_deferred_worker.config import WorkerSettings, get_settings
from sincpro_deferred_worker.domain.behavior import NO_INPUT, Behavior
from sincpro_deferred_worker.domain.dispatcher import DispatcherInterface
from sincpro_deferred_worker.domain.handle import ResponseHandleInterface
from sincpro_deferred_worker.domain.worker import PoolStats
from sincpro_deferred_worker.exceptions import HandleNotCompletedError, WorkerShutdownError
from sincpro_deferred_worker.infrastructure.handle import ResponseHandle
from sincpro_deferred_worker.infrastructure.worker import WorkerPool

logger = logging.getLogger(__name__)
T = TypeVar("T")


def _describe(fn: Any) -> str:
    return getattr(fn, "__qualname__", None) or repr(fn)


def _returning(fn: Callable[..., Any], args: tuple, kwargs: dict) -> Behavior:
    """Adapt a plain function into a behavior that resolves with its return value."""
    if inspect.iscoroutinefunction(fn):

        async def behavior(handle: ResponseHandleInterface) -> None:
            handle.resolve(await fn(*args, **kwargs))

    else:

        def behavior(handle: ResponseHandleInterface) -> Optional[Awaitable[None]]:
            result = fn(*args, **kwargs)
            if inspect.isawaitable(result):
                # e.g. an object with an async __call__; the pool awaits this on its loop
                async def resolve_awaited() -> None:
                    handle.resolve(await result)

                return resolve_awaited()
            handle.resolve(result)
            return None

    behavior.__qualname__ = _describe(fn)
    return behavior


class Dispatcher(DispatcherInterface):
    """
    Deferred invocation helper.

    defer() hands a behavior and its response handle to the worker pool and
    returns at once. The behavior completes the handle itself; once it has
    run, the dispatcher makes sure the handle did not end up orphaned:

    - the behavior raised: the handle is rejected with that exception
    - the behavior returned without completing it: the handle is rejected
      with HandleNotCompletedError (unless enforce_completion is off)
    - the unit was abandoned by a shutdown: the handle is rejected with
      WorkerShutdownError
    - a coroutine behavior cancelled itself on a running pool: the handle
      is rejected with asyncio.CancelledError
    """

    def __init__(
        self,
        pool: Optional[WorkerPool] = None,
        settings: Optional[WorkerSettings] = None,
    ) -> None:
        """
        Initialize the Dispatcher component.

        Args:
            pool: Worker pool to run on. When omitted, the dispatcher builds
                one from settings and shuts it down with itself.
            settings: Defaults to the process-wide settings.
        """
        settings = settings or get_settings()
        self._owns_pool = pool is None
        self._pool = pool if pool is not None else WorkerPool.from_settings(settings)
        self._enforce_completion = settings.enforce_completion
        self._pool.start()
        logger.debug("Dispatcher initialized and worker pool started")

    @property
    def pool(self) -> WorkerPool:
        return self._pool

    @property
    def stats(self) -> PoolStats:
        return self._pool.stats()

    def defer(
        self,
        handle: ResponseHandleInterface,
        behavior: Behavior,
        value: Any = NO_INPUT,
    ) -> None:
        """
        Run behavior(handle) or behavior(handle, value) on the pool.

        Returns as soon as the unit is queued. The handle is completed later,
        from a worker thread, by the behavior.

        Raises:
            WorkerNotRunningError: If the pool has been shut down
            PoolSaturatedError: If the pool's queue limit is reached
        """
        args = (handle,) if value is NO_INPUT else (handle, value)
        future = self._pool.submit(behavior, *args)
        future.add_done_callback(functools.partial(self._settle, handle, behavior))

    def _settle(
        self,
        handle: ResponseHandleInterface,
        behavior: Behavior,
        future: concurrent.futures.Future,
    ) -> None:
        name = _describe(behavior)

        if future.cancelled():
            if self._pool.is_running():
                # The behavior cancelled itself; shutdown is the only other source.
                if handle.try_reject(asyncio.CancelledError(f"{name} was cancelled")):
                    logger.warning(f"{name} was cancelled; rejected {handle!r}")
            elif handle.try_reject(WorkerShutdownError(f"{name} was abandoned by pool shutdown")):
                logger.warning(f"{name} abandoned by shutdown; rejected {handle!r}")
            return

        error = future.exception()
        if error is not None:
            if handle.try_reject(error):
                logger.error(f"{name} failed; rejected {handle!r}", exc_info=error)
            else:
                logger.error(f"{name} failed after completing {handle!r}", exc_info=error)
            return

        if self._enforce_completion and handle.try_reject(
            HandleNotCompletedError(f"{name} returned without completing the handle")
        ):
            logger.warning(f"{name} returned without completing {handle!r}; rejected it")

    def submit(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> ResponseHandle:
        """
        Run fn(*args, **kwargs) on the pool without waiting for it.

        Returns:
            A handle resolved with the return value or rejected with the exception
        """
        handle: ResponseHandle = ResponseHandle(name=_describe(fn))
        self.defer(handle, _returning(fn, args, kwargs))
        return handle

    def execute(
        self, fn: Callable[..., T], *args: Any, timeout: Optional[float] = None, **kwargs: Any
    ) -> T:
        """
        Run fn(*args, **kwargs) on the pool and wait for its result.

        The timeout bounds only the wait; the call keeps running on the pool.

        Raises:
            TimeoutError: If the result is not ready within timeout seconds
            Exception: Any exception raised by fn
        """
        handle = self.submit(fn, *args, **kwargs)
        try:
            return handle.result(timeout=timeout)
        except TimeoutError:
            logger.error(f"{handle!r} timed out after {timeout} seconds")
            raise

    def shutdown(self, wait: bool = True) -> None:
        """Shut down the pool if this dispatcher created it."""
        if self._owns_pool:
            self._pool.shutdown(wait=wait)
            logger.debug("Dispatcher cleaned up")

    def __enter__(self) -> "Dispatcher":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.shutdown()
