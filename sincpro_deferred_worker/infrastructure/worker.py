"""
Worker component: a size-bounded pool that runs units of work off the caller's thread.
"""

import asyncio
import atexit
import concurrent.futures
import functools
import inspect
import logging
import threading
from typing import Any, Callable, Optional, Set

from sincpro_deferred_worker.config import WorkerSettings
from sincpro_deferred_worker.domain.worker import PoolStats, WorkerInterface
from sincpro_deferred_worker.exceptions import PoolSaturatedError, WorkerNotRunningError
from sincpro_deferred_worker.infrastructure.event_loop import EventLoop

logger = logging.getLogger(__name__)


class WorkerPool(WorkerInterface):
    """
    Explicitly owned pool of `size` workers.

    Every unit is scheduled on a private event loop and waits for one of
    `size` permits before it runs, so at most `size` units execute at once.
    Coroutine functions run on the loop itself; plain callables run on a
    thread pool of the same size.
    """

    def __init__(
        self,
        size: int = 4,
        queue_limit: Optional[int] = None,
        use_uvloop: bool = True,
        thread_name_prefix: str = "DeferredWorker",
        shutdown_timeout: float = 5.0,
    ) -> None:
        """
        Initialize the WorkerPool component.

        Args:
            size: Maximum number of units executing at the same time.
            queue_limit: Maximum number of units waiting for a worker,
                None for no limit.
            use_uvloop: Run the scheduling loop on uvloop.
            thread_name_prefix: Prefix for the names of the pool's threads.
            shutdown_timeout: Default time shutdown() waits for pending units.
        """
        if size < 1:
            raise ValueError(f"Pool size must be at least 1, got {size}")
        if queue_limit is not None and queue_limit < 0:
            raise ValueError(f"Queue limit must not be negative, got {queue_limit}")

        self._size = size
        self._queue_limit = queue_limit
        self._thread_name_prefix = thread_name_prefix
        self._shutdown_timeout = shutdown_timeout
        self._event_loop = EventLoop(use_uvloop=use_uvloop, thread_name=f"{thread_name_prefix}Loop")
        self._executor: Optional[concurrent.futures.ThreadPoolExecutor] = None
        self._semaphore: Optional[asyncio.Semaphore] = None

        self._lock = threading.Lock()
        self._worker_local = threading.local()
        self._accepting = False
        self._pending = 0
        self._active = 0
        self._completed = 0
        self._failed = 0
        self._peak_active = 0

        # Mutated only from the loop thread.
        self._tasks: Set[asyncio.Task] = set()

    @classmethod
    def from_settings(cls, settings: WorkerSettings) -> "WorkerPool":
        return cls(
            size=settings.pool_size,
            queue_limit=settings.queue_limit,
            use_uvloop=settings.use_uvloop,
            thread_name_prefix=settings.thread_name_prefix,
            shutdown_timeout=settings.shutdown_timeout,
        )

    @property
    def size(self) -> int:
        return self._size

    @property
    def event_loop(self) -> EventLoop:
        return self._event_loop

    def start(self) -> None:
        """Start the pool. Calling start on a running pool does nothing."""
        with self._lock:
            if self._accepting:
                return
            self._executor = concurrent.futures.ThreadPoolExecutor(
                max_workers=self._size, thread_name_prefix=self._thread_name_prefix
            )
            self._semaphore = asyncio.Semaphore(self._size)
            self._event_loop.start()
            self._accepting = True

        atexit.register(self.shutdown)
        logger.info(f"Worker pool started with {self._size} workers")

    def is_running(self) -> bool:
        """Check if the pool accepts work."""
        return self._accepting

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> concurrent.futures.Future:
        """
        Schedule fn(*args, **kwargs) and return without waiting for it.

        Returns:
            A future completed with the call's return value or exception.
            It is cancelled if the pool shuts down before the call finishes.

        Raises:
            WorkerNotRunningError: If the pool has not been started or was shut down.
            PoolSaturatedError: If the queue limit is reached.
        """
        with self._lock:
            if not self._accepting:
                raise WorkerNotRunningError("Worker pool is not running")
            if self._queue_limit is not None and self._pending >= self._size + self._queue_limit:
                raise PoolSaturatedError(
                    f"Worker pool saturated: {self._pending} units pending "
                    f"({self._size} workers, queue limit {self._queue_limit})"
                )
            # Must stay under the lock: shutdown may not stop the loop
            # between the check and the hand-off.
            future = self._event_loop.run_coroutine(self._run(fn, args, kwargs))
            self._pending += 1
        return future

    async def _run(self, fn: Callable[..., Any], args: tuple, kwargs: dict) -> Any:
        task = asyncio.current_task()
        self._tasks.add(task)
        started = False
        failed = True
        try:
            async with self._semaphore:
                self._begin()
                started = True
                result = await self._call(fn, args, kwargs)
                failed = False
                return result
        finally:
            self._tasks.discard(task)
            self._finish(started=started, failed=failed)

    async def _call(self, fn: Callable[..., Any], args: tuple, kwargs: dict) -> Any:
        if inspect.iscoroutinefunction(fn):
            return await fn(*args, **kwargs)

        loop = asyncio.get_running_loop()
        call = functools.partial(self._call_in_worker, asyncio.current_task(), fn, args, kwargs)
        result = await loop.run_in_executor(self._executor, call)
        if inspect.isawaitable(result):
            result = await result
        return result

    def _call_in_worker(
        self, task: asyncio.Task, fn: Callable[..., Any], args: tuple, kwargs: dict
    ) -> Any:
        self._worker_local.task = task
        try:
            return fn(*args, **kwargs)
        finally:
            self._worker_local.task = None

    def _calling_unit(self) -> Optional[asyncio.Task]:
        """The unit whose behavior is running in the caller's thread, if any."""
        task = getattr(self._worker_local, "task", None)
        if task is None and self._event_loop.in_loop_thread():
            task = asyncio.current_task()
        return task if task in self._tasks else None

    def _begin(self) -> None:
        with self._lock:
            self._active += 1
            self._peak_active = max(self._peak_active, self._active)

    def _finish(self, started: bool, failed: bool) -> None:
        with self._lock:
            self._pending -= 1
            if started:
                self._active -= 1
            if failed:
                self._failed += 1
            else:
                self._completed += 1

    def stats(self) -> PoolStats:
        """Snapshot of the pool's counters."""
        with self._lock:
            return PoolStats(
                size=self._size,
                pending=self._pending,
                active=self._active,
                completed=self._completed,
                failed=self._failed,
                peak_active=self._peak_active,
            )

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None) -> None:
        """
        Stop accepting work and release the pool's threads.

        Args:
            wait: Give pending units up to `timeout` seconds to finish.
            timeout: Defaults to the pool's shutdown_timeout.

        Units still pending afterwards are cancelled. A cancelled unit that
        already runs on a thread keeps that thread until it returns, but
        its outcome is discarded.

        Called from inside one of the pool's own behaviors, shutdown does not
        block: the calling unit is neither waited for nor cancelled, and the
        pool's threads are released once it returns.
        """
        if timeout is None:
            timeout = self._shutdown_timeout

        with self._lock:
            if not self._accepting:
                return
            self._accepting = False
            executor = self._executor
        logger.info("Stopping worker pool")

        caller = self._calling_unit()
        if caller is not None or self._event_loop.in_loop_thread():
            self._event_loop.run_coroutine(self._shutdown_from_inside(caller, executor, wait, timeout))
            return

        future = self._event_loop.run_coroutine(self._wind_down(None, wait, timeout))
        try:
            future.result(timeout=(timeout if wait else 0) + self._shutdown_timeout)
        except concurrent.futures.TimeoutError:
            logger.warning("Timed out waiting for cancelled units to unwind")
        self._release(executor)

    async def _wind_down(self, caller: Optional[asyncio.Task], wait: bool, timeout: float) -> None:
        # Let units handed off just before the shutdown enter _run.
        await asyncio.sleep(0)

        def others() -> list:
            return [task for task in self._tasks if task is not caller and not task.done()]

        if wait and others():
            await asyncio.wait(others(), timeout=timeout)

        leftover = others()
        if leftover:
            logger.warning(f"Cancelling {len(leftover)} unfinished unit(s) on shutdown")
            for task in leftover:
                task.cancel()

        while True:
            unfinished = [task for task in self._tasks if not task.done()]
            if not unfinished:
                break
            await asyncio.wait(unfinished)
        # One more pass so the done-callbacks of the last units run.
        await asyncio.sleep(0)

    async def _shutdown_from_inside(
        self,
        caller: Optional[asyncio.Task],
        executor: concurrent.futures.ThreadPoolExecutor,
        wait: bool,
        timeout: float,
    ) -> None:
        await self._wind_down(caller, wait, timeout)
        self._release(executor)

    def _release(self, executor: concurrent.futures.ThreadPoolExecutor) -> None:
        executor.shutdown(wait=False, cancel_futures=True)
        self._event_loop.shutdown()
        atexit.unregister(self.shutdown)
        logger.info("Worker pool stopped")

    def __enter__(self) -> "WorkerPool":
        self.start()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.shutdown()
