"""
ResponseHandle component: a one-shot, thread-safe completion capability.
"""

import asyncio
import concurrent.futures
import itertools
import logging
import threading
from typing import Any, Callable, Generator, Generic, Optional, TypeVar

from sincpro_deferred_worker.domain.handle import HandleState, ResponseHandleInterface
from sincpro_deferred_worker.exceptions import HandleAlreadyCompletedError

logger = logging.getLogger(__name__)
T = TypeVar("T")

_counter = itertools.count(1)


class ResponseHandle(ResponseHandleInterface, Generic[T]):
    """
    Handle that a caller waits on while a behavior runs elsewhere.

    The handle completes exactly once, by resolve() or reject(). A second
    completion raises HandleAlreadyCompletedError. The caller can block on
    result(), register callbacks, or await the handle from any event loop.
    """

    def __init__(self, name: Optional[str] = None) -> None:
        """Initialize a pending handle."""
        self._name = name or f"handle-{next(_counter)}"
        self._future: concurrent.futures.Future = concurrent.futures.Future()
        self._lock = threading.Lock()
        self._state = HandleState.PENDING

    @property
    def name(self) -> str:
        return self._name

    @property
    def state(self) -> HandleState:
        """Current state of the handle."""
        return self._state

    def resolve(self, value: Optional[T] = None) -> None:
        """
        Complete the handle with a success value.

        Raises:
            HandleAlreadyCompletedError: If the handle was already completed
        """
        if not self.try_resolve(value):
            raise HandleAlreadyCompletedError(f"{self!r} is already completed")

    def reject(self, error: BaseException) -> None:
        """
        Complete the handle with a failure.

        Raises:
            HandleAlreadyCompletedError: If the handle was already completed
        """
        if not self.try_reject(error):
            raise HandleAlreadyCompletedError(f"{self!r} is already completed")

    def try_resolve(self, value: Optional[T] = None) -> bool:
        """Resolve if still pending. Return whether this call completed it."""
        with self._lock:
            if self._state is not HandleState.PENDING:
                return False
            self._state = HandleState.RESOLVED
        # Callbacks run outside the lock so they may inspect the handle.
        self._future.set_result(value)
        logger.debug(f"{self._name} resolved")
        return True

    def try_reject(self, error: BaseException) -> bool:
        """Reject if still pending. Return whether this call completed it."""
        if not isinstance(error, BaseException):
            raise TypeError(f"reject() expects an exception, got {type(error).__name__}")
        with self._lock:
            if self._state is not HandleState.PENDING:
                return False
            self._state = HandleState.REJECTED
        self._future.set_exception(error)
        logger.debug(f"{self._name} rejected with {error!r}")
        return True

    def done(self) -> bool:
        """Check if the handle has been completed and its outcome is visible."""
        return self._future.done()

    def succeeded(self) -> bool:
        return self.done() and self._state is HandleState.RESOLVED

    def failed(self) -> bool:
        return self.done() and self._state is HandleState.REJECTED

    def result(self, timeout: Optional[float] = None) -> T:
        """
        Wait for the handle to complete.

        Args:
            timeout: Maximum time to wait in seconds, None to wait forever

        Returns:
            The value the handle was resolved with

        Raises:
            TimeoutError: If the handle is not completed in time
            Exception: The failure the handle was rejected with
        """
        try:
            return self._future.result(timeout=timeout)
        except concurrent.futures.TimeoutError:
            raise TimeoutError(f"{self._name} not completed after {timeout} seconds") from None

    def exception(self, timeout: Optional[float] = None) -> Optional[BaseException]:
        """Wait for the handle and return its failure, or None if it resolved."""
        try:
            return self._future.exception(timeout=timeout)
        except concurrent.futures.TimeoutError:
            raise TimeoutError(f"{self._name} not completed after {timeout} seconds") from None

    def add_done_callback(self, fn: Callable[["ResponseHandle[T]"], Any]) -> None:
        """
        Call fn(handle) once the handle completes.

        Runs immediately in the calling thread if the handle is already done,
        otherwise in the thread that completes it.
        """
        self._future.add_done_callback(lambda _future: fn(self))

    def __await__(self) -> Generator[Any, None, T]:
        # Shielded so that cancelling the awaiting task leaves the handle alone.
        return asyncio.shield(asyncio.wrap_future(self._future)).__await__()

    def __repr__(self) -> str:
        return f"<ResponseHandle {self._name} {self._state.value}>"
