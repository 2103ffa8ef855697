"""
EventLoop component that runs a private event loop in a dedicated thread.
"""

import asyncio
import concurrent.futures
import logging
import threading
from typing import Any, Coroutine, Optional, TypeVar

import uvloop

logger = logging.getLogger(__name__)
T = TypeVar("T")


def new_event_loop(use_uvloop: bool = True) -> asyncio.AbstractEventLoop:
    """Create a fresh loop, backed by uvloop unless told otherwise."""
    if use_uvloop:
        return uvloop.new_event_loop()
    return asyncio.new_event_loop()


class EventLoop:
    """
    Dedicated-thread event loop.
    Always creates and owns its loop; a loop running in the caller's
    thread is never reused or touched.
    """

    def __init__(self, use_uvloop: bool = True, thread_name: str = "DeferredWorkerLoop") -> None:
        """Initialize the EventLoop."""
        self._use_uvloop = use_uvloop
        self._thread_name = thread_name
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        logger.debug("EventLoop initialized")

    def start(self) -> None:
        """Start the event loop if not already running."""
        with self._lock:
            if self._loop is not None:
                return

            loop = new_event_loop(self._use_uvloop)
            thread = threading.Thread(
                target=self._run_forever, args=(loop,), name=self._thread_name, daemon=True
            )
            self._loop = loop
            self._thread = thread
            thread.start()
        logger.info(f"Started {type(loop).__module__} event loop in thread {self._thread_name}")

    @staticmethod
    def _run_forever(loop: asyncio.AbstractEventLoop) -> None:
        asyncio.set_event_loop(loop)
        try:
            loop.run_forever()
        finally:
            # Covers a stop requested from inside the loop, where shutdown cannot close it.
            if not loop.is_closed():
                loop.close()

    def run_coroutine(self, coro: Coroutine[Any, Any, T]) -> "concurrent.futures.Future[T]":
        """Run a coroutine in the event loop, starting it if needed."""
        if self._loop is None:
            self.start()
        return asyncio.run_coroutine_threadsafe(coro, self._loop)

    def get_loop(self) -> asyncio.AbstractEventLoop:
        """Get the event loop, starting it if needed."""
        if self._loop is None:
            self.start()
        return self._loop

    @property
    def thread(self) -> Optional[threading.Thread]:
        return self._thread

    def in_loop_thread(self) -> bool:
        """Check if the caller is running on the loop's own thread."""
        return self._thread is not None and threading.current_thread() is self._thread

    def shutdown(self, timeout: float = 2.0) -> None:
        """Stop the loop, join its thread and close it. Safe to call repeatedly."""
        with self._lock:
            loop, thread = self._loop, self._thread
            self._loop = None
            self._thread = None

        if loop is None:
            return

        logger.info("Shutting down event loop")
        if not loop.is_closed():
            loop.call_soon_threadsafe(loop.stop)

        if thread is not None and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning("Event loop thread did not terminate gracefully")
                return

        if not loop.is_running() and not loop.is_closed():
            loop.close()

    def is_running(self) -> bool:
        """Check if the event loop is running."""
        return self._loop is not None and not self._loop.is_closed()
