"""
Domain interface for the Worker component.
"""

import concurrent.futures
from dataclasses import dataclass
from typing import Any, Callable, Protocol, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class PoolStats:
    """Point-in-time counters of a worker pool."""

    size: int
    pending: int
    active: int
    completed: int
    failed: int
    peak_active: int

    @property
    def queued(self) -> int:
        """Units accepted but still waiting for a free worker."""
        return self.pending - self.active


class WorkerInterface(Protocol):
    """
    Interface for the Worker component.
    Defines the contract that all Worker implementations must follow.
    """

    def start(self) -> None:
        """
        Start the worker.
        """
        ...

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> concurrent.futures.Future:
        """
        Schedule fn(*args, **kwargs) on the worker without waiting for it.

        Args:
            fn: Plain callable or coroutine function to run

        Returns:
            A future that completes with the outcome of the call
        """
        ...

    def shutdown(self, wait: bool = True) -> None:
        """
        Shutdown the worker.
        """
        ...

    def is_running(self) -> bool:
        """
        Check if the worker is running.
        """
        ...

    def stats(self) -> PoolStats:
        """
        Snapshot of the worker's counters.
        """
        ...
