"""
Domain interface for the Dispatcher component.
"""

from typing import Any, Callable, Optional, Protocol, TypeVar, runtime_checkable

from sincpro_deferred_worker.domain.behavior import NO_INPUT, Behavior
from sincpro_deferred_worker.domain.handle import ResponseHandleInterface

T = TypeVar("T")


@runtime_checkable
class DispatcherInterface(Protocol):
    """
    Interface for the Dispatcher component.
    Defines the contract that all Dispatcher implementations must follow.
    """

    def defer(
        self,
        handle: ResponseHandleInterface,
        behavior: Behavior,
        value: Any = NO_INPUT,
    ) -> None:
        """
        Run a behavior off the calling thread and return immediately.

        Args:
            handle: Response handle the behavior must complete
            behavior: Called as behavior(handle) or behavior(handle, value)
            value: Optional auxiliary input for the behavior

        Raises:
            WorkerNotRunningError: If the dispatcher has been shut down
            PoolSaturatedError: If the pool's queue limit is reached
        """
        ...

    def submit(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> ResponseHandleInterface:
        """
        Run a function off the calling thread.

        Returns:
            A handle resolved with the function's return value
        """
        ...

    def execute(
        self, fn: Callable[..., T], *args: Any, timeout: Optional[float] = None, **kwargs: Any
    ) -> T:
        """
        Run a function on the pool and wait for its result.

        Raises:
            TimeoutError: If the result is not ready within timeout seconds
            Exception: Any exception raised by the function
        """
        ...
