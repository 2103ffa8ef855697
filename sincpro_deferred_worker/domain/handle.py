"""
Response handle domain abstractions and value objects.
"""

from enum import Enum
from typing import Any, Callable, Optional, Protocol, runtime_checkable


class HandleState(Enum):
    """Lifecycle of a response handle. A handle leaves PENDING exactly once."""

    PENDING = "pending"
    RESOLVED = "resolved"
    REJECTED = "rejected"


@runtime_checkable
class ResponseHandleInterface(Protocol):
    """Protocol defining the one-shot response handle."""

    @property
    def state(self) -> HandleState:
        """Current state of the handle."""
        ...

    def resolve(self, value: Any = None) -> None:
        """Complete the handle with a success value."""
        ...

    def reject(self, error: BaseException) -> None:
        """Complete the handle with a failure."""
        ...

    def try_resolve(self, value: Any = None) -> bool:
        """Resolve if still pending. Return whether this call completed it."""
        ...

    def try_reject(self, error: BaseException) -> bool:
        """Reject if still pending. Return whether this call completed it."""
        ...

    def done(self) -> bool:
        """Check if the handle has been completed."""
        ...

    def result(self, timeout: Optional[float] = None) -> Any:
        """Wait for the outcome and return the value or raise the failure."""
        ...

    def add_done_callback(self, fn: Callable[[Any], None]) -> None:
        """Call fn(handle) once the handle completes."""
        ...
