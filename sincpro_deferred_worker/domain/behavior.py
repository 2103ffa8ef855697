"""
Behavior shapes accepted by the deferred invocation helper.

A behavior receives the response handle, plus the auxiliary input value
when one was given, and is responsible for completing the handle.
"""

from typing import Any, Awaitable, Callable, Union

from sincpro_deferred_worker.domain.handle import ResponseHandleInterface


class _NoInput:
    """Marker for "no auxiliary input", so that None stays a legal value."""

    def __repr__(self) -> str:
        return "NO_INPUT"


NO_INPUT: Any = _NoInput()

HandleBehavior = Callable[[ResponseHandleInterface], Union[None, Awaitable[None]]]
HandleInputBehavior = Callable[[ResponseHandleInterface, Any], Union[None, Awaitable[None]]]
Behavior = Union[HandleBehavior, HandleInputBehavior]
