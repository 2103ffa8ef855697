"""
Exception module for sincpro_deferred_worker.

This module defines specific exceptions that may be raised by the component.
Exceptions raised by user behaviors are never wrapped: they reach the
response handle unchanged.
"""


class DeferredWorkerError(Exception):
    """Base exception for errors in the deferred worker."""


class WorkerNotRunningError(DeferredWorkerError):
    """Raised when trying to use the worker pool when it's not running."""


class PoolSaturatedError(DeferredWorkerError):
    """Raised when a submission would exceed the pool's queue limit."""


class HandleAlreadyCompletedError(DeferredWorkerError):
    """Raised when a response handle is completed a second time."""


class HandleNotCompletedError(DeferredWorkerError):
    """Set on a handle whose behavior returned without completing it."""


class WorkerShutdownError(DeferredWorkerError):
    """Set on a handle whose unit of work was abandoned by a pool shutdown."""
