"""
Deferred worker: run user behaviors on a bounded worker pool and
deliver their outcome through one-shot response handles.
"""

import logging

from sincpro_deferred_worker.config import WorkerSettings, get_settings
from sincpro_deferred_worker.core import create_dispatcher, deferred_dispatcher
from sincpro_deferred_worker.domain.behavior import NO_INPUT
from sincpro_deferred_worker.domain.handle import HandleState
from sincpro_deferred_worker.domain.worker import PoolStats
from sincpro_deferred_worker.exceptions import (
    DeferredWorkerError,
    HandleAlreadyCompletedError,
    HandleNotCompletedError,
    PoolSaturatedError,
    WorkerNotRunningError,
    WorkerShutdownError,
)
from sincpro_deferred_worker.infrastructure import Dispatcher, ResponseHandle, WorkerPool

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "create_dispatcher",
    "deferred_dispatcher",
    "Dispatcher",
    "WorkerPool",
    "ResponseHandle",
    "HandleState",
    "PoolStats",
    "NO_INPUT",
    "WorkerSettings",
    "get_settings",
    "DeferredWorkerError",
    "HandleAlreadyCompletedError",
    "HandleNotCompletedError",
    "PoolSaturatedError",
    "WorkerNotRunningError",
    "WorkerShutdownError",
]
