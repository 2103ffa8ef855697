"""
Infrastructure implementations of the deferred worker components.
"""

from sincpro_deferred_worker.infrastructure.dispatcher import Dispatcher
from sincpro_deferred_worker.infrastructure.event_loop import EventLoop
from sincpro_deferred_worker.infrastructure.handle import ResponseHandle
from sincpro_deferred_worker.infrastructure.worker import WorkerPool

__all__ = ["Dispatcher", "EventLoop", "ResponseHandle", "WorkerPool"]
