"""
Tests for the ResponseHandle component.

A response handle should:
1. Complete exactly once, with a value or a failure
2. Refuse a second completion, even under concurrent attempts
3. Let callers block, register callbacks or await the outcome
"""

import asyncio
import threading

import pytest

from sincpro_deferred_worker.domain.handle import HandleState, ResponseHandleInterface
from sincpro_deferred_worker.exceptions import HandleAlreadyCompletedError
from sincpro_deferred_worker.infrastructure import ResponseHandle


def test_handle_should_implement_interface():
    assert isinstance(ResponseHandle(), ResponseHandleInterface)


def test_new_handle_is_pending():
    handle = ResponseHandle(name="GET /users")

    assert handle.state is HandleState.PENDING
    assert not handle.done()
    assert handle.name == "GET /users"
    assert repr(handle) == "<ResponseHandle GET /users pending>"


def test_handles_get_distinct_default_names():
    assert ResponseHandle().name != ResponseHandle().name


def test_resolve_should_deliver_value():
    handle = ResponseHandle()

    handle.resolve(42)

    assert handle.done()
    assert handle.succeeded()
    assert not handle.failed()
    assert handle.state is HandleState.RESOLVED
    assert handle.result() == 42
    assert handle.exception() is None


def test_resolve_without_value_delivers_none():
    handle = ResponseHandle()
    handle.resolve()
    assert handle.result(timeout=0) is None


def test_reject_should_deliver_failure():
    handle = ResponseHandle()
    error = ValueError("bad input")

    handle.reject(error)

    assert handle.failed()
    assert handle.state is HandleState.REJECTED
    assert handle.exception() is error
    with pytest.raises(ValueError, match="bad input"):
        handle.result()


def test_reject_requires_an_exception():
    handle = ResponseHandle()

    with pytest.raises(TypeError):
        handle.reject("not an exception")

    assert handle.state is HandleState.PENDING


def test_second_resolve_should_raise_and_keep_first_value():
    handle = ResponseHandle()
    handle.resolve("first")

    with pytest.raises(HandleAlreadyCompletedError):
        handle.resolve("second")

    assert handle.result() == "first"


def test_reject_after_resolve_should_raise():
    handle = ResponseHandle()
    handle.resolve("done")

    with pytest.raises(HandleAlreadyCompletedError):
        handle.reject(RuntimeError("late"))

    assert handle.succeeded()


def test_try_variants_report_whether_they_completed():
    handle = ResponseHandle()

    assert handle.try_reject(RuntimeError("first"))
    assert not handle.try_resolve("second")
    assert not handle.try_reject(RuntimeError("third"))
    with pytest.raises(RuntimeError, match="first"):
        handle.result()


def test_result_should_raise_builtin_timeout_error():
    handle = ResponseHandle()

    with pytest.raises(TimeoutError):
        handle.result(timeout=0.05)
    with pytest.raises(TimeoutError):
        handle.exception(timeout=0.05)


def test_result_should_wait_for_completion_from_another_thread():
    handle = ResponseHandle()
    timer = threading.Timer(0.05, handle.resolve, args=("late value",))
    timer.start()

    assert handle.result(timeout=1.0) == "late value"
    timer.join()


def test_only_one_concurrent_completion_wins():
    handle = ResponseHandle()
    barrier = threading.Barrier(16)
    outcomes = []

    def complete(value):
        barrier.wait()
        outcomes.append(handle.try_resolve(value))

    threads = [threading.Thread(target=complete, args=(i,)) for i in range(16)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert outcomes.count(True) == 1
    assert handle.result() in range(16)


def test_callback_should_receive_the_handle_once():
    handle = ResponseHandle()
    seen = []

    handle.add_done_callback(seen.append)
    assert seen == []

    handle.resolve("value")
    handle.try_resolve("ignored")

    assert seen == [handle]


def test_callback_added_after_completion_runs_immediately():
    handle = ResponseHandle()
    handle.reject(KeyError("missing"))
    seen = []

    handle.add_done_callback(lambda h: seen.append(h.state))

    assert seen == [HandleState.REJECTED]


@pytest.mark.asyncio
async def test_handle_should_be_awaitable():
    handle = ResponseHandle()
    threading.Timer(0.05, handle.resolve, args=("awaited",)).start()

    assert await handle == "awaited"


@pytest.mark.asyncio
async def test_awaiting_rejected_handle_raises_failure():
    handle = ResponseHandle()
    handle.reject(ConnectionError("gone"))

    with pytest.raises(ConnectionError, match="gone"):
        await handle


@pytest.mark.asyncio
async def test_cancelling_awaiter_leaves_handle_pending():
    handle = ResponseHandle()

    async def wait_for(h):
        return await h

    waiter = asyncio.ensure_future(wait_for(handle))
    await asyncio.sleep(0.01)
    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter

    assert handle.state is HandleState.PENDING
    handle.resolve("still usable")
    assert handle.result(timeout=1.0) == "still usable"
