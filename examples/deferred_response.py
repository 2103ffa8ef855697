"""
Example: a request handler that suspends its response until background work completes.
"""

import asyncio
import logging
import time

from sincpro_deferred_worker import ResponseHandle, deferred_dispatcher

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def fetch_user(handle: ResponseHandle, user_id: int) -> None:
    """Blocking lookup, runs on a worker thread."""
    time.sleep(0.5)
    handle.resolve({"id": user_id, "name": f"user-{user_id}"})


async def fetch_orders(handle: ResponseHandle, user_id: int) -> None:
    """Coroutine behavior, runs on the pool's event loop."""
    await asyncio.sleep(0.5)
    handle.resolve([f"order-{user_id}-{n}" for n in range(3)])


def flaky(handle: ResponseHandle) -> None:
    raise ConnectionError("upstream unavailable")


def main():
    with deferred_dispatcher(pool_size=2) as dispatcher:
        # Example 1: defer with an input value, the handler thread returns at once
        user = ResponseHandle(name="GET /users/7")
        orders = ResponseHandle(name="GET /users/7/orders")
        dispatcher.defer(user, fetch_user, 7)
        dispatcher.defer(orders, fetch_orders, 7)
        logger.info("Handlers returned, responses suspended")

        logger.info(f"Got user: {user.result(timeout=2)}")
        logger.info(f"Got orders: {orders.result(timeout=2)}")

        # Example 2: a failing behavior rejects its handle
        failing = ResponseHandle(name="GET /health")
        dispatcher.defer(failing, flaky)
        try:
            failing.result(timeout=2)
        except ConnectionError as e:
            logger.warning(f"Request failed as expected: {e}")

        # Example 3: plain function with a bounded wait
        try:
            dispatcher.execute(time.sleep, 2.0, timeout=0.5)
        except TimeoutError:
            logger.warning("Call timed out as expected")


if __name__ == "__main__":
    main()
