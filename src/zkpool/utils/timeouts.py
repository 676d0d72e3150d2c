"""Bounded execution for the only blocking calls: ledger reads/writes and proving."""

import logging
from concurrent.futures import Executor, TimeoutError as FutureTimeoutError
from typing import Callable, Optional, Type, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


def call_with_timeout(
    executor: Executor,
    fn: Callable[[], T],
    timeout: Optional[float],
    timeout_error: Type[Exception],
    description: str,
) -> T:
    """
    Run fn on executor and wait at most timeout seconds for its result.

    The abandoned call is not retried; the worker thread is left to finish
    on its own and its result is discarded.

    Args:
        executor: Executor that runs the call
        fn: Zero-argument callable
        timeout: Seconds to wait, or None to wait indefinitely
        timeout_error: Exception type raised on timeout
        description: Human-readable call name for logs and errors

    Returns:
        The value returned by fn

    Raises:
        timeout_error: If the call does not finish in time
    """
    future = executor.submit(fn)
    try:
        return future.result(timeout=timeout)
    except FutureTimeoutError:
        future.cancel()
        logger.warning(f"{description} abandoned after {timeout}s")
        raise timeout_error(f"{description} timed out after {timeout}s")
