import asyncio
import functools
from typing import Awaitable, Callable, TypeVar

from loguru import logger

T = TypeVar("T")

DelayFn = Callable[[int], float]


def linear_backoff(step: float) -> DelayFn:
    """Delay of ``step * attempt`` seconds after the given (1-based) attempt."""
    return lambda attempt: step * attempt


def capped_backoff(step: float, cap: float) -> DelayFn:
    """Linearly increasing delay that never exceeds ``cap`` seconds."""
    return lambda attempt: min(step * attempt, cap)


def fixed_delay(seconds: float) -> DelayFn:
    return lambda attempt: seconds


async def retry_async(
    operation: Callable[[int], Awaitable[T]],
    attempts: int,
    delay: DelayFn,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    on_error: Callable[[int, BaseException], Awaitable[None]] | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Run ``operation`` up to ``attempts`` times.

    The operation receives the 1-based attempt number. Exceptions listed in
    ``retry_on`` trigger ``on_error`` (if given) and, unless this was the last
    attempt, a pause of ``delay(attempt)`` seconds before the next try. The
    last exception is re-raised once attempts are exhausted; anything not in
    ``retry_on`` propagates immediately.
    """
    if attempts < 1:
        raise ValueError("attempts must be >= 1")

    for attempt in range(1, attempts + 1):
        try:
            return await operation(attempt)
        except retry_on as e:
            if on_error is not None:
                await on_error(attempt, e)
            if attempt == attempts:
                raise
            await sleep(delay(attempt))

    raise AssertionError("unreachable")


def safe_job_wrapper(func):
    """
    A decorator for scheduled coroutine jobs that logs entry, exit, and exceptions.

    Exceptions are logged and re-raised so the scheduler records the failure.
    """

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        func_name = func.__name__
        logger.debug(f"Entering job {func_name}")

        try:
            result = await func(*args, **kwargs)
            logger.debug(f"Job {func_name} finished")
            return result
        except Exception as e:
            logger.error(f"Job {func_name} failed: {type(e).__name__}: {e}")
            raise

    return wrapper
