"""Bounded polling for resources GitHub computes asynchronously."""
import asyncio
from typing import Awaitable, Callable, TypeVar

from tenacity import AsyncRetrying, RetryError, retry_if_result, stop_after_attempt, wait_fixed

from github_stats.domain.errors import PollTimeoutError


T = TypeVar("T")


async def poll_until_valid(
    operation: Callable[[], Awaitable[T]],
    is_valid: Callable[[T], bool],
    max_attempts: int = 10,
    delay: float = 1.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Call ``operation`` until ``is_valid`` accepts its result.

    Makes ``max_attempts`` tries spaced ``delay`` seconds apart, then one
    final try.

    Raises:
        PollTimeoutError: When no attempt produced a valid result
    """
    retrying = AsyncRetrying(
        retry=retry_if_result(lambda result: not is_valid(result)),
        stop=stop_after_attempt(max_attempts + 1),
        wait=wait_fixed(delay),
        sleep=sleep,
    )
    try:
        return await retrying(operation)
    except RetryError as e:
        raise PollTimeoutError(
            f"Failed to get valid result after {max_attempts} retries"
        ) from e
