import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from loguru import logger

T = TypeVar("T")


async def retry_async(
    func: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    delay: float = 1.0,
    backoff: float = 2.0,
    exceptions: tuple = (Exception,),
    on_retry: Optional[Callable] = None
) -> T:
    """
    Retry an async function with exponential backoff

    Args:
        func: Zero-argument coroutine factory to retry
        max_attempts: Maximum number of attempts
        delay: Initial delay between retries in seconds
        backoff: Backoff multiplier
        exceptions: Tuple of exceptions that trigger a retry
        on_retry: Optional async callback (receives attempt number and exception)

    Returns:
        Result of successful function call

    Raises:
        Last exception if all attempts fail
    """
    current_delay = delay

    for attempt in range(1, max_attempts + 1):
        try:
            return await func()
        except exceptions as e:
            if attempt == max_attempts:
                logger.error(f"All {max_attempts} attempts failed: {e}")
                raise

            logger.warning(
                f"Attempt {attempt}/{max_attempts} failed: {e}. "
                f"Retrying in {current_delay}s..."
            )

            if on_retry:
                await on_retry(attempt, e)

            await asyncio.sleep(current_delay)
            current_delay *= backoff

    raise ValueError("max_attempts must be at least 1")
