"""Retry with exponential backoff for calls to remote services."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from docqa.core.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_with_backoff(
    func: Callable[[], Awaitable[T]],
    max_retries: Optional[int] = None,
    delay: Optional[float] = None,
    backoff_multiplier: Optional[float] = None,
    exceptions: Tuple[Type[BaseException], ...] = (Exception,),
    label: str = "operation",
) -> T:
    """
    Await a coroutine factory, retrying with exponential backoff.

    Args:
        func: Zero-argument callable returning an awaitable.
        max_retries: Retries after the first attempt.
        delay: Initial delay in seconds.
        backoff_multiplier: Multiplier for exponential backoff.
        exceptions: Exceptions that trigger a retry; others propagate.
        label: Name used in log messages.

    Returns:
        Result of the successful call.

    Raises:
        The last exception if all attempts fail.
    """
    if max_retries is None:
        max_retries = settings.max_retries
    if delay is None:
        delay = settings.retry_delay_seconds
    if backoff_multiplier is None:
        backoff_multiplier = settings.retry_backoff_multiplier

    for attempt in range(max_retries + 1):
        try:
            return await func()
        except exceptions as e:
            if attempt >= max_retries:
                logger.error(
                    f"{label}: all {max_retries + 1} attempts failed. Last error: {str(e)}")
                raise
            wait_time = delay * (backoff_multiplier ** attempt)
            logger.warning(
                f"{label}: attempt {attempt + 1}/{max_retries + 1} failed: {str(e)}. "
                f"Retrying in {wait_time:.2f}s..."
            )
            await asyncio.sleep(wait_time)

    raise RuntimeError("unreachable")
