"""Async retry loop for RPC calls with capped exponential backoff."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterator
from typing import TypeVar

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryConfig(BaseModel):
    """
    Backoff policy shared by every call of one provider.

    Attributes
    ----------
    max_retries : int
        Retries after the first attempt
    base_delay : float
        Seconds to wait before the first retry
    max_delay : float
        Upper bound on any single wait
    exponential_base : float
        Growth factor between consecutive waits

    """

    model_config = ConfigDict(frozen=True)

    max_retries: int = Field(default=3, ge=0)
    base_delay: float = Field(default=1.0, ge=0)
    max_delay: float = Field(default=30.0, ge=0)
    exponential_base: float = Field(default=2.0, ge=1)

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def get_delay(self, attempt: int) -> float:
        """Wait before retry number ``attempt`` (0-indexed), capped at ``max_delay``."""
        return min(self.base_delay * self.exponential_base**attempt, self.max_delay)

    def delays(self) -> Iterator[float]:
        """Waits between consecutive attempts, one per retry."""
        return (self.get_delay(attempt) for attempt in range(self.max_retries))


async def retry_async(
    request: Callable[[], Awaitable[T]],
    config: RetryConfig,
    label: str = "request",
) -> T:
    """
    Await ``request()`` until it succeeds or the retries run out.

    Parameters
    ----------
    request : Callable[[], Awaitable[T]]
        Factory producing a fresh awaitable per attempt
    config : RetryConfig
        Backoff policy
    label : str
        Name used in log messages

    Returns
    -------
    T
        First successful result

    Raises
    ------
    Exception
        The last attempt's error once every attempt failed

    """
    delays = config.delays()
    attempt = 0

    while True:
        attempt += 1
        try:
            return await request()
        except Exception as e:
            delay = next(delays, None)
            if delay is None:
                logger.debug("%s failed after %d attempts: %s", label, attempt, e)
                raise
            logger.debug(
                "%s failed (attempt %d/%d), retrying in %.1fs: %s",
                label,
                attempt,
                config.max_attempts,
                delay,
                e,
            )
            await asyncio.sleep(delay)
