# src/core/retry.py — v1
"""Retry and backoff policy with exponential delays.

Used for bounded retries of transient store reads and for the change feed
reconnect delay.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryConfig:
    """Exponential backoff configuration."""

    max_retries: int
    base_delay_s: float
    backoff_factor: float = 2.0
    max_delay_s: float = 60.0
    jitter: bool = True


def compute_delay(config: RetryConfig, attempt: int) -> float:
    """Compute delay for a given attempt (0-based), capped at max_delay_s."""
    delay = config.base_delay_s * (config.backoff_factor ** attempt)
    delay = min(delay, config.max_delay_s)
    if config.jitter:
        delay *= 0.5 + random.random()  # noqa: S311
        delay = min(delay, config.max_delay_s)
    return delay


async def with_retry(
    fn: Callable[..., Awaitable[Any]],
    *args: Any,
    retry_on: tuple[type[BaseException], ...],
    config: RetryConfig,
    label: str = "call",
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    **kwargs: Any,
) -> Any:
    """Execute an async function, retrying on the given exception types.

    Exceptions outside ``retry_on`` propagate immediately. When retries are
    exhausted the last exception is re-raised unchanged.
    """
    attempts = 0

    while True:
        try:
            return await fn(*args, **kwargs)
        except retry_on as e:
            attempts += 1
            if attempts > config.max_retries:
                raise

            delay = compute_delay(config, attempts - 1)
            logger.warning(
                "%s — %s (attempt %d/%d), retrying in %.1fs",
                label, e, attempts, config.max_retries, delay,
            )
            await sleep(delay)
