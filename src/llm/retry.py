# src/llm/retry.py - v1
"""Retry policy for transient provider errors.

Rate limiting (429), unavailability (503) and provider overload (529) are
retried after a fixed delay schedule (2s then 5s by default). Everything
else fails immediately.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


class LLMRetryExhausted(Exception):
    """All retries exhausted for an LLM call."""

    def __init__(self, task: str, error_type: str, attempts: int, last_error: Exception):
        self.task = task
        self.error_type = error_type
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Task '{task}' failed after {attempts} attempts ({error_type}): {last_error}"
        )


@dataclass(frozen=True)
class RetryConfig:
    """Delay schedule in seconds; one retry per entry."""

    delays_s: tuple[float, ...] = (2.0, 5.0)
    retryable: frozenset[str] = field(
        default_factory=lambda: frozenset({"rate_limit", "unavailable", "overloaded"})
    )


def classify_error(error: Exception) -> str:
    """Classify an exception into a retry error type."""
    status = getattr(error, "status_code", None)
    msg = str(error).lower()
    name = type(error).__name__.lower()

    if status == 429 or "429" in msg or "rate limit" in msg or "ratelimit" in name:
        return "rate_limit"
    if status == 529 or "529" in msg or "overloaded" in msg:
        return "overloaded"
    if status == 503 or "503" in msg or "unavailable" in msg:
        return "unavailable"
    if "timeout" in name or "timeout" in msg:
        return "timeout"
    if "token" in msg and ("limit" in msg or "exceed" in msg):
        return "token_limit"
    return "unknown"


def is_transient(error: Exception, config: RetryConfig | None = None) -> bool:
    """Whether the error is worth retrying or falling back on."""
    return classify_error(error) in (config or RetryConfig()).retryable


async def with_retry(
    fn: Callable[..., Awaitable[Any]],
    *args: Any,
    task: str = "unknown",
    config: RetryConfig | None = None,
    **kwargs: Any,
) -> Any:
    """Execute an async function with retry logic.

    Raises:
        LLMRetryExhausted: If the error is not retryable or all retries are
            exhausted.
    """
    config = config or RetryConfig()
    attempts = 0

    while True:
        try:
            return await fn(*args, **kwargs)
        except Exception as e:
            error_type = classify_error(e)
            attempts += 1

            if error_type not in config.retryable or attempts > len(config.delays_s):
                raise LLMRetryExhausted(task, error_type, attempts, e) from e

            delay = config.delays_s[attempts - 1]
            logger.warning(
                "Task '%s': %s (attempt %d/%d), retrying in %.1fs",
                task, error_type, attempts, len(config.delays_s), delay,
            )
            await asyncio.sleep(delay)
