"""
Varnishkit Core - Resilience patterns.

Bounded retry with exponential backoff for transient failures such as
repository key fetches and package downloads. Retries only happen where a
resource declares ``tries`` greater than one.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any, TypeVar

from loguru import logger

from varnishkit.utils.logger import log_prefix

T = TypeVar("T")


def call_with_retry(
    func: Callable[[], T],
    *,
    max_attempts: int = 1,
    initial_delay: float = 0.0,
    max_delay: float = 30.0,
    exponential_base: float = 2.0,
    exceptions: tuple[type[Exception], ...] = (Exception,),
    label: str | None = None,
    sleep: Callable[[float], Any] = time.sleep,
) -> T:
    """
    Call ``func`` until it succeeds or ``max_attempts`` is exhausted.

    Args:
        func: Zero-argument callable.
        max_attempts: Total attempts including the first (default: 1, no retry).
        initial_delay: Delay before the first retry in seconds.
        max_delay: Upper bound for a single delay.
        exponential_base: Backoff multiplier.
        exceptions: Exception types that trigger a retry.
        label: Name used in log messages (default: function name).
        sleep: Sleep function (replaced in tests).

    Returns:
        Result of ``func``.

    Raises:
        The last exception raised by ``func``.
    """
    name = label or getattr(func, "__name__", "call")
    attempts = max(1, max_attempts)

    for attempt in range(1, attempts + 1):
        try:
            return func()
        except exceptions as e:
            if attempt == attempts:
                if attempts > 1:
                    logger.error(f"{log_prefix('❌')} Retry exhausted after {attempts} attempts: {name}")
                raise

            delay = min(initial_delay * (exponential_base ** (attempt - 1)), max_delay)
            error_msg = str(e)[:80] + "..." if len(str(e)) > 80 else str(e)
            logger.warning(
                f"{log_prefix('🔄')} Retry {attempt}/{attempts} for {name} after {delay:.1f}s: {error_msg}"
            )
            if delay > 0:
                sleep(delay)

    raise RuntimeError("Retry logic error")
