"""Retry policy for idempotent API reads.

The client itself never retries; callers opt in by running a read operation
through a ``Retrying`` built here. Only the listed error types are retried,
with exponential backoff, and the last error is re-raised once attempts run
out.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Tuple, Type

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from config.constants import (
    FLOW_RETRY_BACKOFF_BASE,
    FLOW_RETRY_BACKOFF_MAX,
    FLOW_RETRY_MAX_ATTEMPTS,
)
from domain.exceptions import ApiError


def build_retrying(
    error_types: Tuple[Type[BaseException], ...] = (ApiError,),
    max_attempts: int = FLOW_RETRY_MAX_ATTEMPTS,
    backoff_base: float = FLOW_RETRY_BACKOFF_BASE,
    backoff_max: float = FLOW_RETRY_BACKOFF_MAX,
    sleep: Callable[[float], None] = time.sleep,
) -> Retrying:
    """Build a retry controller.

    Args:
        error_types: Exceptions that trigger another attempt
        max_attempts: Total attempts, including the first
        backoff_base: Delay before the first retry; doubles each time
        backoff_max: Upper bound for a single delay
        sleep: Called with each delay (seconds)

    Returns:
        ``Retrying``; call it as ``retrying(fn, *args, **kwargs)``
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1: {max_attempts}")

    return Retrying(
        retry=retry_if_exception_type(error_types),
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=backoff_base, max=backoff_max),
        sleep=sleep,
        before_sleep=before_sleep_log(logging.getLogger(), logging.DEBUG),
        reraise=True,
    )
