"""Bounded retries for logistics calls.

Only ``TransientUpstreamError`` is retried; any other failure, and the last
transient one, propagate to the caller.
"""

import os
import time

import structlog

from allocation.errors import TransientUpstreamError

logger = structlog.get_logger(__name__)


def max_attempts() -> int:
    return int(os.environ.get("LOGISTICS_MAX_ATTEMPTS", "3"))


def backoff_seconds() -> float:
    return float(os.environ.get("LOGISTICS_BACKOFF_SECONDS", "0.5"))


def call_with_retry(operation, *args, attempts: int | None = None, base_delay: float | None = None, **kwargs):
    attempts = attempts or max_attempts()
    base_delay = backoff_seconds() if base_delay is None else base_delay

    for attempt in range(1, attempts + 1):
        try:
            return operation(*args, **kwargs)
        except TransientUpstreamError as exc:
            if attempt == attempts:
                raise
            wait_time = (2 ** (attempt - 1)) * base_delay
            logger.warning(
                "Transient logistics failure, retrying",
                operation=getattr(operation, "__name__", str(operation)),
                attempt=attempt,
                wait_seconds=wait_time,
                error=str(exc),
            )
            if wait_time:
                time.sleep(wait_time)
