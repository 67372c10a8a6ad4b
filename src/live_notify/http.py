"""Shared retry policy for outbound HTTP calls.

Transport errors, rate limits (429) and server errors (5xx) are retried with
exponential backoff and jitter. Other HTTP errors are permanent and surface
immediately.
"""

import logging

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

logger = logging.getLogger(__name__)


def is_retryable(error: BaseException) -> bool:
    """Return True for transient HTTP failures worth retrying."""
    if isinstance(error, httpx.TransportError):
        return True
    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        return status == 429 or status >= 500
    return False


retry_transient = retry(
    retry=retry_if_exception(is_retryable),
    wait=wait_exponential_jitter(multiplier=0.5, max=8, jitter=1),
    stop=stop_after_attempt(3),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
