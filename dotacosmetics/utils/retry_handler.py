"""
Retry handler with exponential backoff.

Provides a decorator for automatic retry of failed OpenDota and Steam
requests with configurable backoff and retryable error types.
"""

import time
import random
from functools import wraps
from typing import Callable, Tuple, Type, Optional
import requests

from .logger import get_utils_logger
from .exceptions import NetworkException, APIException, NotFoundException, RateLimitException

logger = get_utils_logger()

# Default retryable HTTP status codes
DEFAULT_RETRYABLE_STATUS_CODES = (429, 500, 502, 503, 504)

# Non-retryable status codes (client errors)
NON_RETRYABLE_STATUS_CODES = (400, 401, 403, 404)


def _api_exception(error: requests.exceptions.HTTPError) -> APIException:
    response = error.response
    status_code = response.status_code
    body = response.text[:500] if response.text else None
    if status_code == 404:
        return NotFoundException("Resource not found", url=response.url, status_code=404, response_body=body)
    return APIException(f"HTTP {status_code} error", url=response.url, status_code=status_code, response_body=body)


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    backoff_factor: float = 2.0,
    retryable_status_codes: Tuple[int, ...] = DEFAULT_RETRYABLE_STATUS_CODES,
    retryable_exceptions: Tuple[Type[Exception], ...] = (
        requests.exceptions.ConnectionError,
        requests.exceptions.Timeout,
        requests.exceptions.ChunkedEncodingError,
    )
):
    """
    Decorator to retry a function with exponential backoff.

    The wrapped function is expected to call ``raise_for_status()`` so that
    HTTP failures surface as ``requests.exceptions.HTTPError``.

    Args:
        max_retries: Maximum number of retry attempts
        base_delay: Initial delay in seconds before first retry
        backoff_factor: Multiplier for delay after each retry
        retryable_status_codes: HTTP status codes that should trigger retry
        retryable_exceptions: Exception types that should trigger retry

    Returns:
        Decorated function with retry logic

    Raises:
        NotFoundException: on HTTP 404, immediately
        APIException: on any other non-retryable HTTP status
        RateLimitException: when HTTP 429 persists after all retries
        NetworkException: when retries are exhausted for other errors
    """

    def decorator(func: Callable) -> Callable:
        def _backoff(attempt: int, reason: str) -> None:
            delay = base_delay * (backoff_factor ** attempt) + random.uniform(0, 1)
            logger.warning(
                f"{func.__name__} attempt {attempt + 1}/{max_retries + 1} failed with {reason}. "
                f"Retrying in {delay:.2f}s..."
            )
            time.sleep(delay)

        @wraps(func)
        def wrapper(*args, **kwargs):
            last_exception: Optional[Exception] = None
            last_status: Optional[int] = None

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except requests.exceptions.HTTPError as e:
                    last_status = e.response.status_code if e.response is not None else None
                    if last_status is not None and (
                        last_status in NON_RETRYABLE_STATUS_CODES or last_status not in retryable_status_codes
                    ):
                        log = logger.warning if last_status == 404 else logger.error
                        log(f"{func.__name__} failed with non-retryable status {last_status}: {e}")
                        raise _api_exception(e) from e
                    last_exception = e
                    reason = f"HTTP {last_status or 'unknown'}: {e}"
                except retryable_exceptions as e:
                    last_exception = e
                    last_status = None
                    reason = f"{type(e).__name__}: {e}"

                if attempt < max_retries:
                    _backoff(attempt, reason)

            logger.error(f"{func.__name__} failed after {max_retries + 1} attempts: {last_exception}")
            if last_status == 429:
                raise RateLimitException(
                    f"Still rate limited after {max_retries + 1} attempts",
                    status_code=429,
                ) from last_exception

            raise NetworkException(
                f"Failed after {max_retries + 1} attempts",
            ) from last_exception

        return wrapper

    return decorator
