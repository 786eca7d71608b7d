"""Monitoring utilities: retry logic, error tracking."""

import logging
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import ParamSpec, TypeVar

import httplib2
import sentry_sdk
from googleapiclient.errors import HttpError
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from .config import get_settings

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

# Google API statuses worth retrying (rate limits, server errors)
RETRYABLE_STATUSES = {429, 500, 502, 503, 504}

# Transport-level errors worth retrying
RETRYABLE_EXCEPTIONS = (
    ConnectionError,
    TimeoutError,
    OSError,  # Low-level network errors (includes ssl.SSLError)
    httplib2.ServerNotFoundError,
)


def setup_sentry() -> None:
    """Initialize Sentry SDK if DSN is configured."""
    settings = get_settings()
    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            environment=settings.environment,
            traces_sample_rate=0.1,
            send_default_pii=False,
        )
        logger.info(f"Sentry initialized for environment: {settings.environment}")


def capture_exception(error: Exception, context: dict | None = None) -> None:
    """Capture exception to Sentry if configured."""
    settings = get_settings()
    if settings.sentry_dsn:
        with sentry_sdk.new_scope() as scope:
            if context:
                for key, value in context.items():
                    scope.set_extra(key, value)
            sentry_sdk.capture_exception(error)
    logger.error(
        "error_captured",
        extra={"error_type": type(error).__name__, "error": str(error)},
        exc_info=error,
    )


def is_transient(error: BaseException) -> bool:
    """True for errors a repeated identical request may get past."""
    if isinstance(error, HttpError):
        return error.resp.status in RETRYABLE_STATUSES
    return isinstance(error, RETRYABLE_EXCEPTIONS)


# Retry decorator for read-only Google API calls. 401 is never retried here:
# token refresh is a separate single-shot step.
google_api_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception(is_transient),
    reraise=True,
    before_sleep=lambda retry_state: logger.warning(
        f"Retrying {retry_state.fn.__name__} after error: {retry_state.outcome.exception()}, "
        f"attempt {retry_state.attempt_number}/3"
    ),
)


def with_error_capture(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
    """Decorator to capture errors to Sentry for async functions."""

    @wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            capture_exception(e, {"function": func.__name__})
            raise

    return wrapper
