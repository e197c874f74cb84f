"""Tenacity retry policy for mailbox logins, driven by RetryConfig."""

from __future__ import annotations

from collections.abc import Callable

import structlog
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .config import RetryConfig
from .errors import MailboxConnectionError

logger = structlog.get_logger()


def with_retry(
    config: RetryConfig,
    *,
    retryable_exceptions: tuple[type[BaseException], ...] = (MailboxConnectionError,),
    log=None,
) -> Callable:
    """Return a tenacity retry decorator configured from *config*.

    Every scheduled retry is logged as ``retry_scheduled`` on *log* (the
    module logger by default).  The last failure is re-raised unchanged.

    Usage::

        @with_retry(config.retry, log=bound_logger)
        def login() -> None: ...
    """
    log = log if log is not None else logger

    def _before_sleep(state: RetryCallState) -> None:
        error = state.outcome.exception() if state.outcome else None
        log.warning(
            "retry_scheduled",
            attempt=state.attempt_number,
            max_attempts=config.max_attempts,
            wait_seconds=state.next_action.sleep if state.next_action else None,
            error=str(error),
        )

    return retry(
        stop=stop_after_attempt(config.max_attempts),
        wait=wait_exponential(
            multiplier=config.multiplier,
            min=config.initial_wait_seconds,
            max=config.max_wait_seconds,
        ),
        retry=retry_if_exception_type(retryable_exceptions),
        before_sleep=_before_sleep,
        reraise=True,
    )
