"""Retry for idempotent code-hosting API reads.

Git operations and upgrade steps are never retried: a failed step stops the
run where it is.
"""

from collections.abc import Callable
from typing import Any, TypeVar

from gitlab.exceptions import GitlabError
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from bootup.utils.logging import get_logger

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def is_transient_gitlab_error(error: BaseException) -> bool:
    """True for GitLab failures worth retrying: no response, or a 5xx/429."""
    if not isinstance(error, GitlabError):
        return False
    code = error.response_code
    return code is None or code == 429 or code >= 500


def retry_on_exception(
    exceptions: tuple[type[Exception], ...] = (Exception,),
    max_attempts: int = 3,
    min_wait: float = 1,
    max_wait: float = 10,
    when: Callable[[BaseException], bool] | None = None,
) -> Callable[[F], F]:
    """Retry the decorated call with exponential backoff.

    Args:
        exceptions: Exception types that may be retried
        max_attempts: Total attempts, including the first
        min_wait: Minimum backoff in seconds
        max_wait: Maximum backoff in seconds
        when: Optional predicate narrowing which of ``exceptions`` are retried

    Returns:
        Decorator; the last exception is re-raised when attempts run out
    """

    def should_retry(error: BaseException) -> bool:
        return isinstance(error, exceptions) and (when is None or when(error))

    def log_attempt(retry_state: RetryCallState) -> None:
        outcome = retry_state.outcome
        if outcome is None or not outcome.failed:
            return
        error = outcome.exception()
        logger.warning(
            "retry_attempt",
            function=getattr(retry_state.fn, "__qualname__", None),
            attempt=retry_state.attempt_number,
            max_attempts=max_attempts,
            exception=type(error).__name__,
            message=str(error),
        )

    return retry(
        retry=retry_if_exception(should_retry),
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        before_sleep=log_attempt,
        reraise=True,
    )
