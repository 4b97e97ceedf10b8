"""Bounded retry loop for long-running Hub operations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from loguru import logger

from anthos_hub.cancellation import CancelToken
from anthos_hub.errors import (
    OperationCancelledError,
    PollTimeoutError,
    UnrecoverableError,
)

DEFAULT_MAX_ATTEMPTS = 60
DEFAULT_INTERVAL_S = 5.0


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to poll and how long to sleep between attempts."""

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    interval: float = DEFAULT_INTERVAL_S

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.interval < 0:
            raise ValueError("interval must not be negative")


def wait_until_done(
    poll: Callable[[], bool],
    policy: RetryPolicy | None = None,
    cancel: CancelToken | None = None,
    description: str = "operation",
) -> None:
    """
    Call ``poll`` until it reports done.

    ``poll`` returns True when finished and False when not yet. A raised
    UnrecoverableError (or cancellation) ends the loop at once; any other
    exception only costs one attempt. After ``policy.max_attempts`` attempts
    without success PollTimeoutError is raised.
    """
    policy = policy or RetryPolicy()
    cancel = cancel or CancelToken()
    last_error: Exception | None = None

    for attempt in range(1, policy.max_attempts + 1):
        cancel.raise_if_cancelled()
        try:
            if poll():
                logger.debug(f"{description} done after {attempt} attempt(s)")
                return
            last_error = None
        except (UnrecoverableError, OperationCancelledError):
            raise
        except Exception as exc:
            last_error = exc
            logger.debug(f"{description} attempt {attempt} failed: {exc}")

        if attempt < policy.max_attempts:
            cancel.wait(policy.interval)

    raise PollTimeoutError(policy.max_attempts, last_error)
