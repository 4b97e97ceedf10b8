"""Cooperative cancellation shared by every network call in a workflow."""

from __future__ import annotations

import threading
import time

from anthos_hub.errors import OperationCancelledError


class CancelToken:
    """
    Cancellation token with an optional wall-clock deadline.

    One token is created per workflow invocation and handed to every
    component. Network calls check it before issuing a request and clip
    their timeouts to the time that is left; the poll loop sleeps on it so
    that cancelling wakes the waiting thread immediately.
    """

    def __init__(self, deadline: float | None = None) -> None:
        self._event = threading.Event()
        self._deadline = deadline

    @classmethod
    def with_timeout(cls, seconds: float | None) -> CancelToken:
        """Create a token that expires ``seconds`` from now (never, if None)."""
        if seconds is None:
            return cls()
        return cls(deadline=time.monotonic() + seconds)

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining(self) -> float | None:
        """Seconds until the deadline, or None when there is no deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelledError("operation cancelled")
        if self._deadline is not None and time.monotonic() >= self._deadline:
            raise OperationCancelledError("deadline exceeded")

    def request_timeout(self, default: float) -> float:
        """Per-request timeout, never longer than the time left."""
        self.raise_if_cancelled()
        remaining = self.remaining()
        if remaining is None:
            return default
        return min(default, remaining)

    def wait(self, seconds: float) -> None:
        """Sleep up to ``seconds``; raise as soon as the token is cancelled."""
        self.raise_if_cancelled()
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        self._event.wait(seconds)
        self.raise_if_cancelled()
