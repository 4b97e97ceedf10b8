"""Errors raised by hub membership and cluster reconciliation workflows."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator


class HubError(Exception):
    """
    Base error for every failure surfaced by this package.

    Each layer that lets an error pass through records its own step name,
    so the rendered message reads like a breadcrumb trail while the
    exception keeps its concrete type.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
        self.steps: list[str] = []

    def with_step(self, name: str) -> HubError:
        self.steps.insert(0, name)
        return self

    def __str__(self) -> str:
        return ": ".join([*self.steps, self.message])


class NotFoundError(HubError):
    """The requested resource does not exist."""


class AlreadyExistsError(HubError):
    """A resource that was required to be absent already exists."""


class APIError(HubError):
    """Non-2xx response from the Hub or the Kubernetes API server."""

    def __init__(self, status_code: int, body: str, message: str = "") -> None:
        super().__init__(message or f"bad status code {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class UnrecoverableError(HubError):
    """Marks a failure that must stop a poll loop instead of being retried."""

    def __init__(self, cause: Exception) -> None:
        super().__init__(str(cause))
        self.cause = cause


class PollTimeoutError(HubError):
    """Operation did not complete within the allowed number of attempts."""

    def __init__(self, attempts: int, last_error: Exception | None = None) -> None:
        detail = f" (last error: {last_error})" if last_error else ""
        super().__init__(f"operation not done after {attempts} attempts{detail}")
        self.attempts = attempts
        self.last_error = last_error


class ExclusivityConflictError(HubError):
    """The Hub refused exclusivity for this cluster."""

    def __init__(self, message: str, code: int = 0) -> None:
        super().__init__(message)
        self.code = code


class DecodeError(HubError):
    """A response or manifest body could not be decoded."""


class OperationCancelledError(HubError):
    """The caller cancelled the workflow or its deadline expired."""


class UnexpectedStateError(HubError):
    """A membership was found in a state the workflow cannot proceed from."""

    def __init__(self, name: str, state: str, expected: str) -> None:
        super().__init__(f"membership {name} is in state {state}, expected {expected}")
        self.name = name
        self.state = state
        self.expected = expected


@contextmanager
def step(name: str) -> Iterator[None]:
    """Prefix any HubError raised inside the block with ``name``."""
    try:
        yield
    except HubError as exc:
        exc.with_step(name)
        raise
