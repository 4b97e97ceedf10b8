"""Tests for CancelToken and step-annotated errors."""

import threading
import time

import pytest

from anthos_hub.cancellation import CancelToken
from anthos_hub.errors import HubError, NotFoundError, OperationCancelledError, step


def test_token_without_deadline():
    """Test a fresh token is live and has no deadline."""
    token = CancelToken()
    assert token.cancelled is False
    assert token.remaining() is None
    assert token.request_timeout(30.0) == 30.0
    token.raise_if_cancelled()


def test_cancel_is_observed():
    """Test explicit cancellation."""
    token = CancelToken()
    token.cancel()
    assert token.cancelled is True
    with pytest.raises(OperationCancelledError, match="operation cancelled"):
        token.raise_if_cancelled()


def test_expired_deadline():
    """Test an elapsed deadline behaves like cancellation."""
    token = CancelToken.with_timeout(0)
    assert token.cancelled is True
    with pytest.raises(OperationCancelledError, match="deadline exceeded"):
        token.request_timeout(10.0)


def test_request_timeout_is_clipped_to_deadline():
    """Test per-request timeouts never outlive the deadline."""
    token = CancelToken.with_timeout(5.0)
    assert token.request_timeout(60.0) <= 5.0
    assert token.request_timeout(1.0) == 1.0


def test_wait_wakes_on_cancel():
    """Test a sleeping wait returns promptly when cancelled from another thread."""
    token = CancelToken()
    timer = threading.Timer(0.05, token.cancel)
    timer.start()
    started = time.monotonic()
    try:
        with pytest.raises(OperationCancelledError):
            token.wait(10.0)
    finally:
        timer.cancel()
    assert time.monotonic() - started < 5.0


def test_wait_zero_returns():
    """Test a zero wait on a live token is a no-op."""
    CancelToken().wait(0)


def test_step_prefixes_message():
    """Test nested steps build a readable trail while keeping the type."""
    with pytest.raises(NotFoundError) as exc_info:
        with step("registering"):
            with step("checking membership"):
                raise NotFoundError("membership cluster-a not found")

    error = exc_info.value
    assert error.message == "membership cluster-a not found"
    assert error.steps == ["registering", "checking membership"]
    assert str(error) == "registering: checking membership: membership cluster-a not found"


def test_step_ignores_foreign_exceptions():
    """Test non-package exceptions pass through untouched."""
    with pytest.raises(ValueError, match="^boom$"):
        with step("anything"):
            raise ValueError("boom")


def test_hub_error_without_steps():
    """Test the bare message is rendered when no step was recorded."""
    assert str(HubError("plain")) == "plain"
