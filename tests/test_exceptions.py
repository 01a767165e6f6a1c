"""Tests for the exception hierarchy and exit codes."""

from __future__ import annotations

import pytest

from acclink.exceptions import (
    AcclinkError,
    ConfigError,
    ConnectionError_,
    InvalidUsageError,
    LinkingError,
    PersistenceError,
    StepValidationError,
)
from acclink.models import LinkingStep


@pytest.mark.parametrize(
    ("exc_cls", "code"),
    [
        (AcclinkError, 1),
        (ConfigError, 1),
        (InvalidUsageError, 2),
        (LinkingError, 3),
        (ConnectionError_, 6),
        (PersistenceError, 8),
    ],
)
def test_exit_codes(exc_cls, code) -> None:
    exc = exc_cls("message")
    assert exc.exit_code == code
    assert isinstance(exc, AcclinkError)
    assert str(exc) == "message"


def test_exit_code_override() -> None:
    assert LinkingError("x", exit_code=42).exit_code == 42


def test_step_validation_error_carries_step() -> None:
    exc = StepValidationError(LinkingStep.PASSWORD, "Password is required.")
    assert isinstance(exc, InvalidUsageError)
    assert exc.step is LinkingStep.PASSWORD
    assert exc.reason == "Password is required."
    assert exc.exit_code == 2
    assert str(exc) == "Password is required."


def test_connection_error_does_not_shadow_builtin() -> None:
    assert not issubclass(ConnectionError_, ConnectionError)
