"""Exception hierarchy for acclink.

All exceptions inherit from :class:`AcclinkError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`acclink.exit_codes`.
The top-level error handler in :func:`acclink.app.main` catches
``AcclinkError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    AcclinkError (exit 1)
    +-- InvalidUsageError       (exit 2)
    |   +-- StepValidationError (exit 2)
    +-- LinkingError            (exit 3)
    +-- ConnectionError_        (exit 6)
    +-- PersistenceError        (exit 8)
    +-- ConfigError             (exit 1)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from acclink.exit_codes import (
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_LINKING_FAILURE,
    EXIT_PERSISTENCE_FAILURE,
)

if TYPE_CHECKING:
    from acclink.models import LinkingStep


class AcclinkError(Exception):
    """Base exception for all acclink errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`acclink.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(AcclinkError):
    """Raised for invalid CLI arguments or an operation called out of order."""

    exit_code = EXIT_INVALID_USAGE


class StepValidationError(InvalidUsageError):
    """Raised when a submitted value is rejected before it reaches the agent.

    Args:
        step: The step that was pending when the value was submitted.
        reason: Why the value was rejected (e.g. ``"Password is required."``).
    """

    def __init__(self, step: LinkingStep, reason: str):
        super().__init__(reason)
        self.step = step
        self.reason = reason


class LinkingError(AcclinkError):
    """Raised when a linking flow ends with a remote error or a lost channel."""

    exit_code = EXIT_LINKING_FAILURE


class ConnectionError_(AcclinkError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class PersistenceError(AcclinkError):
    """Raised when the plugin configuration could not be saved."""

    exit_code = EXIT_PERSISTENCE_FAILURE


class ConfigError(AcclinkError):
    """Raised for configuration problems (invalid JSON, bad credential sources)."""

    exit_code = EXIT_GENERIC_FAILURE
