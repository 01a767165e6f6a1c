"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~acclink.exceptions.AcclinkError` subclass.
Shell wrappers can inspect the exit code to tell a rejected login from a
failed save without parsing stderr.

Example::

    $ acclink link homebridge-nest-cam --alias Nest-cam
    $ echo $?
    3   # EXIT_LINKING_FAILURE -- the linking agent reported an error
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or an invalid field value."""

EXIT_LINKING_FAILURE = 3
"""The linking flow ended with a server error, a closed browser, or a disconnect."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_PERSISTENCE_FAILURE = 8
"""The plugin configuration could not be saved."""
