"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~oceanctl.exceptions.OceanctlError` subclass.
Shell scripts wrapping ``oceanctl`` can inspect the exit code to tell a
rejected token from a missing flag without parsing stderr.

Example::

    $ oceanctl compute drive create data --desc "" --region nyc1
    $ echo $?
    2   # EXIT_INVALID_USAGE -- a required flag resolved to nothing
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""Missing positional arguments, unset required flags, or bad flag values."""

EXIT_AUTH_FAILURE = 3
"""The API rejected the access token (HTTP 401 / 403)."""

EXIT_NOT_FOUND = 4
"""The resource does not exist, or a name did not resolve to exactly one resource."""

EXIT_SERVER_ERROR = 5
"""The remote API returned an error status that is not otherwise classified."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""
