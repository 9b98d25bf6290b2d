"""Exception hierarchy for oceanctl.

All exceptions inherit from :class:`OceanctlError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`oceanctl.exit_codes`.
The command runner (:mod:`oceanctl.commands.runner`) catches
``OceanctlError``, prints the message and exits with the error's code;
anything else is a bug and produces a crash log from :func:`oceanctl.app.main`.

Subclass hierarchy::

    OceanctlError (exit 1)
    +-- InvalidUsageError           (exit 2)
    |   +-- MissingArgumentsError
    |   |   +-- MissingRequiredFlagError
    |   +-- MissingValueError
    |   +-- TypeMismatchError
    +-- ConfigError                 (exit 1)
    +-- RemoteAPIError              (exit 5)
    |   +-- AuthError               (exit 3)
    |   +-- NotFoundError           (exit 4)
    |   +-- ServerError             (exit 5)
    |   +-- ConnectionError_        (exit 6)
    +-- AmbiguousResourceError      (exit 4)
    +-- PaginationError             (exit code of the failed page)
    +-- BatchError                  (exit code of the first failed job)
"""

from __future__ import annotations

from typing import Optional, Sequence

from oceanctl.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_SERVER_ERROR,
)


class OceanctlError(Exception):
    """Base exception for all oceanctl errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`oceanctl.exit_codes`.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(OceanctlError):
    """Raised for invalid CLI arguments or flag values."""

    exit_code = EXIT_INVALID_USAGE


class MissingArgumentsError(InvalidUsageError):
    """Raised when a command is invoked without the arguments it needs.

    Args:
        namespace: The command namespace (``parent.command``) used to name
            the failing command in the message.
    """

    def __init__(self, namespace: str, message: str | None = None):
        self.namespace = namespace
        super().__init__(
            message or f"({namespace}) command is missing required arguments"
        )


class MissingRequiredFlagError(MissingArgumentsError):
    """Raised before a handler runs when required flags resolved to nothing."""

    def __init__(self, namespace: str, flags: Sequence[str]):
        self.flags = list(flags)
        names = ", ".join(f"--{f}" for f in self.flags)
        super().__init__(
            namespace,
            f"({namespace}) command is missing required arguments: {names}",
        )


class MissingValueError(InvalidUsageError):
    """Raised by :meth:`~oceanctl.config.Config.get_required` for an unset key."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"missing required argument: {key}")


class TypeMismatchError(InvalidUsageError):
    """Raised when a typed config accessor does not match the key's kind."""

    def __init__(self, key: str, expected: str, actual: str):
        self.key = key
        self.expected = expected
        self.actual = actual
        super().__init__(f"{key} holds a {actual} value, not a {expected}")


class ConfigError(OceanctlError):
    """Raised for configuration problems (unreadable file, uncoercible values)."""

    exit_code = EXIT_GENERIC_FAILURE


class RemoteAPIError(OceanctlError):
    """Raised when the API answers with an error status.

    Args:
        message: Error text, normally ``HTTP <status>: <api message>``.
        status_code: The HTTP status, or ``None`` for transport failures.
    """

    exit_code = EXIT_SERVER_ERROR

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AuthError(RemoteAPIError):
    """Raised on HTTP 401 / 403 (missing, invalid or under-scoped token)."""

    exit_code = EXIT_AUTH_FAILURE


class NotFoundError(RemoteAPIError):
    """Raised when the API returns HTTP 404 (resource not found)."""

    exit_code = EXIT_NOT_FOUND


class ServerError(RemoteAPIError):
    """Raised when the API returns an HTTP 5xx server error."""

    exit_code = EXIT_SERVER_ERROR


class ConnectionError_(RemoteAPIError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class AmbiguousResourceError(OceanctlError):
    """Raised when a name given in place of an ID matches zero or several resources."""

    exit_code = EXIT_NOT_FOUND

    def __init__(self, kind: str, name: str, matches: int):
        self.kind = kind
        self.name = name
        self.matches = matches
        if matches == 0:
            message = f"unable to find {kind} named {name!r}"
        else:
            message = f"{matches} {kind}s are named {name!r}; use the ID instead"
        super().__init__(message)


class PaginationError(OceanctlError):
    """Raised when fetching a page after the first one fails.

    The partially collected items are discarded. When *cause* is itself an
    :class:`OceanctlError` its exit code is kept.
    """

    def __init__(self, message: str, cause: BaseException | None = None):
        exit_code = cause.exit_code if isinstance(cause, OceanctlError) else None
        super().__init__(message, exit_code)
        self.cause = cause


class BatchError(OceanctlError):
    """Raised when one or more jobs of a fanned-out operation failed.

    Args:
        failures: ``(job input, exception)`` pairs for every failed job.
        total: Number of jobs that were run.
    """

    def __init__(self, failures: Sequence[tuple[object, BaseException]], total: int):
        self.failures = list(failures)
        self.total = total
        lines = [f"{len(self.failures)} of {total} operations failed:"]
        lines.extend(f"  {job}: {exc}" for job, exc in self.failures)
        first = self.failures[0][1] if self.failures else None
        exit_code = first.exit_code if isinstance(first, OceanctlError) else None
        super().__init__("\n".join(lines), exit_code)
