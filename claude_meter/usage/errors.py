"""Error taxonomy for usage polling.

Every failure the poller can observe is one of the ``ErrorKind`` values below.
The scheduler stores the kind on the published snapshot instead of raising.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    NOT_LOGGED_IN = "not_logged_in"
    UNAUTHORIZED = "unauthorized"
    TIMEOUT = "timeout"
    UNREACHABLE = "unreachable"
    RATE_LIMITED = "rate_limited"
    MALFORMED_RESPONSE = "malformed_response"

    @property
    def is_auth(self) -> bool:
        """True for failures that mean the user is not (or no longer) logged in."""
        return self in (ErrorKind.NOT_LOGGED_IN, ErrorKind.UNAUTHORIZED)

    @property
    def is_transient(self) -> bool:
        """True for network blips where last-known usage stays valid."""
        return self in (ErrorKind.TIMEOUT, ErrorKind.UNREACHABLE, ErrorKind.RATE_LIMITED)


class UsageError(Exception):
    """Base class for classified usage polling failures."""

    kind: ErrorKind = ErrorKind.UNREACHABLE

    def __init__(self, message: str = "", kind: ErrorKind | None = None) -> None:
        if kind is not None:
            self.kind = kind
        super().__init__(message or self.kind.value)


class CredentialError(UsageError):
    kind = ErrorKind.NOT_LOGGED_IN


class NotLoggedIn(CredentialError):
    """No usable credentials in the local trust store."""


class FetchError(UsageError):
    """Network-level failure talking to the usage endpoint."""


class ParseError(UsageError):
    kind = ErrorKind.MALFORMED_RESPONSE
