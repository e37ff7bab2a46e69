"""Exception types raised by the PG API client and the room board."""

from typing import Optional


class PgAvailabilityError(Exception):
    """Base class for all errors raised by this package."""


class PgTransportError(PgAvailabilityError):
    """The backend could not be reached (connection refused, timeout, ...)."""


class PgApiError(PgAvailabilityError):
    """The backend answered with a non-success response."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"{self.message} (HTTP {self.status_code})"


class PgResponseError(PgAvailabilityError):
    """The backend payload did not match the expected shape."""


class NoBranchSelectedError(PgAvailabilityError):
    """An operation needs a branch but none has been selected yet."""


class BoardBusyError(PgAvailabilityError):
    """A manual refresh was requested while a load is still in flight."""
