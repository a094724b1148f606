"""Error taxonomy for the RIPS API client."""
from __future__ import annotations

from typing import Optional


class RipsError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(RipsError, ValueError):
    """Client was configured or used in an invalid way (no network call was made)."""


class ApiError(RipsError):
    """A request to the API did not produce a usable result."""

    status: Optional[int] = None

    def __init__(self, message: str = "", status: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status

    def __str__(self) -> str:
        if self.status is None:
            return self.message
        return f"HTTP {self.status}: {self.message}" if self.message else f"HTTP {self.status}"


class BadRequestError(ApiError):
    status = 400


class NotAuthorizedError(ApiError):
    status = 401


class NotFoundError(ApiError):
    status = 404


class ServerError(ApiError):
    status = 500


class UnexpectedStatusError(ApiError):
    """Status code outside of the documented set (200/400/401/404/500)."""


class UnexpectedResponseError(ApiError):
    """Successful status, but the body could not be decoded as JSON."""


class TransportError(ApiError):
    """Connection, TLS, DNS or timeout failure below the HTTP layer."""


class ScanTimeoutError(RipsError, TimeoutError):
    """Scan did not finish within the allowed wait time."""


class PollCancelledError(RipsError):
    """Waiting for a scan was cancelled between two polls."""


# status code -> error class, for the statuses the API documents
STATUS_ERRORS = {
    400: BadRequestError,
    401: NotAuthorizedError,
    404: NotFoundError,
    500: ServerError,
}
