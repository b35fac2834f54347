"""
Error taxonomy shared by the service layer.

Routes translate these into HTTP responses; anything else escaping a route
is logged in full and reported as an opaque 500.
"""


class DapsError(Exception):
    """Base class for expected, caller-reportable service errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DapsError, ValueError):
    """Missing or malformed required input."""

    status_code = 400


class NotFoundError(DapsError, LookupError):
    """A referenced entity does not exist."""

    status_code = 404


class ConflictError(DapsError):
    """Unique-constraint violation, or a delete blocked by existing references."""

    status_code = 409


class UnauthorizedError(DapsError):
    """Missing or invalid credentials."""

    status_code = 401


class EmailNotVerifiedError(UnauthorizedError):
    """Valid account whose email address has not been verified yet."""

    status_code = 403


class UpstreamError(DapsError):
    """External provider unreachable or returned unusable data. Never leaves the adapter."""

    status_code = 502
