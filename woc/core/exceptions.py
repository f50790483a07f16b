"""Error taxonomy shared by the services and the HTTP layer."""


class WocError(Exception):
    """Base class for domain errors; carries the HTTP status it maps to."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(WocError):
    """Raised when a referenced user, project or pull request does not exist."""

    status_code = 404


class InvalidFilterError(WocError):
    """Raised when a filter or sort value cannot be coerced."""

    status_code = 400


class PermissionDeniedError(WocError):
    """Raised when the acting user lacks the mentor/admin role."""

    status_code = 403


class ConflictError(WocError):
    """Raised when a validation decision would un-validate a pull request."""

    status_code = 409


class UpstreamError(WocError):
    """Raised when the external pull request source cannot be used."""

    status_code = 502
