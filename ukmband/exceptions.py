"""Domain errors raised by the service layer and mapped to HTTP codes by routers."""


class BandError(Exception):
    """Base class for all domain errors."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(BandError):
    status_code = 404


class ConflictError(BandError):
    status_code = 409


class ValidationError(BandError):
    status_code = 400


class PermissionDeniedError(BandError):
    status_code = 403
