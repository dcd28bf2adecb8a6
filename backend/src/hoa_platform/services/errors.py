"""Business error taxonomy shared by every service.

Routes never see these as HTTPException; ``app.error_handlers`` maps each
category onto an HTTP status.
"""


class ServiceError(Exception):
    """Base class for expected business failures."""

    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(ServiceError):
    """An entity id does not resolve."""

    status_code = 404


class ForbiddenError(ServiceError):
    """Caller is authenticated but lacks the required relationship."""

    status_code = 403


class ConflictError(ServiceError):
    """Uniqueness violation (duplicate bid, HOA number already led, ...)."""

    status_code = 409


class InvalidInputError(ServiceError):
    """Malformed input or an operation not allowed in the current state."""

    status_code = 400


class UnauthorizedError(ServiceError):
    """Credentials did not check out (login, change password)."""

    status_code = 401
