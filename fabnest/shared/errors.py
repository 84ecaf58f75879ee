"""Domain errors raised by the service layer.

Each error carries the HTTP status and a short machine code; the handlers in
``fabnest.shared.http`` turn them into ``{"detail": ..., "code": ...}`` bodies.
"""


class DomainError(Exception):
    status_code = 400
    code = "bad_request"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Unauthorized(DomainError):
    status_code = 401
    code = "unauthorized"


class Forbidden(DomainError):
    status_code = 403
    code = "forbidden"


class NotFound(DomainError):
    status_code = 404
    code = "not_found"


class ValidationFailed(DomainError):
    status_code = 400
    code = "validation_error"


class Conflict(DomainError):
    # duplicate quote / duplicate order answer 400 like any other bad request
    status_code = 400
    code = "conflict"
