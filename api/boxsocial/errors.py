"""
Error taxonomy for the social competition engine.

Services raise these; ``main`` renders them as ``{"detail": ..., "code": ...}``
with the matching HTTP status. Entities outside the caller's tenant are
reported as ``NotFound`` so their existence never leaks.
"""


class EngineError(Exception):
    status_code = 500
    code = "internal"
    default_detail = "internal error"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class Unauthenticated(EngineError):
    status_code = 401
    code = "unauthenticated"
    default_detail = "Authentication required"


class Forbidden(EngineError):
    status_code = 403
    code = "forbidden"
    default_detail = "Not allowed"


class NotFound(EngineError):
    status_code = 404
    code = "not_found"
    default_detail = "Not found"


class InvalidArgument(EngineError):
    status_code = 400
    code = "invalid_argument"
    default_detail = "Invalid argument"


class InvalidReference(EngineError):
    status_code = 422
    code = "invalid_reference"
    default_detail = "Referenced member does not exist"


class Conflict(EngineError):
    status_code = 409
    code = "conflict"
    default_detail = "Conflicting state"


class Internal(EngineError):
    pass
