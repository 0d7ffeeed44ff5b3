"""Error taxonomy shared by every domain package.

Each class carries the HTTP status and the `type` string the handlers put
in the `{type, message}` body. Domain packages subclass a base and set
`error_type` plus `default_message`.
"""


class AppException(Exception):
    """Root of the taxonomy; anything else escaping a route becomes a 500."""

    status_code: int = 500
    error_type: str = "internal_error"
    default_message: str = "An unexpected error occurred"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# Authentication errors (401)
class AuthenticationError(AppException):
    """Base class for authentication failures."""

    status_code = 401
    error_type = "authentication_error"
    default_message = "Authentication failed"


# Authorization errors (403)
class AuthorizationError(AppException):
    """Base class for authorization failures.

    Messages stay generic so a denied caller cannot learn whether the
    target entity exists.
    """

    status_code = 403
    error_type = "authorization_error"
    default_message = "Access denied"


# Not found errors (404)
class NotFoundError(AppException):
    """Base class for resource not found errors."""

    status_code = 404
    error_type = "not_found"
    default_message = "Resource not found"


# Conflict errors (409)
class ConflictError(AppException):
    """Base class for resource conflict errors."""

    status_code = 409
    error_type = "conflict"
    default_message = "Resource conflict"


class InvalidStateError(AppException):
    """Raised when an operation is not valid for the entity's lifecycle state."""

    status_code = 409
    error_type = "invalid_state"
    default_message = "Operation not allowed in current state"


# Validation errors (400)
class ValidationError(AppException):
    """Base class for validation errors."""

    status_code = 400
    error_type = "validation_error"
    default_message = "Validation failed"


class BadRequestError(ValidationError):
    """Raised for general bad request errors."""

    error_type = "bad_request"
    default_message = "Bad request"


# External service errors (502)
class ExternalServiceError(AppException):
    """Base class for external service failures."""

    status_code = 502
    error_type = "external_service_error"
    default_message = "External service error"


class ProviderError(ExternalServiceError):
    """Raised when upstream provider returns an unexpected response."""

    error_type = "provider_error"
    default_message = "Authentication provider returned an invalid response"


# Store errors (503)
class StoreUnavailableError(AppException):
    """Raised when the directory store is temporarily unreachable.

    The only failure a caller may retry without side-effect risk.
    """

    status_code = 503
    error_type = "store_unavailable"
    retry_after_seconds = 1
    default_message = "Directory store temporarily unavailable"


# Internal errors (500)
class InternalError(AppException):
    """Raised for internal server errors."""

    status_code = 500
    error_type = "internal_error"
    default_message = "An internal error occurred"
