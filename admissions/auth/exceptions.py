"""Failures raised while resolving who the caller is and what they may do."""

from admissions.core.exceptions import AuthenticationError, AuthorizationError


class InvalidCredentialsError(AuthenticationError):
    """Raised when no usable credentials accompany the request."""

    error_type = "invalid_credentials"
    default_message = "Not authenticated"


class InvalidTokenError(AuthenticationError):
    """Raised when authentication token is invalid or expired."""

    error_type = "invalid_token"
    default_message = "Invalid authentication token"


class SessionCookieError(AuthenticationError):
    """Raised when session cookie operations fail."""

    error_type = "session_cookie_error"
    default_message = "Session cookie error"


class PermissionDeniedError(AuthorizationError):
    """Raised when the caller's role or scope does not cover the operation."""

    error_type = "forbidden"
