"""User domain exceptions."""

from admissions.core.exceptions import AuthorizationError, NotFoundError, ValidationError


class UserNotFoundError(NotFoundError):
    """Raised when user cannot be found."""

    error_type = "user_not_found"
    default_message = "User not found"


class UserInactiveError(AuthorizationError):
    """Raised when user is inactive in local database."""

    error_type = "user_inactive"
    default_message = "User is inactive"


class ActiveInstitutionError(ValidationError):
    """Raised when the requested focus institution has no approved membership."""

    error_type = "active_institution_invalid"
    default_message = "No approved membership in the requested institution"
