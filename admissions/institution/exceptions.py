"""Institution domain exceptions."""

from admissions.core.exceptions import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)


class InstitutionNotFoundError(NotFoundError):
    """Raised when an institution cannot be found."""

    error_type = "institution_not_found"
    default_message = "Institution not found"


class InstitutionInactiveError(InvalidStateError):
    """Raised when an operation targets a deactivated institution."""

    error_type = "institution_inactive"
    default_message = "Institution is inactive"


class InstitutionExistsError(ConflictError):
    """Raised when creating an institution with a slug already in use."""

    error_type = "institution_exists"
    default_message = "Institution already exists"


class MotherInstitutionExistsError(ConflictError):
    """Raised when a second active mother institution would be created."""

    error_type = "mother_institution_exists"
    default_message = "An active mother institution already exists"


class InvalidHierarchyError(ValidationError):
    """Raised when the parent/child relationship is not one level deep."""

    error_type = "invalid_hierarchy"
    default_message = "Child institutions must have an active mother as parent"


class InvalidEmailError(ValidationError):
    """Raised when an email address cannot be split into local part and domain."""

    error_type = "invalid_email"
    default_message = "Invalid email address"
