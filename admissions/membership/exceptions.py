"""Membership domain exceptions."""

from admissions.core.exceptions import (
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    ValidationError,
)


class MembershipNotFoundError(NotFoundError):
    """Raised when a membership cannot be found."""

    error_type = "membership_not_found"
    default_message = "Membership not found"


class MembershipExistsError(ConflictError):
    """Raised when assigning a user who is already an approved member."""

    error_type = "membership_exists"
    default_message = "User is already a member of this institution"


class InvalidInviteCodeError(ValidationError):
    """Raised when an invite code does not match the institution's code."""

    error_type = "invalid_invite_code"
    default_message = "Invalid invite code"


class DomainMismatchError(ValidationError):
    """Raised when an email_domain join is requested without a matching domain."""

    error_type = "domain_mismatch"
    default_message = "Email domain is not allowed for this institution"


class InvalidJoinMethodError(ValidationError):
    """Raised when a join method cannot be requested by a user."""

    error_type = "invalid_join_method"
    default_message = "Join method not allowed"


class TransferTargetInvalidError(NotFoundError):
    """Raised when a transfer target institution does not exist."""

    error_type = "transfer_target_invalid"
    default_message = "Invalid transfer target"


class ClaimsProjectionError(ExternalServiceError):
    """Raised when custom claims cannot be written to the identity provider."""

    error_type = "claims_projection_error"
    default_message = "Failed to update authorization claims"
