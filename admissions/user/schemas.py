"""User domain schemas.

Request and response schemas for user operations.
"""

from datetime import UTC, datetime

from pydantic import Field, field_serializer
from sqlmodel import SQLModel

from admissions.user.models import UserRole


def utc_isoformat(value: datetime | None) -> str | None:
    """Format datetime as ISO 8601 string in UTC.

    Converts datetime to UTC timezone and formats with Z suffix
    (e.g. 2026-01-19T12:34:56Z).
    """
    if value is None:
        return None
    if value.tzinfo is not None:
        utc_value = value.astimezone(UTC)
    else:
        # Naive datetime - assume it's already UTC (from TimestampMixin)
        utc_value = value.replace(tzinfo=UTC)

    return utc_value.replace(microsecond=0).isoformat().replace("+00:00", "Z")


class UserRead(SQLModel):
    """Response schema for a user record."""

    uid: str
    email: str
    display_name: str
    institution_id: str
    active_institution_id: str | None
    role: UserRole
    is_external: bool
    is_active: bool
    last_login_at: datetime | None
    created_at: datetime
    updated_at: datetime

    @field_serializer("last_login_at", "created_at", "updated_at")
    def serialize_datetime(self, value: datetime | None) -> str | None:
        return utc_isoformat(value)


class ActiveInstitutionUpdate(SQLModel):
    """Request schema for switching the caller's focus institution."""

    institution_id: str = Field(min_length=2, max_length=30)


class RoleUpdate(SQLModel):
    role: UserRole


class RoleChangeResponse(SQLModel):
    user: UserRead
    claims_projected: bool


class WipeResponse(SQLModel):
    deleted: int
    preserved_uid: str
