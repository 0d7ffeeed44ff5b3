"""Institution domain schemas."""

from datetime import datetime

from pydantic import Field, field_serializer, field_validator
from sqlmodel import SQLModel

from admissions.institution.models import SLUG_PATTERN, InstitutionType
from admissions.user.schemas import utc_isoformat


def _normalize_domains(value: list[str] | None) -> list[str] | None:
    if value is None:
        return None
    domains: list[str] = []
    for raw in value:
        domain = raw.strip().lower().lstrip("@")
        if domain and domain not in domains:
            domains.append(domain)
    return domains


class InstitutionBrowse(SQLModel):
    """Public view used when browsing institutions to join.

    Does not expose the invite code.
    """

    id: str
    name: str
    institution_type: InstitutionType
    parent_institution_id: str | None
    allow_external_users: bool


class InstitutionRead(InstitutionBrowse):
    """Full view for admins of the institution."""

    allowed_email_domains: list[str]
    invite_code: str
    is_active: bool
    created_at: datetime
    updated_at: datetime

    @field_serializer("created_at", "updated_at")
    def serialize_datetime(self, value: datetime) -> str | None:
        return utc_isoformat(value)


class InstitutionCreate(SQLModel):
    id: str = Field(pattern=SLUG_PATTERN)
    name: str = Field(min_length=1, max_length=200)
    institution_type: InstitutionType = InstitutionType.child_online
    parent_institution_id: str | None = None
    allowed_email_domains: list[str] = Field(default_factory=list)
    allow_external_users: bool = True

    @field_validator("allowed_email_domains")
    @classmethod
    def normalize_domains(cls, value: list[str]) -> list[str]:
        return _normalize_domains(value) or []


class InstitutionUpdate(SQLModel):
    """Partial update.

    `institution_type`, `parent_institution_id` and `is_active` are
    reserved for super admins.
    """

    name: str | None = Field(default=None, min_length=1, max_length=200)
    allowed_email_domains: list[str] | None = None
    allow_external_users: bool | None = None
    institution_type: InstitutionType | None = None
    parent_institution_id: str | None = None
    is_active: bool | None = None

    @field_validator("allowed_email_domains")
    @classmethod
    def normalize_domains(cls, value: list[str] | None) -> list[str] | None:
        return _normalize_domains(value)
