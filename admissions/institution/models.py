"""Institution domain models.

SQLModel table definition for Institution.
"""

import secrets
from enum import Enum

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from admissions.core.mixins import TimestampMixin

SLUG_PATTERN = r"^[a-z0-9-]{2,30}$"


class InstitutionType(str, Enum):
    """Position of an institution in the one-level hierarchy."""

    mother = "mother"
    child_online = "child_online"
    child_offline = "child_offline"


def generate_invite_code() -> str:
    """Return a fresh 8 character upper-case hex invite code."""
    return secrets.token_hex(4).upper()


class Institution(TimestampMixin, SQLModel, table=True):
    """Institution (tenant) database model.

    Institutions are deactivated, never deleted.
    """

    __tablename__: str = "institutions"

    id: str = Field(primary_key=True, max_length=30)
    name: str = Field(max_length=200)
    institution_type: InstitutionType = Field(
        default=InstitutionType.child_online, max_length=20
    )
    parent_institution_id: str | None = Field(
        default=None, foreign_key="institutions.id", index=True, max_length=30
    )
    allowed_email_domains: list[str] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    invite_code: str = Field(default_factory=generate_invite_code, max_length=8)
    allow_external_users: bool = Field(default=True)
    is_active: bool = Field(default=True, index=True)

    @property
    def is_mother(self) -> bool:
        return self.institution_type == InstitutionType.mother
