"""User domain models.

SQLModel table definition for User.
"""

from datetime import datetime
from enum import Enum

from sqlmodel import Field, SQLModel

from admissions.core.mixins import TimestampMixin


class UserRole(str, Enum):
    """Platform role of a user.

    - student: Default role for self-registered users
    - instructor: Users whose email domain is owned by an institution
    - institution_admin: Administers exactly one institution
    - super_admin: Administers the whole platform
    """

    student = "student"
    instructor = "instructor"
    institution_admin = "institution_admin"
    super_admin = "super_admin"


class User(TimestampMixin, SQLModel, table=True):
    """User database model.

    `role` and `institution_id` are authoritative. The Firebase custom
    claims mirror them and may lag behind.
    """

    __tablename__: str = "users"

    uid: str = Field(primary_key=True, max_length=128)
    email: str = Field(index=True, max_length=255)
    display_name: str = Field(default="", max_length=100)
    # Home institution, empty until one is claimed
    institution_id: str = Field(default="", index=True, max_length=30)
    active_institution_id: str | None = Field(default=None, max_length=30)
    role: UserRole = Field(default=UserRole.student, max_length=30)
    is_external: bool = Field(default=False)
    is_active: bool = Field(default=True)
    last_login_at: datetime | None = Field(default=None)
