"""Membership domain models.

Memberships live in a top-level table keyed by (user_id, institution_id)
so the admin review queue is a single indexed scan per institution.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import CheckConstraint, Index
from sqlmodel import Field, SQLModel

from admissions.core.mixins import TimestampMixin, utc_now
from admissions.user.models import UserRole


class MembershipStatus(str, Enum):
    """Membership lifecycle status.

    - pending: Requested, awaiting review
    - approved: Active membership
    - rejected: Declined by an admin (terminal, may be re-requested)
    - transferred: Moved to another institution (terminal)
    """

    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    transferred = "transferred"


class JoinMethod(str, Enum):
    """How a membership came to exist."""

    browse = "browse"
    invite_code = "invite_code"
    email_domain = "email_domain"
    admin_added = "admin_added"
    auto_parent = "auto_parent"


class Membership(TimestampMixin, SQLModel, table=True):
    """Membership database model.

    Rows are never deleted. `transferred_to` is set exactly when the
    status is transferred.
    """

    __tablename__: str = "memberships"
    __table_args__ = (
        CheckConstraint(
            "(status = 'transferred') = (transferred_to IS NOT NULL)",
            name="ck_memberships_transferred_to",
        ),
        Index("ix_memberships_institution_status", "institution_id", "status"),
    )

    # No foreign key on user_id: memberships outlive a bulk user wipe.
    user_id: str = Field(primary_key=True, max_length=128)
    institution_id: str = Field(
        primary_key=True, foreign_key="institutions.id", max_length=30
    )
    role: UserRole = Field(default=UserRole.student, max_length=30)
    status: MembershipStatus = Field(default=MembershipStatus.pending, max_length=20)
    is_external: bool = Field(default=False)
    join_method: JoinMethod = Field(max_length=20)
    requested_at: datetime = Field(default_factory=utc_now)
    reviewed_at: datetime | None = Field(default=None)
    reviewed_by: str | None = Field(default=None, max_length=128)
    review_note: str | None = Field(default=None, max_length=500)
    transferred_to: str | None = Field(default=None, max_length=30)
