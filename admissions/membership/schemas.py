"""Membership domain schemas."""

from datetime import datetime

from pydantic import Field, field_serializer, model_validator
from sqlmodel import SQLModel

from admissions.membership.models import JoinMethod, MembershipStatus
from admissions.membership.state import ReviewAction
from admissions.user.models import UserRole
from admissions.user.schemas import utc_isoformat


class MembershipRead(SQLModel):
    user_id: str
    institution_id: str
    role: UserRole
    status: MembershipStatus
    is_external: bool
    join_method: JoinMethod
    requested_at: datetime
    reviewed_at: datetime | None
    reviewed_by: str | None
    review_note: str | None
    transferred_to: str | None
    created_at: datetime
    updated_at: datetime

    @field_serializer("requested_at", "reviewed_at", "created_at", "updated_at")
    def serialize_datetime(self, value: datetime | None) -> str | None:
        return utc_isoformat(value)


class JoinRequest(SQLModel):
    institution_id: str = Field(min_length=2, max_length=30)
    join_method: JoinMethod = JoinMethod.browse
    invite_code: str | None = Field(default=None, max_length=32)


class JoinResponse(SQLModel):
    membership: MembershipRead
    created: bool
    reopened: bool


class ReviewRequest(SQLModel):
    action: ReviewAction
    note: str | None = Field(default=None, max_length=500)
    transfer_to: str | None = Field(default=None, max_length=30)

    @model_validator(mode="after")
    def transfer_needs_target(self) -> "ReviewRequest":
        if self.action == ReviewAction.transfer and not self.transfer_to:
            raise ValueError("transfer_to is required for transfer")
        return self


class ReviewResponse(SQLModel):
    """Updated membership plus what the decision cascaded into."""

    membership: MembershipRead
    home_institution_claimed: bool
    claims_projected: bool
    parent_membership_created: bool
    transfer_membership_created: bool


class AssignRequest(SQLModel):
    user_id: str = Field(min_length=1, max_length=128)
    institution_id: str = Field(min_length=2, max_length=30)


class BackfillRequest(SQLModel):
    institution_id: str | None = Field(default=None, max_length=30)


class BackfillResponse(SQLModel):
    created: int
    scanned: int
