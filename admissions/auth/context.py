"""Caller context.

The resolved identity of whoever is calling an operation. Built once per
request by `admissions.auth.dependencies.get_caller` and passed explicitly
into every service call.
"""

from dataclasses import dataclass

from admissions.user.models import User, UserRole


@dataclass(frozen=True)
class CallerContext:
    uid: str
    email: str
    role: UserRole
    institution_id: str = ""

    @classmethod
    def from_user(cls, user: User) -> "CallerContext":
        return cls(
            uid=user.uid,
            email=user.email,
            role=user.role,
            institution_id=user.institution_id,
        )

    @property
    def is_super_admin(self) -> bool:
        return self.role == UserRole.super_admin

    @property
    def is_admin(self) -> bool:
        return self.role in (UserRole.super_admin, UserRole.institution_admin)

    def can_administer(self, institution_id: str) -> bool:
        """Whether this caller may act as an admin of `institution_id`."""
        if self.is_super_admin:
            return True
        return (
            self.role == UserRole.institution_admin
            and bool(self.institution_id)
            and self.institution_id == institution_id
        )
