"""User administration.

Role changes, focus institution switching, admin listings and the bulk
wipe used to reset an environment.
"""

import logging
from typing import Annotated

from fastapi import Depends

from admissions.audit.emitter import AuditEmitter
from admissions.audit.models import AuditSeverity
from admissions.auth.context import CallerContext
from admissions.auth.dependencies import FirebaseAuthDep
from admissions.auth.exceptions import PermissionDeniedError
from admissions.core.deps import SessionDep, StoreDep
from admissions.db.store import DirectoryStore
from admissions.membership.exceptions import ClaimsProjectionError
from admissions.membership.models import MembershipStatus
from admissions.membership.projector import AuthorizationProjector
from admissions.user.exceptions import ActiveInstitutionError, UserNotFoundError
from admissions.user.models import User, UserRole

logger = logging.getLogger(__name__)


class UserService:
    def __init__(
        self,
        store: DirectoryStore,
        projector: AuthorizationProjector,
        audit: AuditEmitter,
    ):
        self.store = store
        self.projector = projector
        self.audit = audit

    def list_users(self, caller: CallerContext) -> list[User]:
        if caller.is_super_admin:
            return self.store.list_users()
        if caller.role == UserRole.institution_admin and caller.institution_id:
            return self.store.list_users(caller.institution_id)
        raise PermissionDeniedError()

    def set_active_institution(self, user: User, institution_id: str) -> User:
        """Point the user's focus at an institution they are an approved member of."""
        membership = self.store.get_membership(user.uid, institution_id)
        if membership is None or membership.status != MembershipStatus.approved:
            raise ActiveInstitutionError()

        user.active_institution_id = institution_id
        self.store.atomic_write([user])
        try:
            self.projector.project(user.uid)
        except ClaimsProjectionError as e:
            logger.warning("Claims projection failed for %s: %s", user.uid, e.message)
        return user

    def change_role(
        self, caller: CallerContext, uid: str, role: UserRole
    ) -> tuple[User, bool]:
        """Change a user's role and project it into their claims.

        Institution admins may only manage users of their own institution
        and may not hand out super_admin.
        """
        if not caller.is_admin:
            raise PermissionDeniedError()
        if not caller.is_super_admin and role == UserRole.super_admin:
            raise PermissionDeniedError()

        user = self.store.get_user(uid)
        if not caller.is_super_admin and (
            user is None or not caller.can_administer(user.institution_id)
        ):
            raise PermissionDeniedError()
        if user is None:
            raise UserNotFoundError()
        if not caller.is_super_admin and user.role == UserRole.super_admin:
            raise PermissionDeniedError()

        previous = user.role
        user.role = role
        self.store.atomic_write([user])

        try:
            projected = self.projector.project(uid)
        except ClaimsProjectionError as e:
            logger.warning("Claims projection failed for %s: %s", uid, e.message)
            projected = False

        self.audit.emit(
            caller,
            "user.role_change",
            "user",
            uid,
            institution_id=user.institution_id,
            details={"from": previous.value, "to": role.value},
            severity=AuditSeverity.warning,
        )
        return user, projected

    def wipe_users(self, caller: CallerContext) -> int:
        """Delete every user record except the caller's own.

        Memberships and audit logs are kept. The wiped users' refresh
        tokens are revoked so their sessions cannot be renewed.
        """
        if not caller.is_super_admin:
            raise PermissionDeniedError()

        wiped = [u.uid for u in self.store.list_users() if u.uid != caller.uid]
        deleted = self.store.delete_users_except(caller.uid)
        for uid in wiped:
            self.projector.firebase_auth.revoke_refresh_tokens(uid)
        logger.warning("Bulk user wipe by %s removed %d users", caller.uid, deleted)
        self.audit.emit(
            caller,
            "user.bulk_delete",
            "user",
            "*",
            details={"deleted": deleted, "preserved_uid": caller.uid},
            severity=AuditSeverity.critical,
        )
        return deleted


def get_user_service(
    session: SessionDep, store: StoreDep, firebase_auth: FirebaseAuthDep
) -> UserService:
    return UserService(
        store=store,
        projector=AuthorizationProjector(store, firebase_auth),
        audit=AuditEmitter(session),
    )


UserServiceDep = Annotated[UserService, Depends(get_user_service)]
