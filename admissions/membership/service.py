"""Membership State Machine operations.

Owns every write to the memberships table: first-login provisioning,
join requests, admin review, direct assignment and bulk backfill. Each
operation receives an explicit `CallerContext`; permission checks run
before any lookup so a denied caller learns nothing about the target.
"""

import logging
from dataclasses import dataclass
from itertools import batched
from typing import Annotated

from fastapi import Depends

from admissions.audit.emitter import AuditEmitter
from admissions.audit.models import AuditSeverity
from admissions.auth.context import CallerContext
from admissions.auth.dependencies import FirebaseAuthDep
from admissions.auth.exceptions import PermissionDeniedError
from admissions.auth.service import TokenClaims
from admissions.core.deps import SessionDep, SettingsDep, StoreDep
from admissions.core.exceptions import (
    AppException,
    BadRequestError,
    ConflictError,
    InvalidStateError,
    StoreUnavailableError,
)
from admissions.core.mixins import utc_now
from admissions.core.settings import Settings
from admissions.db.store import DirectoryStore
from admissions.institution.exceptions import (
    InstitutionInactiveError,
    InstitutionNotFoundError,
    InvalidEmailError,
)
from admissions.institution.matcher import Matched, match
from admissions.institution.models import Institution
from admissions.membership.exceptions import (
    ClaimsProjectionError,
    DomainMismatchError,
    InvalidInviteCodeError,
    InvalidJoinMethodError,
    MembershipExistsError,
    MembershipNotFoundError,
    TransferTargetInvalidError,
)
from admissions.membership.models import JoinMethod, Membership, MembershipStatus
from admissions.membership.projector import AuthorizationProjector
from admissions.membership.state import REOPENABLE, ReviewAction, next_status
from admissions.user.exceptions import UserInactiveError, UserNotFoundError
from admissions.user.models import User, UserRole

logger = logging.getLogger(__name__)

# Join methods a user may pick when asking to join
REQUESTABLE_JOIN_METHODS = frozenset(
    {JoinMethod.browse, JoinMethod.invite_code, JoinMethod.email_domain}
)

BACKFILL_NOTE = "Bulk backfill by admin"


@dataclass(frozen=True)
class BootstrapResult:
    user: User
    created: bool
    # Claims changed, so the client must mint a fresh ID token
    refresh_session: bool


@dataclass(frozen=True)
class JoinResult:
    membership: Membership
    created: bool
    reopened: bool = False


@dataclass(frozen=True)
class ReviewResult:
    membership: Membership
    home_institution_claimed: bool = False
    claims_projected: bool = False
    parent_membership_created: bool = False
    transfer_membership_created: bool = False


@dataclass(frozen=True)
class BackfillResult:
    created: int
    scanned: int


class MembershipService:
    def __init__(
        self,
        store: DirectoryStore,
        projector: AuthorizationProjector,
        audit: AuditEmitter,
        settings: Settings,
    ):
        self.store = store
        self.projector = projector
        self.audit = audit
        self.settings = settings

    # Helpers

    def _matched_id(self, email: str, institutions: list[Institution]) -> str | None:
        """Institution owning the email's domain. Malformed emails match nothing."""
        try:
            result = match(email, institutions, self.settings.generic_email_domains_set)
        except InvalidEmailError:
            logger.warning("Unmatchable email address %r", email)
            return None
        return result.institution_id if isinstance(result, Matched) else None

    def _domain_owned(self, email: str, institution: Institution) -> bool:
        if not email:
            return False
        return self._matched_id(email, [institution]) is not None

    def _project_quietly(self, user_id: str) -> bool:
        try:
            return self.projector.project(user_id)
        except (ClaimsProjectionError, UserNotFoundError) as e:
            logger.warning("Claims projection failed for %s: %s", user_id, e.message)
            return False

    def _claim_home(self, user: User | None, institution_id: str) -> bool:
        """Make `institution_id` the user's home if they have none yet.

        Only mutates the record; the caller commits it with the approval.
        """
        if user is None or user.institution_id:
            return False
        user.institution_id = institution_id
        if not user.active_institution_id:
            user.active_institution_id = institution_id
        return True

    def _cascade_parent(
        self, caller: CallerContext, membership: Membership, institution_id: str
    ) -> bool:
        """Ensure an approved membership in the parent of `institution_id`.

        Runs as its own commit after the approval. A failure here leaves the
        approval in place and is repaired by the next approve, assign or login.
        """
        institution = self.store.get_institution(institution_id)
        parent_id = institution.parent_institution_id if institution else None
        if not parent_id:
            return False
        parent = self.store.get_institution(parent_id)
        if parent is None or not parent.is_active:
            return False
        if self.store.get_membership(membership.user_id, parent_id) is not None:
            return False

        now = utc_now()
        try:
            self.store.atomic_write(
                [
                    Membership(
                        user_id=membership.user_id,
                        institution_id=parent_id,
                        role=membership.role,
                        status=MembershipStatus.approved,
                        is_external=membership.is_external,
                        join_method=JoinMethod.auto_parent,
                        requested_at=now,
                        reviewed_at=now,
                        reviewed_by=caller.uid,
                    )
                ]
            )
        except (ConflictError, StoreUnavailableError) as e:
            logger.warning(
                "Parent membership cascade failed for %s in %s: %s",
                membership.user_id,
                parent_id,
                e.message,
            )
            return False
        return True

    def _reload(self, user_id: str, institution_id: str) -> Membership:
        membership = self.store.get_membership(user_id, institution_id)
        if membership is None:
            raise MembershipNotFoundError()
        return membership

    def _get_active_institution(self, institution_id: str) -> Institution:
        institution = self.store.get_institution(institution_id)
        if institution is None:
            raise InstitutionNotFoundError()
        if not institution.is_active:
            raise InstitutionInactiveError()
        return institution

    # Bootstrap

    def bootstrap(self, principal: TokenClaims) -> BootstrapResult:
        """Provision or refresh the user behind a freshly verified principal."""
        if not principal.email:
            raise BadRequestError("Email not found in token")

        user = self.store.get_user(principal.uid)
        if user is None:
            return self._provision(principal, principal.email)
        return self._refresh(user, created=False)

    def _provision(self, principal: TokenClaims, email: str) -> BootstrapResult:
        institutions = self.store.list_institutions(active_only=True)
        matched_id = self._matched_id(email, institutions)
        mother = self.store.find_mother_institution()

        now = utc_now()
        role = UserRole.instructor if matched_id else UserRole.student
        home = matched_id or (mother.id if mother else "")
        user = User(
            uid=principal.uid,
            email=email,
            display_name=principal.name or "",
            institution_id=home,
            active_institution_id=home or None,
            role=role,
            is_external=matched_id is None,
            last_login_at=now,
        )

        memberships: list[Membership] = []
        if matched_id:
            memberships.append(
                Membership(
                    user_id=user.uid,
                    institution_id=matched_id,
                    role=UserRole.instructor,
                    status=MembershipStatus.approved,
                    is_external=False,
                    join_method=JoinMethod.email_domain,
                    requested_at=now,
                    reviewed_at=now,
                )
            )
        if mother is not None and mother.id != matched_id:
            memberships.append(
                Membership(
                    user_id=user.uid,
                    institution_id=mother.id,
                    role=role,
                    status=MembershipStatus.approved,
                    is_external=user.is_external,
                    join_method=JoinMethod.auto_parent,
                    requested_at=now,
                    reviewed_at=now,
                )
            )

        user, created = self.store.create_user_if_absent(user, memberships)
        if not created:
            # Lost the first-login race; the winner provisioned everything.
            return self._refresh(user, created=False)

        logger.info(
            "Provisioned user %s role=%s institution=%s",
            user.uid,
            user.role.value,
            user.institution_id or "-",
        )
        refresh_session = self._project_quietly(user.uid)
        self.audit.emit(
            CallerContext.from_user(user),
            "auth.login",
            "user",
            user.uid,
            institution_id=user.institution_id,
            details={"created": True, "memberships": len(memberships)},
        )
        return BootstrapResult(user=user, created=True, refresh_session=refresh_session)

    def _refresh(self, user: User, *, created: bool) -> BootstrapResult:
        if not user.is_active:
            raise UserInactiveError()

        user.last_login_at = utc_now()
        self.store.atomic_write([user])

        try:
            added = self._backfill_own_memberships(user)
        except AppException as e:
            logger.warning("Membership backfill failed for %s: %s", user.uid, e.message)
            added = 0

        refresh_session = self._project_quietly(user.uid)
        self.audit.emit(
            CallerContext.from_user(user),
            "auth.login",
            "user",
            user.uid,
            institution_id=user.institution_id,
            details={"created": created, "memberships_backfilled": added},
        )
        return BootstrapResult(
            user=user, created=created, refresh_session=refresh_session
        )

    def _backfill_own_memberships(self, user: User) -> int:
        """Add missing mother/home memberships for an existing user. Never updates."""
        now = utc_now()
        missing: list[Membership] = []

        mother = self.store.find_mother_institution()
        if mother is not None and self.store.get_membership(user.uid, mother.id) is None:
            missing.append(
                Membership(
                    user_id=user.uid,
                    institution_id=mother.id,
                    role=user.role,
                    status=MembershipStatus.approved,
                    is_external=user.is_external,
                    join_method=JoinMethod.auto_parent,
                    requested_at=now,
                    reviewed_at=now,
                )
            )

        home_id = user.institution_id
        if (
            home_id
            and (mother is None or home_id != mother.id)
            and self.store.get_membership(user.uid, home_id) is None
        ):
            home = self.store.get_institution(home_id)
            if home is not None and home.is_active:
                missing.append(
                    Membership(
                        user_id=user.uid,
                        institution_id=home_id,
                        role=user.role,
                        status=MembershipStatus.approved,
                        is_external=user.is_external,
                        join_method=JoinMethod.email_domain,
                        requested_at=now,
                        reviewed_at=now,
                    )
                )

        if missing:
            self.store.atomic_write(missing)
            logger.info("Backfilled %d memberships for %s", len(missing), user.uid)
        return len(missing)

    # Join requests

    def request_join(
        self,
        caller: CallerContext,
        institution_id: str,
        join_method: JoinMethod,
        invite_code: str | None = None,
    ) -> JoinResult:
        """Ask to join an institution; the result waits in its review queue."""
        if join_method not in REQUESTABLE_JOIN_METHODS:
            raise InvalidJoinMethodError()

        institution = self._get_active_institution(institution_id)
        domain_owned = self._domain_owned(caller.email, institution)

        if join_method == JoinMethod.invite_code:
            supplied = (invite_code or "").strip().upper()
            if not supplied or supplied != institution.invite_code:
                raise InvalidInviteCodeError()
        elif join_method == JoinMethod.email_domain:
            if not domain_owned:
                raise DomainMismatchError()
        elif not domain_owned and not institution.allow_external_users:
            raise PermissionDeniedError()

        existing = self.store.get_membership(caller.uid, institution_id)
        if existing is not None and existing.status not in REOPENABLE:
            return JoinResult(membership=existing, created=False)

        now = utc_now()
        if existing is not None:
            previous = existing.status
            reopened = self.store.apply_transition(
                caller.uid,
                institution_id,
                previous,
                {
                    "status": MembershipStatus.pending,
                    "role": UserRole.student,
                    "is_external": not domain_owned,
                    "join_method": join_method,
                    "requested_at": now,
                    "reviewed_at": None,
                    "reviewed_by": None,
                    "review_note": None,
                    "transferred_to": None,
                },
            )
            if not reopened:
                raise InvalidStateError("Membership changed while reopening")
            membership = self._reload(caller.uid, institution_id)
            self.audit.emit(
                caller,
                "membership.reopen",
                "membership",
                f"{caller.uid}:{institution_id}",
                institution_id=institution_id,
                details={"from": previous.value, "join_method": join_method.value},
            )
            return JoinResult(membership=membership, created=True, reopened=True)

        membership = Membership(
            user_id=caller.uid,
            institution_id=institution_id,
            role=UserRole.student,
            status=MembershipStatus.pending,
            is_external=not domain_owned,
            join_method=join_method,
            requested_at=now,
        )
        self.store.atomic_write([membership])
        self.audit.emit(
            caller,
            "membership.request",
            "membership",
            f"{caller.uid}:{institution_id}",
            institution_id=institution_id,
            details={"join_method": join_method.value},
        )
        return JoinResult(membership=membership, created=True)

    def list_own(self, caller: CallerContext) -> list[Membership]:
        return self.store.list_user_memberships(caller.uid)

    def list_queue(
        self,
        caller: CallerContext,
        institution_id: str | None = None,
        status: MembershipStatus | None = MembershipStatus.pending,
    ) -> list[Membership]:
        """Admin review queue, oldest request first."""
        if not caller.is_admin:
            raise PermissionDeniedError()
        if not caller.is_super_admin:
            institution_id = institution_id or caller.institution_id
            if not caller.can_administer(institution_id):
                raise PermissionDeniedError()
        return self.store.scan_memberships_by_institution(
            institution_id, status, limit=self.settings.membership_queue_limit
        )

    # Review

    def review(
        self,
        caller: CallerContext,
        user_id: str,
        institution_id: str,
        action: ReviewAction,
        note: str | None = None,
        transfer_to: str | None = None,
    ) -> ReviewResult:
        """Approve, reject or transfer a membership."""
        if not caller.can_administer(institution_id):
            raise PermissionDeniedError()

        membership = self.store.get_membership(user_id, institution_id)
        if membership is None:
            raise MembershipNotFoundError()

        current = membership.status
        target_status = next_status(current, action)
        now = utc_now()
        values = {
            "status": target_status,
            "reviewed_at": now,
            "reviewed_by": caller.uid,
            "review_note": note,
        }
        details: dict[str, object] = {
            "from": current.value,
            "to": target_status.value,
            "note": note,
        }

        if action == ReviewAction.approve:
            result = self._approve(caller, membership, current, values)
        elif action == ReviewAction.reject:
            self._transition(membership, current, values)
            result = ReviewResult(membership=membership)
        else:
            result = self._transfer(caller, membership, current, values, transfer_to)
            details["transferred_to"] = transfer_to

        details.update(
            home_institution_claimed=result.home_institution_claimed,
            claims_projected=result.claims_projected,
            parent_membership_created=result.parent_membership_created,
            transfer_membership_created=result.transfer_membership_created,
        )
        self.audit.emit(
            caller,
            f"membership.{action.value}",
            "membership",
            f"{user_id}:{institution_id}",
            institution_id=institution_id,
            details=details,
        )
        return result

    def _transition(
        self,
        membership: Membership,
        expected: MembershipStatus,
        values: dict[str, object],
        extra_records: list[User | Membership] | None = None,
    ) -> None:
        applied = self.store.apply_transition(
            membership.user_id,
            membership.institution_id,
            expected,
            values,
            extra_records or [],
        )
        if not applied:
            raise InvalidStateError("Membership was already reviewed")

    def _approve(
        self,
        caller: CallerContext,
        membership: Membership,
        current: MembershipStatus,
        values: dict[str, object],
    ) -> ReviewResult:
        user_id = membership.user_id
        institution_id = membership.institution_id
        user = self.store.get_user(user_id)
        claimed = self._claim_home(user, institution_id)

        self._transition(membership, current, values, [user] if claimed and user else [])

        projected = self._project_quietly(user_id) if claimed else False
        approved = self._reload(user_id, institution_id)
        parent_created = self._cascade_parent(caller, approved, institution_id)
        return ReviewResult(
            membership=approved,
            home_institution_claimed=claimed,
            claims_projected=projected,
            parent_membership_created=parent_created,
        )

    def _transfer(
        self,
        caller: CallerContext,
        membership: Membership,
        current: MembershipStatus,
        values: dict[str, object],
        transfer_to: str | None,
    ) -> ReviewResult:
        if not transfer_to:
            raise BadRequestError("transfer_to is required for transfer")
        if transfer_to == membership.institution_id:
            raise BadRequestError("Cannot transfer to the same institution")
        target = self.store.get_institution(transfer_to)
        if target is None:
            raise TransferTargetInvalidError()
        if not target.is_active:
            raise InstitutionInactiveError("Transfer target is inactive")

        user_id = membership.user_id
        is_external = membership.is_external
        role = membership.role
        now = utc_now()

        extra: list[User | Membership] = []
        existing = self.store.get_membership(user_id, transfer_to)
        if existing is None:
            extra.append(
                Membership(
                    user_id=user_id,
                    institution_id=transfer_to,
                    role=role,
                    status=MembershipStatus.pending,
                    is_external=is_external,
                    join_method=JoinMethod.admin_added,
                    requested_at=now,
                )
            )
        elif existing.status in REOPENABLE:
            existing.status = MembershipStatus.pending
            existing.transferred_to = None
            existing.is_external = is_external
            existing.join_method = JoinMethod.admin_added
            existing.requested_at = now
            existing.reviewed_at = None
            existing.reviewed_by = None
            existing.review_note = None
            extra.append(existing)

        values = {**values, "transferred_to": transfer_to}
        self._transition(membership, current, values, extra)

        transferred = self._reload(user_id, membership.institution_id)
        logger.info(
            "Transferred %s from %s to %s by %s",
            user_id,
            transferred.institution_id,
            transfer_to,
            caller.uid,
        )
        return ReviewResult(
            membership=transferred, transfer_membership_created=bool(extra)
        )

    # Assignment

    def assign(
        self, caller: CallerContext, user_id: str, institution_id: str
    ) -> ReviewResult:
        """Directly add a user to an institution as an approved member."""
        if not caller.can_administer(institution_id):
            raise PermissionDeniedError()

        institution = self._get_active_institution(institution_id)
        user = self.store.get_user(user_id)
        if user is None:
            raise UserNotFoundError()

        existing = self.store.get_membership(user_id, institution_id)
        if existing is not None and existing.status == MembershipStatus.approved:
            raise MembershipExistsError()
        overwrote = existing.status if existing is not None else None

        now = utc_now()
        is_external = not self._domain_owned(user.email, institution)
        note = f"Assigned by {caller.role.value}"
        claimed = self._claim_home(user, institution_id)
        extra: list[User | Membership] = [user] if claimed else []

        if existing is None:
            membership = Membership(
                user_id=user_id,
                institution_id=institution_id,
                role=user.role,
                status=MembershipStatus.approved,
                is_external=is_external,
                join_method=JoinMethod.admin_added,
                requested_at=now,
                reviewed_at=now,
                reviewed_by=caller.uid,
                review_note=note,
            )
            self.store.atomic_write([membership, *extra])
        else:
            # Overwrite in place so the original created_at survives.
            self._transition(
                existing,
                existing.status,
                {
                    "role": user.role,
                    "status": MembershipStatus.approved,
                    "is_external": is_external,
                    "join_method": JoinMethod.admin_added,
                    "requested_at": now,
                    "reviewed_at": now,
                    "reviewed_by": caller.uid,
                    "review_note": note,
                    "transferred_to": None,
                },
                extra,
            )

        projected = self._project_quietly(user_id) if claimed else False
        approved = self._reload(user_id, institution_id)
        parent_created = self._cascade_parent(caller, approved, institution_id)

        self.audit.emit(
            caller,
            "membership.assign",
            "membership",
            f"{user_id}:{institution_id}",
            institution_id=institution_id,
            details={
                "overwrote": overwrote.value if overwrote is not None else None,
                "home_institution_claimed": claimed,
                "parent_membership_created": parent_created,
            },
        )
        return ReviewResult(
            membership=approved,
            home_institution_claimed=claimed,
            claims_projected=projected,
            parent_membership_created=parent_created,
        )

    # Backfill

    def backfill(
        self, caller: CallerContext, institution_id: str | None = None
    ) -> BackfillResult:
        """Create approved memberships for home users that have none."""
        if not caller.is_admin:
            raise PermissionDeniedError()
        if caller.is_super_admin:
            if not institution_id:
                raise BadRequestError("institution_id is required")
            target_id = institution_id
        else:
            target_id = institution_id or caller.institution_id
            if not caller.can_administer(target_id):
                raise PermissionDeniedError()

        if self.store.get_institution(target_id) is None:
            raise InstitutionNotFoundError()

        users = self.store.scan_users_by_institution(target_id)
        members = self.store.member_ids(target_id)
        missing = [user for user in users if user.uid not in members]

        now = utc_now()
        created = 0
        for chunk in batched(missing, self.settings.store_batch_size):
            records = [
                Membership(
                    user_id=user.uid,
                    institution_id=target_id,
                    role=user.role,
                    status=MembershipStatus.approved,
                    is_external=user.is_external,
                    join_method=JoinMethod.email_domain,
                    requested_at=now,
                    reviewed_at=now,
                    reviewed_by=caller.uid,
                    review_note=BACKFILL_NOTE,
                )
                for user in chunk
            ]
            self.store.atomic_write(records)
            created += len(records)

        logger.info(
            "Backfilled %d of %d users into %s", created, len(users), target_id
        )
        self.audit.emit(
            caller,
            "membership.backfill",
            "institution",
            target_id,
            institution_id=target_id,
            details={"created": created, "scanned": len(users)},
            severity=AuditSeverity.warning if created else AuditSeverity.info,
        )
        return BackfillResult(created=created, scanned=len(users))


def get_membership_service(
    session: SessionDep,
    store: StoreDep,
    firebase_auth: FirebaseAuthDep,
    settings: SettingsDep,
) -> MembershipService:
    return MembershipService(
        store=store,
        projector=AuthorizationProjector(store, firebase_auth),
        audit=AuditEmitter(session),
        settings=settings,
    )


MembershipServiceDep = Annotated[MembershipService, Depends(get_membership_service)]
