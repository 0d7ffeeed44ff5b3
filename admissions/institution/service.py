"""Institution management.

Creation, updates and invite code rotation, enforcing the one-level
hierarchy and the single active mother institution.
"""

import logging
from typing import Annotated

from fastapi import Depends

from admissions.audit.emitter import AuditEmitter
from admissions.auth.context import CallerContext
from admissions.auth.exceptions import PermissionDeniedError
from admissions.core.deps import SessionDep, StoreDep
from admissions.db.store import DirectoryStore
from admissions.institution.exceptions import (
    InstitutionExistsError,
    InstitutionNotFoundError,
    InvalidHierarchyError,
    MotherInstitutionExistsError,
)
from admissions.institution.models import (
    Institution,
    InstitutionType,
    generate_invite_code,
)
from admissions.institution.schemas import InstitutionCreate, InstitutionUpdate

logger = logging.getLogger(__name__)

# Fields an institution_admin may change on their own institution
ADMIN_EDITABLE_FIELDS = frozenset(
    {"name", "allowed_email_domains", "allow_external_users"}
)


class InstitutionService:
    def __init__(self, store: DirectoryStore, audit: AuditEmitter):
        self.store = store
        self.audit = audit

    def _check_hierarchy(
        self,
        institution_id: str,
        institution_type: InstitutionType,
        parent_id: str | None,
        is_active: bool,
    ) -> None:
        if institution_type == InstitutionType.mother:
            if parent_id:
                raise InvalidHierarchyError("A mother institution cannot have a parent")
            if is_active:
                mother = self.store.find_mother_institution()
                if mother is not None and mother.id != institution_id:
                    raise MotherInstitutionExistsError()
            return

        if not parent_id:
            raise InvalidHierarchyError()
        parent = self.store.get_institution(parent_id)
        if parent is None or parent.id == institution_id or not parent.is_mother:
            raise InvalidHierarchyError()

    def list_visible(
        self, caller: CallerContext, *, browse: bool = False
    ) -> list[Institution]:
        """Institutions visible to the caller.

        Browsing lists every active institution; otherwise super admins see
        all of them and everyone else only their home institution.
        """
        if browse:
            return self.store.list_institutions(active_only=True)
        if caller.is_super_admin:
            return self.store.list_institutions()
        if not caller.institution_id:
            return []
        institution = self.store.get_institution(caller.institution_id)
        return [institution] if institution is not None else []

    def get(self, caller: CallerContext, institution_id: str) -> Institution:
        if not caller.can_administer(institution_id):
            raise PermissionDeniedError()
        institution = self.store.get_institution(institution_id)
        if institution is None:
            raise InstitutionNotFoundError()
        return institution

    def create(self, caller: CallerContext, data: InstitutionCreate) -> Institution:
        if not caller.is_super_admin:
            raise PermissionDeniedError()
        if self.store.get_institution(data.id) is not None:
            raise InstitutionExistsError()
        self._check_hierarchy(
            data.id, data.institution_type, data.parent_institution_id, True
        )

        institution = Institution(
            id=data.id,
            name=data.name,
            institution_type=data.institution_type,
            parent_institution_id=data.parent_institution_id,
            allowed_email_domains=data.allowed_email_domains,
            allow_external_users=data.allow_external_users,
        )
        self.store.atomic_write([institution])
        logger.info(
            "Created institution %s (%s)",
            institution.id,
            institution.institution_type.value,
        )
        self.audit.emit(
            caller,
            "institution.create",
            "institution",
            institution.id,
            institution_id=institution.id,
            details={
                "name": institution.name,
                "institution_type": institution.institution_type.value,
                "parent_institution_id": institution.parent_institution_id,
            },
        )
        return institution

    def update(
        self, caller: CallerContext, institution_id: str, data: InstitutionUpdate
    ) -> Institution:
        if not caller.can_administer(institution_id):
            raise PermissionDeniedError()
        institution = self.store.get_institution(institution_id)
        if institution is None:
            raise InstitutionNotFoundError()

        update_data = data.model_dump(exclude_unset=True)
        if not caller.is_super_admin and set(update_data) - ADMIN_EDITABLE_FIELDS:
            raise PermissionDeniedError()

        self._check_hierarchy(
            institution.id,
            update_data.get("institution_type", institution.institution_type),
            update_data.get("parent_institution_id", institution.parent_institution_id),
            update_data.get("is_active", institution.is_active),
        )

        for key, value in update_data.items():
            setattr(institution, key, value)
        self.store.atomic_write([institution])
        self.audit.emit(
            caller,
            "institution.update",
            "institution",
            institution.id,
            institution_id=institution.id,
            details={"fields": sorted(update_data)},
        )
        return institution

    def rotate_invite_code(
        self, caller: CallerContext, institution_id: str
    ) -> Institution:
        if not caller.can_administer(institution_id):
            raise PermissionDeniedError()
        institution = self.store.get_institution(institution_id)
        if institution is None:
            raise InstitutionNotFoundError()

        institution.invite_code = generate_invite_code()
        self.store.atomic_write([institution])
        self.audit.emit(
            caller,
            "institution.invite_code.rotate",
            "institution",
            institution.id,
            institution_id=institution.id,
        )
        return institution


def get_institution_service(
    session: SessionDep, store: StoreDep
) -> InstitutionService:
    return InstitutionService(store=store, audit=AuditEmitter(session))


InstitutionServiceDep = Annotated[InstitutionService, Depends(get_institution_service)]
