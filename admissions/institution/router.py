"""Institution domain router."""

from fastapi import APIRouter, Depends, status

from admissions.auth.dependencies import CallerDep, require_auth
from admissions.core.constants import CommonResponses, Routes
from admissions.institution.schemas import (
    InstitutionBrowse,
    InstitutionCreate,
    InstitutionRead,
    InstitutionUpdate,
)
from admissions.institution.service import InstitutionServiceDep

router = APIRouter(
    prefix=Routes.INSTITUTION.prefix,
    tags=[Routes.INSTITUTION.tag],
    dependencies=[Depends(require_auth)],
    responses={
        **CommonResponses.UNAUTHORIZED,
        **CommonResponses.FORBIDDEN,
    },
)


@router.get("", response_model=None)
async def list_institutions(
    caller: CallerDep, institutions: InstitutionServiceDep, browse: bool = False
) -> list[InstitutionRead] | list[InstitutionBrowse]:
    """List institutions.

    With `browse=true` any user gets the active institutions they may ask
    to join (without admin-only fields).
    """
    found = institutions.list_visible(caller, browse=browse)
    if browse:
        return [InstitutionBrowse.model_validate(i) for i in found]
    return [InstitutionRead.model_validate(i) for i in found]


@router.post(
    "",
    response_model=InstitutionRead,
    status_code=status.HTTP_201_CREATED,
    responses={**CommonResponses.CONFLICT, **CommonResponses.BAD_REQUEST},
)
async def create_institution(
    payload: InstitutionCreate, caller: CallerDep, institutions: InstitutionServiceDep
):
    """Create an institution. Super admin only."""
    return institutions.create(caller, payload)


@router.get(
    "/{institution_id}",
    response_model=InstitutionRead,
    responses={**CommonResponses.NOT_FOUND},
)
async def get_institution(
    institution_id: str, caller: CallerDep, institutions: InstitutionServiceDep
):
    """Get an institution. Super admins or the institution's own admins."""
    return institutions.get(caller, institution_id)


@router.patch(
    "/{institution_id}",
    response_model=InstitutionRead,
    responses={
        **CommonResponses.NOT_FOUND,
        **CommonResponses.CONFLICT,
        **CommonResponses.BAD_REQUEST,
    },
)
async def update_institution(
    institution_id: str,
    payload: InstitutionUpdate,
    caller: CallerDep,
    institutions: InstitutionServiceDep,
):
    """Update an institution.

    Institution admins may change name, email domains and whether external
    users may browse in. Type, parent and activation are super admin only.
    """
    return institutions.update(caller, institution_id, payload)


@router.post(
    "/{institution_id}/invite-code",
    response_model=InstitutionRead,
    responses={**CommonResponses.NOT_FOUND},
)
async def rotate_invite_code(
    institution_id: str, caller: CallerDep, institutions: InstitutionServiceDep
):
    """Generate a new invite code, invalidating the previous one."""
    return institutions.rotate_invite_code(caller, institution_id)
