"""User domain router.

User administration routes.
"""

from fastapi import APIRouter, Depends

from admissions.auth.dependencies import (
    AdminCallerDep,
    CurrentUserDep,
    SuperAdminCallerDep,
    require_auth,
)
from admissions.core.constants import CommonResponses, Routes
from admissions.user.schemas import (
    ActiveInstitutionUpdate,
    RoleChangeResponse,
    RoleUpdate,
    UserRead,
    WipeResponse,
)
from admissions.user.service import UserServiceDep

router = APIRouter(
    prefix=Routes.USER.prefix,
    tags=[Routes.USER.tag],
    dependencies=[Depends(require_auth)],
    responses={
        **CommonResponses.UNAUTHORIZED,
        **CommonResponses.FORBIDDEN,
    },
)


@router.get("", response_model=list[UserRead])
async def list_users(caller: AdminCallerDep, users: UserServiceDep):
    """List users. Super admins see everyone, institution admins their institution."""
    return users.list_users(caller)


@router.get("/me", response_model=UserRead, responses={**CommonResponses.NOT_FOUND})
async def get_me(user: CurrentUserDep):
    """Get current authenticated user."""
    return user


@router.patch(
    "/me/active-institution",
    response_model=UserRead,
    responses={**CommonResponses.BAD_REQUEST},
)
async def set_active_institution(
    payload: ActiveInstitutionUpdate, user: CurrentUserDep, users: UserServiceDep
):
    """Switch the institution the current user is working in."""
    return users.set_active_institution(user, payload.institution_id)


@router.put(
    "/{uid}/role",
    response_model=RoleChangeResponse,
    responses={**CommonResponses.NOT_FOUND},
)
async def change_role(
    uid: str, payload: RoleUpdate, caller: AdminCallerDep, users: UserServiceDep
):
    """Change a user's role and sync their custom claims."""
    user, projected = users.change_role(caller, uid, payload.role)
    return RoleChangeResponse(
        user=UserRead.model_validate(user), claims_projected=projected
    )


@router.delete("", response_model=WipeResponse)
async def wipe_users(caller: SuperAdminCallerDep, users: UserServiceDep):
    """Delete every user except the caller. Super admin only.

    Memberships and audit logs are retained.
    """
    deleted = users.wipe_users(caller)
    return WipeResponse(deleted=deleted, preserved_uid=caller.uid)
