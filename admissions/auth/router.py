"""Auth domain router.

Session endpoints: exchange a Firebase ID token for a session cookie
(provisioning the user on first login), logout and the current user.
"""

import logging

from fastapi import APIRouter, Request, Response

from admissions.auth.dependencies import CurrentUserDep, FirebaseAuthDep
from admissions.auth.exceptions import InvalidCredentialsError, SessionCookieError
from admissions.auth.schemas import AuthMessage, SessionCreate, SessionResponse
from admissions.core.constants import CommonResponses, Routes
from admissions.core.deps import SettingsDep
from admissions.membership.service import MembershipServiceDep
from admissions.user.schemas import UserRead

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix=Routes.AUTH.prefix,
    tags=[Routes.AUTH.tag],
    responses={**CommonResponses.BAD_REQUEST},
)


@router.post(
    "/session",
    response_model=SessionResponse,
    responses={**CommonResponses.UNAUTHORIZED, **CommonResponses.FORBIDDEN},
)
async def create_session(
    payload: SessionCreate,
    response: Response,
    firebase_auth: FirebaseAuthDep,
    memberships: MembershipServiceDep,
    settings: SettingsDep,
):
    """Exchange a Firebase ID token for a session cookie.

    Provisions the user on first login and backfills missing memberships
    on later ones. `refresh_session` is true when custom claims changed and
    the client should force-refresh its ID token.
    """
    principal = firebase_auth.verify_id_token(payload.id_token)
    session_cookie = firebase_auth.create_session_cookie(
        payload.id_token, expires_in=settings.session_expires_in
    )

    result = memberships.bootstrap(principal)

    response.set_cookie(
        key=settings.session_cookie_name,
        value=session_cookie,
        max_age=int(settings.session_expires_in.total_seconds()),
        httponly=True,
        secure=settings.is_secure_cookie,
        samesite="lax",
    )
    return SessionResponse(
        user=UserRead.model_validate(result.user),
        created=result.created,
        refresh_session=result.refresh_session,
    )


@router.delete(
    "/session",
    response_model=AuthMessage,
    responses={**CommonResponses.UNAUTHORIZED},
)
async def delete_session(
    request: Request,
    response: Response,
    firebase_auth: FirebaseAuthDep,
    settings: SettingsDep,
):
    """Clear the session cookie and revoke refresh tokens."""
    session_cookie = request.cookies.get(settings.session_cookie_name)
    if not session_cookie:
        raise InvalidCredentialsError()

    # Always clear cookie on logout
    response.delete_cookie(key=settings.session_cookie_name)

    # Best-effort: verify and revoke tokens
    try:
        claims = firebase_auth.verify_session_cookie(
            session_cookie, check_revoked=False
        )
        firebase_auth.revoke_refresh_tokens(claims.uid)
    except SessionCookieError:
        logger.debug("Logout with an invalid session cookie")

    return AuthMessage(message="Logout successful")


@router.get(
    "/me",
    response_model=UserRead,
    responses={**CommonResponses.UNAUTHORIZED, **CommonResponses.NOT_FOUND},
)
async def get_me(user: CurrentUserDep):
    """Get current authenticated user."""
    return user
