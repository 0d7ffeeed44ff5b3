"""Auth domain dependencies.

Resolves the request's principal (session cookie first, then bearer ID
token) and turns it into the `CallerContext` every service call receives.
"""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from admissions.auth.context import CallerContext
from admissions.auth.exceptions import (
    InvalidCredentialsError,
    InvalidTokenError,
    PermissionDeniedError,
    SessionCookieError,
)
from admissions.auth.service import (
    FirebaseAuthService,
    TokenClaims,
    get_firebase_auth_service,
)
from admissions.core.deps import SettingsDep, StoreDep
from admissions.core.exceptions import AppException
from admissions.user.exceptions import UserInactiveError, UserNotFoundError
from admissions.user.models import User, UserRole

security = HTTPBearer(auto_error=False)

FirebaseAuthDep = Annotated[FirebaseAuthService, Depends(get_firebase_auth_service)]


def get_principal(
    request: Request,
    firebase_auth: FirebaseAuthDep,
    settings: SettingsDep,
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(security)
    ] = None,
) -> TokenClaims:
    """Verify Firebase authentication and return the token claims.

    Supports two authentication methods (in priority order):
    1. Session cookie (preferred for web apps)
    2. Bearer ID token (for API clients, mobile apps)

    Raises:
        InvalidTokenError: If authentication token is invalid
        InvalidCredentialsError: If not authenticated
    """
    session_cookie = request.cookies.get(settings.session_cookie_name)

    if session_cookie:
        try:
            return firebase_auth.verify_session_cookie(
                session_cookie, check_revoked=True
            )
        except SessionCookieError as e:
            raise InvalidTokenError() from e

    if credentials is not None:
        try:
            return firebase_auth.verify_id_token(credentials.credentials)
        except AppException as e:
            raise InvalidTokenError() from e

    raise InvalidCredentialsError()


PrincipalDep = Annotated[TokenClaims, Depends(get_principal)]


def get_caller(principal: PrincipalDep, store: StoreDep) -> CallerContext:
    """Resolve the caller once per request.

    Authority comes from the live user record only. A principal without a
    record (not bootstrapped yet, or wiped) is an unaffiliated student
    whatever its token claims say.

    Raises:
        UserInactiveError: If the user record is deactivated
    """
    user = store.get_user(principal.uid)
    if user is not None:
        if not user.is_active:
            raise UserInactiveError()
        return CallerContext.from_user(user)

    return CallerContext(
        uid=principal.uid,
        email=principal.email or "",
        role=UserRole.student,
        institution_id="",
    )


CallerDep = Annotated[CallerContext, Depends(get_caller)]


def get_current_user(principal: PrincipalDep, store: StoreDep) -> User:
    """Return the caller's user record.

    Raises:
        UserNotFoundError: If the principal was never bootstrapped
        UserInactiveError: If user is inactive
    """
    user = store.get_user(principal.uid)
    if user is None:
        raise UserNotFoundError()
    if not user.is_active:
        raise UserInactiveError()
    return user


CurrentUserDep = Annotated[User, Depends(get_current_user)]


def require_auth(_caller: CallerDep) -> None:
    """Require authentication without injecting the caller into path operation.

    Use as a router-level dependency when all routes require auth:
        router = APIRouter(dependencies=[Depends(require_auth)])
    """
    pass  # Authentication already validated by CallerDep


def get_admin_caller(caller: CallerDep) -> CallerContext:
    """Verify the caller holds an admin role of some scope.

    Raises:
        PermissionDeniedError: If the caller is neither super_admin nor institution_admin
    """
    if not caller.is_admin:
        raise PermissionDeniedError()
    return caller


AdminCallerDep = Annotated[CallerContext, Depends(get_admin_caller)]


def require_admin(_caller: AdminCallerDep) -> None:
    """Require an admin role without injecting the caller into path operation."""
    pass  # Admin check already validated by AdminCallerDep


def get_super_admin_caller(caller: CallerDep) -> CallerContext:
    if not caller.is_super_admin:
        raise PermissionDeniedError()
    return caller


SuperAdminCallerDep = Annotated[CallerContext, Depends(get_super_admin_caller)]
