"""Firebase Admin SDK wrapper.

Covers what admissions needs from the identity provider: verifying ID
tokens and session cookies, minting cookies, revoking refresh tokens and
the custom-claims read/write used by the authorization projector. SDK
failures are re-raised as application exceptions.
"""

import contextlib
from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache
from typing import Any, NoReturn, Protocol

from firebase_admin import auth as firebase_admin_auth
from firebase_admin.exceptions import FirebaseError

from admissions.auth.exceptions import InvalidTokenError, SessionCookieError
from admissions.core.exceptions import AppException, ProviderError
from admissions.user.exceptions import UserNotFoundError

# Codes the Admin SDK uses, in `code` or in the message, for a missing uid.
USER_NOT_FOUND_CODES = ("USER_NOT_FOUND", "NOT_FOUND")


@dataclass(frozen=True)
class TokenClaims:
    """Identity carried by a verified token.

    `role` and `institution_id` come from custom claims and can lag behind
    the user record, which stays authoritative.
    """

    uid: str
    email: str | None = None
    name: str | None = None
    role: str | None = None
    institution_id: str | None = None


class FirebaseAuthServiceProtocol(Protocol):
    """Identity operations the rest of the service depends on."""

    def create_session_cookie(self, id_token: str, expires_in: timedelta) -> str: ...

    def verify_session_cookie(
        self, session_cookie: str, check_revoked: bool = True
    ) -> TokenClaims: ...

    def verify_id_token(self, id_token: str) -> TokenClaims: ...

    def revoke_refresh_tokens(self, uid: str) -> None: ...

    def get_custom_claims(self, uid: str) -> dict[str, Any]: ...

    def set_custom_claims(self, uid: str, claims: dict[str, Any]) -> None: ...


def claims_from_token(decoded: dict[str, Any], allow_sub: bool = False) -> TokenClaims:
    """Build TokenClaims from a decoded token.

    Session cookies may only carry `sub`, so `allow_sub` accepts it as the
    uid. Raises AppException when no uid is present.
    """
    uid = decoded.get("uid") or (decoded.get("sub") if allow_sub else None)
    if not uid:
        raise AppException("Invalid token: missing uid")

    return TokenClaims(
        uid=uid,
        email=decoded.get("email"),
        name=decoded.get("name"),
        role=decoded.get("role"),
        institution_id=decoded.get("institutionId"),
    )


def raise_for_firebase_error(error: FirebaseError, message: str) -> NoReturn:
    """Re-raise a user-record SDK failure.

    A missing user becomes UserNotFoundError; anything else is a
    ProviderError carrying `message`.
    """
    code = getattr(error, "code", None) or ""
    text = str(error)
    if code in USER_NOT_FOUND_CODES or any(c in text for c in USER_NOT_FOUND_CODES):
        raise UserNotFoundError() from error
    raise ProviderError(message) from error


class FirebaseAuthService:
    def create_session_cookie(self, id_token: str, expires_in: timedelta) -> str:
        """Exchange an ID token for a session cookie valid for `expires_in`."""
        try:
            return firebase_admin_auth.create_session_cookie(
                id_token, expires_in=expires_in
            )
        except (ValueError, FirebaseError) as e:
            raise SessionCookieError("Failed to create session cookie") from e

    def verify_session_cookie(
        self, session_cookie: str, check_revoked: bool = True
    ) -> TokenClaims:
        try:
            decoded = firebase_admin_auth.verify_session_cookie(
                session_cookie, check_revoked=check_revoked
            )
            return claims_from_token(decoded, allow_sub=True)
        except (ValueError, FirebaseError) as e:
            raise SessionCookieError("Invalid session cookie") from e
        except AppException as e:
            raise SessionCookieError(e.message) from e

    def verify_id_token(self, id_token: str) -> TokenClaims:
        try:
            decoded = firebase_admin_auth.verify_id_token(id_token)
            return claims_from_token(decoded)
        except (ValueError, FirebaseError) as e:
            raise InvalidTokenError("Invalid ID token") from e
        except AppException as e:
            raise InvalidTokenError(e.message) from e

    def revoke_refresh_tokens(self, uid: str) -> None:
        """Revoke the user's refresh tokens. Provider failures are ignored."""
        with contextlib.suppress(FirebaseError):
            firebase_admin_auth.revoke_refresh_tokens(uid)

    def get_custom_claims(self, uid: str) -> dict[str, Any]:
        try:
            record = firebase_admin_auth.get_user(uid)
        except FirebaseError as e:
            raise_for_firebase_error(e, "Failed to read custom claims")
        return dict(record.custom_claims or {})

    def set_custom_claims(self, uid: str, claims: dict[str, Any]) -> None:
        """Replace the user's custom claims wholesale."""
        try:
            firebase_admin_auth.set_custom_user_claims(uid, claims)
        except ValueError as e:
            raise ProviderError("Custom claims rejected by provider") from e
        except FirebaseError as e:
            raise_for_firebase_error(e, "Failed to write custom claims")


@lru_cache
def get_firebase_auth_service() -> FirebaseAuthService:
    return FirebaseAuthService()
