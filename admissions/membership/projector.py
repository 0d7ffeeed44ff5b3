"""Authorization Projector.

Copies the authoritative `role`/`institution_id` of a user record into the
Firebase custom claims that clients and security rules read.
"""

import logging
from typing import Any

from admissions.auth.service import FirebaseAuthServiceProtocol
from admissions.core.exceptions import AppException
from admissions.db.store import DirectoryStore
from admissions.membership.exceptions import ClaimsProjectionError
from admissions.user.exceptions import UserNotFoundError
from admissions.user.models import User

logger = logging.getLogger(__name__)


def build_claims(user: User) -> dict[str, Any]:
    return {
        "role": user.role.value,
        "institutionId": user.institution_id,
        "activeInstitutionId": user.active_institution_id,
    }


class AuthorizationProjector:
    def __init__(self, store: DirectoryStore, firebase_auth: FirebaseAuthServiceProtocol):
        self.store = store
        self.firebase_auth = firebase_auth

    def project(self, user_id: str) -> bool:
        """Sync the user's custom claims with the user record.

        Unrelated claims already present are kept. Returns True when the
        claims were written and False when they already matched.

        Raises:
            UserNotFoundError: If there is no user record
            ClaimsProjectionError: If the identity provider rejects the read or write
        """
        user = self.store.get_user(user_id)
        if user is None:
            raise UserNotFoundError()

        desired = build_claims(user)
        try:
            current = self.firebase_auth.get_custom_claims(user_id)
            if all(current.get(key) == value for key, value in desired.items()):
                return False
            self.firebase_auth.set_custom_claims(user_id, {**current, **desired})
        except AppException as e:
            raise ClaimsProjectionError() from e

        logger.info(
            "Projected claims for %s: role=%s institution=%s",
            user_id,
            desired["role"],
            desired["institutionId"],
        )
        return True
