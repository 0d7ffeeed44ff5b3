"""Tests for admissions/membership/projector.py - Authorization Projector."""

from unittest.mock import MagicMock

import pytest

from admissions.core.exceptions import ProviderError
from admissions.db.store import DirectoryStore
from admissions.membership.exceptions import ClaimsProjectionError
from admissions.membership.projector import AuthorizationProjector, build_claims
from admissions.user.exceptions import UserNotFoundError
from admissions.user.models import User


def test_build_claims(acme_admin: User):
    """Test claims mirror role and institution of the user record."""
    assert build_claims(acme_admin) == {
        "role": "institution_admin",
        "institutionId": "acme",
        "activeInstitutionId": "acme",
    }


def test_project_merges_over_existing_claims(
    store: DirectoryStore, mock_firebase_auth: MagicMock, acme_admin: User
):
    """Test unrelated claims survive a projection."""
    mock_firebase_auth.get_custom_claims.return_value = {"beta": True, "role": "student"}

    projected = AuthorizationProjector(store, mock_firebase_auth).project(acme_admin.uid)

    assert projected is True
    mock_firebase_auth.set_custom_claims.assert_called_once_with(
        acme_admin.uid,
        {
            "beta": True,
            "role": "institution_admin",
            "institutionId": "acme",
            "activeInstitutionId": "acme",
        },
    )


def test_project_is_noop_when_claims_match(
    store: DirectoryStore, mock_firebase_auth: MagicMock, acme_admin: User
):
    """Test matching claims are not rewritten."""
    mock_firebase_auth.get_custom_claims.return_value = build_claims(acme_admin)

    projected = AuthorizationProjector(store, mock_firebase_auth).project(acme_admin.uid)

    assert projected is False
    mock_firebase_auth.set_custom_claims.assert_not_called()


def test_project_unknown_user(store: DirectoryStore, mock_firebase_auth: MagicMock):
    """Test projecting a missing user record fails loudly."""
    with pytest.raises(UserNotFoundError):
        AuthorizationProjector(store, mock_firebase_auth).project("ghost")


def test_project_provider_failure(
    store: DirectoryStore, mock_firebase_auth: MagicMock, student: User
):
    """Test provider errors are wrapped in ClaimsProjectionError."""
    mock_firebase_auth.set_custom_claims.side_effect = ProviderError()

    with pytest.raises(ClaimsProjectionError):
        AuthorizationProjector(store, mock_firebase_auth).project(student.uid)
