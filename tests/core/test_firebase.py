"""Tests for admissions/core/firebase.py - Firebase initialization."""

from unittest.mock import patch

from admissions.core.firebase import init_firebase
from admissions.core.settings import Settings


def test_init_firebase_already_initialized():
    """Test init_firebase() does nothing if Firebase already initialized."""
    with (
        patch("admissions.core.firebase.get_app") as mock_get_app,
        patch("admissions.core.firebase.initialize_app") as mock_init,
    ):
        mock_get_app.return_value = "mock_app"

        init_firebase()

        mock_get_app.assert_called_once()
        mock_init.assert_not_called()


def test_init_firebase_not_initialized():
    """Test init_firebase() initializes Firebase with default options."""
    with (
        patch("admissions.core.firebase.get_app") as mock_get_app,
        patch("admissions.core.firebase.initialize_app") as mock_init,
        patch("admissions.core.firebase.get_settings", return_value=Settings()),
    ):
        mock_get_app.side_effect = ValueError("Firebase app not initialized")

        init_firebase()

        mock_init.assert_called_once_with(options=None)


def test_init_firebase_pins_project():
    """Test FIREBASE_PROJECT_ID is passed to the SDK."""
    settings = Settings(firebase_project_id="admissions-prod")
    with (
        patch("admissions.core.firebase.get_app", side_effect=ValueError()),
        patch("admissions.core.firebase.initialize_app") as mock_init,
        patch("admissions.core.firebase.get_settings", return_value=settings),
    ):
        init_firebase()

        mock_init.assert_called_once_with(options={"projectId": "admissions-prod"})
