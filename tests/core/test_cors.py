"""Tests for admissions/core/cors.py - CORS middleware configuration."""

from unittest.mock import MagicMock

from admissions.core.cors import add_cors_middleware
from admissions.core.settings import Settings


def test_explicit_origins_allow_credentials():
    """Test configured origins may send the session cookie."""
    mock_app = MagicMock()
    settings = Settings(cors_origins="https://app.example.edu,https://admin.example.edu")

    add_cors_middleware(mock_app, settings)

    mock_app.add_middleware.assert_called_once()
    call_kwargs = mock_app.add_middleware.call_args[1]
    assert call_kwargs["allow_origins"] == [
        "https://app.example.edu",
        "https://admin.example.edu",
    ]
    assert call_kwargs["allow_credentials"] is True
    assert "X-Request-ID" in call_kwargs["expose_headers"]


def test_wildcard_origin_disables_credentials():
    """Test a wildcard origin never allows credentialed requests."""
    mock_app = MagicMock()

    add_cors_middleware(mock_app, Settings(cors_origins="*"))

    assert mock_app.add_middleware.call_args[1]["allow_credentials"] is False
