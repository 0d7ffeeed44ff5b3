"""Typed service configuration read from the environment (and `.env`)."""

from datetime import timedelta
from functools import lru_cache

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_GENERIC_EMAIL_DOMAINS = (
    "gmail.com,yahoo.com,hotmail.com,outlook.com,live.com,icloud.com,protonmail.com"
)


def _split_csv(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


class Settings(BaseSettings):
    """Settings for one deployment. Field aliases are the env var names."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Environment
    env_name: str = Field(default="development", alias="ENV_NAME")

    # Database
    database_url: str = Field(default="sqlite:///./admissions.db", alias="DATABASE_URL")
    store_batch_size: int = Field(default=400, alias="STORE_BATCH_SIZE", ge=1, le=500)
    membership_queue_limit: int = Field(
        default=200, alias="MEMBERSHIP_QUEUE_LIMIT", ge=1, le=1000
    )

    # CORS
    cors_origins: str = Field(default="*", alias="CORS_ORIGINS")

    # Firebase / Auth
    session_expires_days: int = Field(
        default=5, alias="SESSION_EXPIRES_DAYS", ge=1, le=14
    )
    session_cookie_name: str = Field(default="session", alias="SESSION_COOKIE_NAME")
    firebase_project_id: str | None = Field(default=None, alias="FIREBASE_PROJECT_ID")

    # Domain matching
    generic_email_domains: str = Field(
        default=DEFAULT_GENERIC_EMAIL_DOMAINS, alias="GENERIC_EMAIL_DOMAINS"
    )

    @computed_field
    @property
    def cors_origins_list(self) -> list[str]:
        return _split_csv(self.cors_origins)

    @computed_field
    @property
    def generic_email_domains_set(self) -> frozenset[str]:
        """Public webmail domains that never match an institution."""
        return frozenset(d.lower() for d in _split_csv(self.generic_email_domains))

    @computed_field
    @property
    def is_secure_cookie(self) -> bool:
        """Secure cookies everywhere except local and test environments."""
        return self.env_name.lower() not in {"dev", "development", "local", "test"}

    @computed_field
    @property
    def session_expires_in(self) -> timedelta:
        return timedelta(days=self.session_expires_days)


@lru_cache
def get_settings() -> Settings:
    """Process-wide settings, loaded on first use."""
    return Settings()
