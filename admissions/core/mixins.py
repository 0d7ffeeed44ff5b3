"""Reusable model mixins and the clock every stored timestamp comes from."""

from datetime import UTC, datetime

from sqlalchemy import text
from sqlmodel import Field


def utc_now() -> datetime:
    """Current UTC time truncated to whole seconds.

    Rows written in the same second compare equal, so every ordered scan
    adds a key column as tiebreaker.
    """
    return datetime.now(UTC).replace(microsecond=0)


class CreatedAtMixin:
    """Adds an immutable `created_at` for append-only tables."""

    created_at: datetime = Field(
        default_factory=utc_now,
        index=True,
        sa_column_kwargs={"server_default": text("CURRENT_TIMESTAMP")},
    )


class TimestampMixin:
    """Adds `created_at` and `updated_at` for mutable tables.

    Bulk UPDATE statements bypass `onupdate` hooks on some paths, so
    compare-and-swap writes set `updated_at` themselves.
    """

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column_kwargs={"server_default": text("CURRENT_TIMESTAMP")},
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column_kwargs={
            "server_default": text("CURRENT_TIMESTAMP"),
            "onupdate": utc_now,
        },
    )
