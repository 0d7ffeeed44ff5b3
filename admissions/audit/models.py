"""Audit domain models."""

import uuid
from enum import Enum
from typing import Any

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from admissions.core.mixins import CreatedAtMixin


class AuditSeverity(str, Enum):
    info = "info"
    warning = "warning"
    critical = "critical"


class AuditLog(CreatedAtMixin, SQLModel, table=True):
    """Append-only audit trail entry."""

    __tablename__: str = "audit_logs"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    institution_id: str = Field(default="", index=True, max_length=30)
    actor_id: str = Field(max_length=128)
    actor_email: str = Field(default="", max_length=255)
    actor_role: str = Field(default="", max_length=30)
    # Dot-namespaced, e.g. "membership.approve"
    action: str = Field(index=True, max_length=64)
    resource: str = Field(max_length=64)
    resource_id: str = Field(max_length=200)
    details: dict[str, Any] = Field(
        default_factory=dict, sa_column=Column(JSON, nullable=False)
    )
    severity: AuditSeverity = Field(default=AuditSeverity.info, max_length=20)
