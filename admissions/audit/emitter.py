"""Audit Emitter.

Best-effort audit trail: each event is written to the audit_logs table and
mirrored to the `admissions.audit` logger. A failed write never fails the
operation that triggered it.
"""

import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from admissions.audit.models import AuditLog, AuditSeverity
from admissions.auth.context import CallerContext

logger = logging.getLogger("admissions.audit")


class AuditEmitter:
    def __init__(self, session: Session):
        self.session = session

    def emit(
        self,
        actor: CallerContext,
        action: str,
        resource: str,
        resource_id: str,
        *,
        institution_id: str = "",
        details: dict[str, Any] | None = None,
        severity: AuditSeverity = AuditSeverity.info,
    ) -> AuditLog | None:
        """Record one audit event. Returns the stored row, or None if the write failed."""
        entry = AuditLog(
            institution_id=institution_id,
            actor_id=actor.uid,
            actor_email=actor.email,
            actor_role=actor.role.value,
            action=action,
            resource=resource,
            resource_id=resource_id,
            details=details or {},
            severity=severity,
        )
        extra = {
            "action": action,
            "actor_id": actor.uid,
            "institution_id": institution_id,
            "resource_id": resource_id,
            "severity": severity.value,
        }
        log = logger.warning if severity == AuditSeverity.critical else logger.info
        log("%s %s/%s by %s", action, resource, resource_id, actor.uid, extra=extra)

        try:
            self.session.add(entry)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("Failed to persist audit event %s", action, extra=extra)
            return None
        return entry
