# backend/app/repositories/audit_repository.py
"""
Repository helpers for audit_log persistence and querying.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.audit_log import AuditLog
from app.monitoring.prometheus_metrics import prometheus_metrics


class AuditRepository:
    """Persist and query audit trail entries."""

    def __init__(self, db: Session):
        self.db = db

    def write(self, audit: AuditLog) -> None:
        """Persist a new audit row inside the active transaction."""
        self.db.add(audit)
        prometheus_metrics.record_audit_write(audit.entity_type, audit.action)
        self.db.flush()

    def list_for_entity(
        self, entity_type: str, entity_id: str, *, org_id: Optional[str] = None
    ) -> list[AuditLog]:
        """Return the audit rows for one entity, newest first."""
        stmt = select(AuditLog).where(
            AuditLog.entity_type == entity_type, AuditLog.entity_id == entity_id
        )
        if org_id is not None:
            stmt = stmt.where(AuditLog.org_id == org_id)
        stmt = stmt.order_by(AuditLog.occurred_at.desc(), AuditLog.id.desc())
        return list(self.db.execute(stmt).scalars().all())
