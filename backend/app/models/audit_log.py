# backend/app/models/audit_log.py
"""
Audit trail of operator actions.

One row per state change, with the before/after snapshots stored as JSON
(JSONB on PostgreSQL).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from sqlalchemy import Column, DateTime, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from sqlalchemy.types import JSON
import ulid

from app.database import Base

_JSON_SNAPSHOT = JSONB(astext_type=Text()).with_variant(JSON(), "sqlite")


class AuditLog(Base):
    """An audited change to one entity."""

    __tablename__ = "audit_log"
    __table_args__ = (Index("ix_audit_log_entity", "entity_type", "entity_id"),)

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    org_id = Column(String(26), nullable=True, index=True)
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(String(64), nullable=False)
    action = Column(String(30), nullable=False)
    actor_id = Column(String(26), nullable=True)
    actor_role = Column(String(30), nullable=True)
    occurred_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )
    before = Column(_JSON_SNAPSHOT, nullable=True)
    after = Column(_JSON_SNAPSHOT, nullable=True)

    @classmethod
    def from_change(
        cls,
        entity_type: str,
        entity_id: str,
        action: str,
        *,
        actor_id: Optional[str],
        actor_role: Optional[str] = None,
        before: Mapping[str, Any] | None = None,
        after: Mapping[str, Any] | None = None,
        org_id: Optional[str] = None,
    ) -> "AuditLog":
        """Build an entry from an actor and the entity's state around the change."""
        return cls(
            org_id=org_id,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            actor_id=actor_id,
            actor_role=actor_role,
            before=dict(before) if before is not None else None,
            after=dict(after) if after is not None else None,
        )
