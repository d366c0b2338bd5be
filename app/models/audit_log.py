"""
AuditLog model.

Append-only, hash-chained audit trail.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.enums import AuditSeverity
from app.models.types import JSONType, UTCDateTime, utc_default


class AuditLog(Base):
    """
    Audit log entry.

    entry_hash covers the entry content and previous_hash. previous_hash is
    unique so two writers can never extend the same tail.
    """

    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("idx_audit_logs_entity", "entity", "entity_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    entity: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    actor: Mapped[str] = mapped_column(String(255), nullable=False, default="system")
    actor_role: Mapped[str] = mapped_column(
        String(50), nullable=False, default="system"
    )
    severity: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AuditSeverity.INFO.value
    )
    payload: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utc_default
    )

    previous_hash: Mapped[str] = mapped_column(
        String(64), unique=True, nullable=False
    )
    entry_hash: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<AuditLog(id={self.id}, {self.entity}:{self.entity_id} "
            f"{self.action})>"
        )
