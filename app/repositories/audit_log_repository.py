"""
AuditLog repository.

Read access to the audit chain tail and ordered history.
"""

from collections.abc import AsyncIterator

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.audit_log import AuditLog
from app.repositories.base import BaseRepository


class AuditLogRepository(BaseRepository[AuditLog]):
    """Repository for AuditLog entity."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(AuditLog, session)

    async def get_tail(self) -> AuditLog | None:
        """Get the newest entry of the chain."""
        stmt = select(AuditLog).order_by(AuditLog.id.desc()).limit(1)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def iter_chain(self, batch_size: int = 500) -> AsyncIterator[AuditLog]:
        """
        Iterate over all entries in insertion order.

        Args:
            batch_size: Rows fetched per query

        Yields:
            AuditLog entries, oldest first
        """
        last_id = 0
        while True:
            stmt = (
                select(AuditLog)
                .where(AuditLog.id > last_id)
                .order_by(AuditLog.id)
                .limit(batch_size)
            )
            result = await self.session.execute(stmt)
            rows = list(result.scalars().all())
            if not rows:
                return
            for row in rows:
                yield row
            last_id = rows[-1].id
