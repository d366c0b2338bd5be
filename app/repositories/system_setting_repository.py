"""
SystemSetting repository.

Data access for the business settings store.
"""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.system_setting import SystemSetting
from app.repositories.base import BaseRepository


class SystemSettingRepository(BaseRepository[SystemSetting]):
    """Repository for SystemSetting entity."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(SystemSetting, session)

    async def get_by_prefix(self, prefix: str = "") -> dict[str, Any]:
        """
        Get active settings whose key starts with prefix.

        Args:
            prefix: Key prefix, e.g. "binary."

        Returns:
            Mapping of key to stored value
        """
        stmt = select(SystemSetting.key, SystemSetting.value).where(
            SystemSetting.is_active.is_(True)
        )
        if prefix:
            stmt = stmt.where(SystemSetting.key.startswith(prefix))
        result = await self.session.execute(stmt)
        return {row.key: row.value for row in result.all()}

    async def set_value(
        self, key: str, value: Any, description: str | None = None
    ) -> SystemSetting:
        """
        Create or update a setting.

        Args:
            key: Setting key
            value: JSON-serializable value
            description: Optional description

        Returns:
            Stored setting
        """
        setting = await self.get_by(key=key)
        if setting is None:
            return await self.create(
                key=key, value=value, description=description
            )
        setting.value = value
        setting.is_active = True
        if description is not None:
            setting.description = description
        await self.session.flush()
        return setting
