"""
Base repository.

Row access shared by the payout repositories. Payout tables are append-only
or soft-state, so there is no delete; counters are changed with
update_where, never by reading, adding and writing back.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import exists, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Repository over one mapped model.

    Example:
        class WalletRepository(BaseRepository[Wallet]):
            def __init__(self, session: AsyncSession) -> None:
                super().__init__(Wallet, session)
    """

    def __init__(self, model: type[ModelType], session: AsyncSession) -> None:
        self.model = model
        self.session = session

    async def get_by_id(
        self, id: int, for_update: bool = False
    ) -> ModelType | None:
        """
        Load a row by primary key.

        Args:
            id: Primary key
            for_update: Take a row lock and refresh the identity map copy

        Returns:
            Row or None
        """
        if not for_update:
            return await self.session.get(self.model, id)

        result = await self.session.execute(
            select(self.model)
            .where(self.model.id == id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by(self, **filters: Any) -> ModelType | None:
        """Load the row matching unique column values."""
        result = await self.session.execute(select(self.model).filter_by(**filters))
        return result.scalar_one_or_none()

    async def find_all(
        self, limit: int | None = None, **filters: Any
    ) -> list[ModelType]:
        """Rows matching column values, oldest first."""
        stmt = select(self.model).filter_by(**filters).order_by(self.model.id)
        if limit:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def exists(self, **filters: Any) -> bool:
        result = await self.session.execute(
            select(exists().where(*self._equals(filters)))
        )
        return bool(result.scalar())

    async def create(self, **data: Any) -> ModelType:
        """
        Insert a row and load server-side defaults.

        Unique constraint violations surface as IntegrityError on flush.
        """
        entity = self.model(**data)
        self.session.add(entity)
        await self.session.flush()
        await self.session.refresh(entity)
        return entity

    async def update(self, id: int, **data: Any) -> ModelType | None:
        """
        Set attributes of a row loaded under a row lock.

        Args:
            id: Primary key
            **data: Attribute values

        Returns:
            Updated row or None if it does not exist
        """
        entity = await self.get_by_id(id, for_update=True)
        if entity is None:
            return None

        for key, value in data.items():
            setattr(entity, key, value)
        await self.session.flush()
        return entity

    async def update_where(self, conditions: list[Any], **values: Any) -> int:
        """
        Conditional UPDATE used as compare-and-swap.

        Args:
            conditions: Expressions that must all hold for a row to change
            **values: Column values or SQL expressions

        Returns:
            Number of rows changed (0 means the condition no longer held)
        """
        result = await self.session.execute(
            update(self.model)
            .where(*conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    def _equals(self, filters: dict[str, Any]) -> list[Any]:
        return [getattr(self.model, name) == value for name, value in filters.items()]
