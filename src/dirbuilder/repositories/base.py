"""Base repository with common CRUD operations."""

from typing import Any, Generic, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel, select

ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseRepository(Generic[ModelType]):
    """Base repository providing common database operations.

    Repositories handle data access only. Transaction control (commit)
    is done by the caller.
    """

    model: type[ModelType]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, id: Any) -> ModelType | None:
        """Get a record by its primary key."""
        result = await self.session.execute(
            select(self.model).where(self.model.id == id)  # type: ignore[attr-defined]
        )
        return result.scalar_one_or_none()

    async def get_for_update(self, id: Any) -> ModelType | None:
        """Get a record by primary key, locking the row until the transaction ends.

        SQLite has no row locks and SQLAlchemy drops FOR UPDATE there; engines
        from create_engine_for_url open every SQLite transaction with
        BEGIN IMMEDIATE, which holds the database write lock from this read on.
        """
        result = await self.session.execute(
            select(self.model)
            .where(self.model.id == id)  # type: ignore[attr-defined]
            .with_for_update()
        )
        return result.scalar_one_or_none()

    def add(self, entity: ModelType) -> None:
        """Add entity to session (no flush/commit)."""
        self.session.add(entity)

    async def delete(self, entity: ModelType) -> None:
        """Mark entity for deletion (no commit)."""
        await self.session.delete(entity)
