"""Generic async repository for SQLAlchemy 2.0."""
from __future__ import annotations

from typing import ClassVar, Generic, Optional, TypeVar
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

ModelT = TypeVar("ModelT")


class BaseRepository(Generic[ModelT]):
    model: ClassVar[type]

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, id: UUID) -> Optional[ModelT]:
        return await self.session.get(self.model, id)  # type: ignore[return-value]

    async def add(self, instance: ModelT) -> ModelT:
        """Persist an already-built instance (aggregate factories build their own)."""
        self.session.add(instance)
        await self.session.flush()
        return instance

    async def save(self, instance: ModelT) -> ModelT:
        """Flush pending changes on a loaded instance."""
        await self.session.flush()
        return instance


def paginate(page: int, limit: int) -> tuple[int, int]:
    """1-based page number to (offset, limit)."""
    page = max(int(page), 1)
    limit = max(int(limit), 1)
    return (page - 1) * limit, limit
