"""Product repository."""
from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy import select

from marketplace.infra.database.models.product import Product
from marketplace.infra.database.repositories.base import BaseRepository


class ProductRepository(BaseRepository[Product]):
    model = Product

    async def get_active(self, id: UUID) -> Optional[Product]:
        stmt = select(Product).where(Product.id == id, Product.is_active.is_(True))
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
