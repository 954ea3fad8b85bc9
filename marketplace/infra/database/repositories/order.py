"""Order repository."""
from __future__ import annotations

from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import Select, func, or_, select

from marketplace.domain.order_numbers import is_order_number
from marketplace.infra.database.models.order import Order
from marketplace.infra.database.repositories.base import BaseRepository

_SORT_COLUMNS = {
    "createdAt": Order.created_at,
    "updatedAt": Order.updated_at,
    "orderNumber": Order.order_number,
    "status": Order.status,
    "total": Order.pricing_total,
}


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class OrderRepository(BaseRepository[Order]):
    model = Order

    async def get_by_order_number(self, order_number: str) -> Optional[Order]:
        if not is_order_number(order_number):
            return None
        stmt = select(Order).where(Order.order_number == order_number)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_for_customer(self, order_number: str, user_id: UUID) -> Optional[Order]:
        """Owner-scoped lookup. Malformed order numbers return None."""
        if not is_order_number(order_number):
            return None
        stmt = select(Order).where(
            Order.order_number == order_number,
            Order.customer_user_id == user_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_transaction_id(self, transaction_id: str) -> Optional[Order]:
        stmt = select(Order).where(Order.payment_transaction_id == transaction_id).limit(1)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def order_number_exists(self, order_number: str) -> bool:
        stmt = select(Order.id).where(Order.order_number == order_number).limit(1)
        result = await self.session.execute(stmt)
        return result.scalar() is not None

    async def _page(self, stmt: Select, *, skip: int, limit: int) -> Tuple[List[Order], int]:
        count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
        total = (await self.session.execute(count_stmt)).scalar_one()
        result = await self.session.execute(stmt.offset(skip).limit(limit))
        return list(result.scalars().all()), total

    async def list_for_customer(
        self,
        user_id: UUID,
        *,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> Tuple[List[Order], int]:
        stmt = select(Order).where(Order.customer_user_id == user_id)
        if status:
            stmt = stmt.where(Order.status == status)
        stmt = stmt.order_by(Order.created_at.desc())
        return await self._page(stmt, skip=skip, limit=limit)

    async def list_admin(
        self,
        *,
        status: Optional[str] = None,
        assigned_to: Optional[str] = None,
        search: Optional[str] = None,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Order], int]:
        stmt = select(Order)
        if status:
            stmt = stmt.where(Order.status == status)
        if assigned_to:
            stmt = stmt.where(Order.assigned_to == assigned_to)
        if search:
            pattern = f"%{_escape_like(search.strip())}%"
            stmt = stmt.where(
                or_(
                    Order.order_number.ilike(pattern, escape="\\"),
                    Order.customer_first_name.ilike(pattern, escape="\\"),
                    Order.customer_last_name.ilike(pattern, escape="\\"),
                    Order.customer_email.ilike(pattern, escape="\\"),
                    Order.service_name.ilike(pattern, escape="\\"),
                )
            )
        column = _SORT_COLUMNS.get(sort_by, Order.created_at)
        stmt = stmt.order_by(column.asc() if sort_order == "asc" else column.desc())
        return await self._page(stmt, skip=skip, limit=limit)

    async def status_counts(self) -> Dict[str, int]:
        stmt = select(Order.status, func.count()).group_by(Order.status)
        result = await self.session.execute(stmt)
        return {status: count for status, count in result.all()}
