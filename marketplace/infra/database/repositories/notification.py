"""Notification repository."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import delete, func, select, update

from marketplace.domain.statuses import NotificationStatus
from marketplace.infra.database.models.base import utcnow
from marketplace.infra.database.models.notification import Notification
from marketplace.infra.database.repositories.base import BaseRepository


class NotificationRepository(BaseRepository[Notification]):
    model = Notification

    async def get_for_user(self, id: UUID, user_id: UUID) -> Optional[Notification]:
        stmt = select(Notification).where(Notification.id == id, Notification.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_user(
        self,
        user_id: UUID,
        *,
        status: Optional[str] = None,
        type: Optional[str] = None,
        unread_only: bool = False,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Notification], int]:
        """Newest first. The total counts the filtered set."""
        conditions = [Notification.user_id == user_id]
        if unread_only:
            conditions.append(Notification.status == NotificationStatus.UNREAD.value)
        elif status:
            conditions.append(Notification.status == status)
        if type:
            conditions.append(Notification.type == type)

        total = (
            await self.session.execute(select(func.count()).select_from(Notification).where(*conditions))
        ).scalar_one()
        stmt = (
            select(Notification)
            .where(*conditions)
            .order_by(Notification.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total

    async def unread_count(self, user_id: UUID) -> int:
        stmt = select(func.count()).select_from(Notification).where(
            Notification.user_id == user_id,
            Notification.status == NotificationStatus.UNREAD.value,
        )
        return (await self.session.execute(stmt)).scalar_one()

    async def mark_all_read(self, user_id: UUID) -> int:
        now = utcnow()
        stmt = (
            update(Notification)
            .where(
                Notification.user_id == user_id,
                Notification.status == NotificationStatus.UNREAD.value,
            )
            .values(status=NotificationStatus.READ.value, read_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def delete_for_user(self, id: UUID, user_id: UUID) -> bool:
        stmt = delete(Notification).where(Notification.id == id, Notification.user_id == user_id)
        result = await self.session.execute(stmt)
        return bool(result.rowcount)

    async def delete_read_before(self, cutoff: datetime) -> int:
        stmt = delete(Notification).where(
            Notification.created_at < cutoff,
            Notification.status == NotificationStatus.READ.value,
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0
