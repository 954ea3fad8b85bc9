"""User repository."""
from __future__ import annotations

from marketplace.infra.database.models.user import User
from marketplace.infra.database.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    model = User
