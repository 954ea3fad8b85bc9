"""Shared pydantic base: camelCase on the wire, snake_case in Python."""
from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Pagination(CamelModel):
    current: int
    pages: int
    total: Optional[int] = None
    limit: Optional[int] = None


def money(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


def page_count(total: int, limit: int) -> int:
    return -(-total // max(limit, 1))
