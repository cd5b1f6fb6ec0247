"""
Offset pagination shared by every list endpoint.
"""

import math
from dataclasses import dataclass
from typing import Any, Sequence

from fastapi import Query
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession


@dataclass(frozen=True)
class PageParams:
    page: int = 1
    limit: int = 10

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


# Escape character for ILIKE patterns built by ``contains_pattern``
LIKE_ESCAPE = "\\"


def contains_pattern(term: str) -> str:
    """``%term%`` for a substring ILIKE, with ``%`` and ``_`` in ``term`` matched literally."""
    escaped = term.strip().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def page_params(
    page: int = Query(1, ge=1, description="1-based page number"),
    limit: int = Query(10, ge=1, le=100, description="Items per page"),
) -> PageParams:
    return PageParams(page=page, limit=limit)


@dataclass(frozen=True)
class PageResult:
    items: Sequence[Any]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def as_dict(self, items: Sequence[Any] | None = None) -> dict[str, Any]:
        return {
            "items": list(self.items if items is None else items),
            "total": self.total,
            "page": self.page,
            "total_pages": self.total_pages,
        }


async def paginate(db: AsyncSession, stmt: Select, params: PageParams) -> PageResult:
    """Run ``stmt`` for one page and count the full result set.

    ``stmt`` must already carry its filters and ordering.
    """
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = (await db.execute(count_stmt)).scalar_one() or 0
    result = await db.execute(stmt.limit(params.limit).offset(params.offset))
    return PageResult(items=result.scalars().all(), total=total, page=params.page, limit=params.limit)
