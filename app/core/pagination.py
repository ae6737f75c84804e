"""Page/limit query parsing and the count-then-page query used by every list endpoint."""

import re
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from fastapi import HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from app.core.config import settings
from app.core.schemas import PaginationMeta

INVALID_PAGINATION_MESSAGE = "Invalid pagination params"

_LEADING_INT = re.compile(r"\s*([+-]?[0-9]+)")


@dataclass(frozen=True)
class PageParams:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def _parse_positive_int(raw: Optional[str], default: int) -> Optional[int]:
    """Leading-digits parse: ``"5abc"`` is 5, ``"1_0"`` is 1, ``"abc"`` is invalid."""
    if raw is None or raw == "":
        return default
    match = _LEADING_INT.match(raw)
    if match is None:
        return None
    value = int(match.group(1))
    return value if value >= 1 else None


async def page_params(
    page: Optional[str] = Query(None, description="1-based page number"),
    limit: Optional[str] = Query(None, description="Items per page, clamped to the configured maximum"),
) -> PageParams:
    """
    FastAPI dependency: parse ``page`` and ``limit``.

    Non-numeric or non-positive values are rejected with 400; ``limit`` above
    ``MAX_PAGE_LIMIT`` is clamped rather than rejected.
    """
    parsed_page = _parse_positive_int(page, 1)
    parsed_limit = _parse_positive_int(limit, settings.default_page_limit)
    if parsed_page is None or parsed_limit is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=INVALID_PAGINATION_MESSAGE)
    return PageParams(page=parsed_page, limit=min(parsed_limit, settings.max_page_limit))


def total_pages(total: int, limit: int) -> int:
    return (total + limit - 1) // limit if limit else 0


async def fetch_page(
    db: AsyncSession,
    stmt: Select,
    params: PageParams,
) -> Tuple[List[Any], PaginationMeta]:
    """
    Run ``stmt`` for one page. The total is counted over the same filtered
    statement (joins included) with its ordering dropped.
    """
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total_result = await db.execute(count_stmt)
    total = total_result.scalar() or 0

    result = await db.execute(stmt.offset(params.offset).limit(params.limit))
    rows = list(result.all())

    meta = PaginationMeta(
        page=params.page,
        limit=params.limit,
        total=total,
        total_pages=total_pages(total, params.limit),
    )
    return rows, meta


def contains_pattern(term: str) -> str:
    """ILIKE pattern matching ``term`` anywhere in the column."""
    return f"%{term}%"
