"""
Pagination utilities for reusable pagination across all services.

Provides helper functions to paginate SQLAlchemy queries and format responses.
Works with the immutable query builder pattern used throughout the application.
"""

from typing import Any, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.selectable import Select

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def normalize_pagination(page: Optional[int], limit: Optional[int]) -> Tuple[int, int]:
    """
    Clamp raw page/limit values: page >= 1, 1 <= limit <= 100.
    Missing values fall back to page 1 and the default page size.
    """
    page = max(1, page or 1)
    limit = min(MAX_PAGE_SIZE, max(1, limit or DEFAULT_PAGE_SIZE))
    return page, limit


async def paginate_query(
    db: AsyncSession,
    query: Select,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> Tuple[List[Any], int]:
    """
    Apply offset-based pagination to a SQLAlchemy query.

    IMPORTANT: Query should already have:
    - WHERE clauses (including soft-delete filters)
    - Eager loading (selectinload) to prevent N+1 queries
    - ORDER BY clause

    Returns:
        Tuple of (paginated_items, total_count)
    """
    # Count over a subquery so every WHERE clause and join is preserved
    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    total = (await db.execute(count_query)).scalar() or 0

    offset = (page - 1) * page_size
    result = await db.execute(query.offset(offset).limit(page_size))
    items = result.scalars().all()

    return list(items), total


def build_pagination_meta(total: int, page: int, limit: int) -> dict:
    """
    Pagination block returned alongside list payloads.

    Returns:
        Dict with keys: currentPage, totalPages, totalCount, limit
    """
    total_pages = (total + limit - 1) // limit if total > 0 else 0
    return {
        "currentPage": page,
        "totalPages": total_pages,
        "totalCount": total,
        "limit": limit,
    }
