"""
Human readable, year-scoped identifiers such as STU-2024-0001 or EMP-2024-001.
"""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute


async def next_code(
    db: AsyncSession,
    column: InstrumentedAttribute,
    prefix: str,
    width: int,
    year: int = None,
) -> str:
    """
    Next free code ``{prefix}-{year}-{NNN}`` for the given column.

    Codes are zero padded to ``width`` so the lexicographic maximum is
    also the numeric one.
    """
    stem = f"{prefix}-{year or datetime.utcnow().year}-"
    last = await db.scalar(
        select(column).where(column.like(f"{stem}%")).order_by(column.desc()).limit(1)
    )
    sequence = int(last[len(stem):]) + 1 if last else 1
    return f"{stem}{sequence:0{width}d}"
