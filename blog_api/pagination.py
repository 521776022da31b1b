"""
Keyset (cursor) pagination over id-ordered collections.

A page request is ``(last_id, limit)``.  The engine fetches ``limit + 1``
rows past the cursor; the extra row only proves that another page exists
and is never returned.  ``next_cursor`` is the id of the last returned row.

Pages are not snapshot-isolated.  A row inserted or deleted between two
calls can be skipped, or for a DESC walk with new rows at the head, shown
again.  Callers that need a frozen view must paginate inside their own
snapshot.

Limits are clamped, not rejected: a missing, non-positive or oversized
``limit`` silently becomes the endpoint default.  This keeps old clients
working but also hides their mistakes.
"""
import enum
from dataclasses import dataclass, field
from operator import attrgetter
from typing import Any, Callable, Generic, Sequence, TypeVar

from sqlalchemy import Select
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")

_id_of = attrgetter("id")


class SortOrder(str, enum.Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass
class Page(Generic[T]):
    items: list[T] = field(default_factory=list)
    next_cursor: int | None = None
    has_more: bool = False


def clamp_limit(limit: int | None, default_limit: int, max_limit: int) -> int:
    if limit is None or limit <= 0 or limit > max_limit:
        return default_limit
    return limit


def slice_page(rows: Sequence[T], limit: int, key: Callable[[T], int] = _id_of) -> Page[T]:
    """Build a page from up to ``limit + 1`` rows already in cursor order."""
    has_more = len(rows) > limit
    items = list(rows[:limit])
    next_cursor = key(items[-1]) if has_more and items else None
    return Page(items=items, next_cursor=next_cursor, has_more=has_more)


def apply_cursor(stmt: Select, id_column: Any, last_id: int | None, limit: int, order: SortOrder) -> Select:
    """Add the keyset predicate, id ordering and the ``limit + 1`` probe to *stmt*."""
    if order is SortOrder.DESC:
        if last_id is not None and last_id > 0:
            stmt = stmt.where(id_column < last_id)
        stmt = stmt.order_by(id_column.desc())
    else:
        if last_id is not None and last_id > 0:
            stmt = stmt.where(id_column > last_id)
        stmt = stmt.order_by(id_column.asc())
    return stmt.limit(limit + 1)


async def paginate(
    db: AsyncSession,
    stmt: Select,
    id_column: Any,
    *,
    last_id: int | None,
    limit: int | None,
    order: SortOrder,
    default_limit: int,
    max_limit: int,
) -> Page:
    """
    Return one page of ORM entities selected by *stmt*.

    *stmt* carries the collection's own filters (not deleted, parent id,
    eager-load options); ordering and limits are owned by this function.
    """
    effective_limit = clamp_limit(limit, default_limit, max_limit)
    result = await db.execute(apply_cursor(stmt, id_column, last_id, effective_limit, order))
    rows = result.unique().scalars().all()
    return slice_page(rows, effective_limit)
