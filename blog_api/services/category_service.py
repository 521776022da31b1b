"""
Category service: the shared article taxonomy.

Categories have no owner, so any authenticated user may manage them.
Deleting a category removes it from every article and then deletes the
row outright; there is no soft delete for taxonomy.
"""
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.errors import ConflictError, NotFoundError
from blog_api.models import Category, article_categories
from blog_api.schemas import CategoryCreate, CategoryUpdate

_DUPLICATE_NAME = "Category already exists"


def _category_to_dict(category: Category) -> dict:
    return {"id": category.id, "name": category.name}


async def _get_or_404(db: AsyncSession, category_id: int) -> Category:
    result = await db.execute(select(Category).where(Category.id == category_id))
    category = result.scalar_one_or_none()
    if category is None:
        raise NotFoundError("Category")
    return category


async def _ensure_name_free(db: AsyncSession, name: str, exclude_id: int | None = None) -> None:
    q = select(Category.id).where(Category.name == name)
    if exclude_id is not None:
        q = q.where(Category.id != exclude_id)
    if (await db.execute(q)).first() is not None:
        raise ConflictError(_DUPLICATE_NAME, f"A category named {name!r} already exists")


async def _flush_unique(db: AsyncSession, name: str) -> None:
    # A concurrent insert can still win the race past _ensure_name_free.
    try:
        await db.flush()
    except IntegrityError as exc:
        raise ConflictError(_DUPLICATE_NAME, f"A category named {name!r} already exists") from exc


async def list_categories(db: AsyncSession) -> list[dict]:
    result = await db.execute(select(Category).order_by(Category.id))
    return [_category_to_dict(c) for c in result.scalars().all()]


async def get_category(db: AsyncSession, category_id: int) -> dict:
    return _category_to_dict(await _get_or_404(db, category_id))


async def create_category(db: AsyncSession, data: CategoryCreate) -> dict:
    await _ensure_name_free(db, data.name)
    category = Category(name=data.name)
    db.add(category)
    await _flush_unique(db, data.name)
    return _category_to_dict(category)


async def update_category(db: AsyncSession, category_id: int, data: CategoryUpdate) -> dict:
    category = await _get_or_404(db, category_id)
    if category.name != data.name:
        await _ensure_name_free(db, data.name, exclude_id=category_id)
        category.name = data.name
        await _flush_unique(db, data.name)
    return _category_to_dict(category)


async def delete_category(db: AsyncSession, category_id: int) -> None:
    category = await _get_or_404(db, category_id)
    await db.execute(
        delete(article_categories).where(article_categories.c.category_id == category_id)
    )
    await db.delete(category)
    await db.flush()
