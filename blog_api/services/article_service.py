"""
Article service: business logic for the Article aggregate.

Design notes
------------
- Eager loading via ``joinedload`` (many-to-one: author) and
  ``selectinload`` (many-to-many: categories) is used throughout to
  eliminate N+1 queries.  ``unique()`` is called after every query that
  uses ``joinedload``.
- Mutations go through ``ownership.load_owned``; a caller who is not the
  author gets a 403 and the row is left untouched.
- After a write the article is re-selected with ``populate_existing`` so
  server-generated columns (``created_at``, ``updated_at``) are loaded
  without an implicit lazy load, which AsyncSession does not allow.
- Deletes are soft: ``deleted_at`` is stamped on the article and on all of
  its live comments in the same transaction.
- Service functions flush but do not commit; the transaction boundary
  is owned by the ``get_db`` dependency in the router layer.
"""
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload

from blog_api.config import settings
from blog_api.errors import NotFoundError
from blog_api.guard import CallerIdentity
from blog_api.models import Article, Category, Comment
from blog_api.pagination import SortOrder, paginate
from blog_api.schemas import ArticleCreate, ArticleUpdate
from blog_api.services.ownership import load_owned

_ARTICLE_OPTIONS = (joinedload(Article.author), selectinload(Article.categories))


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def _article_to_dict(article: Article) -> dict:
    return {
        "id": article.id,
        "title": article.title,
        "content": article.content,
        "author_id": article.author_id,
        "author_name": article.author.username if article.author else None,
        "view_count": article.view_count,
        "categories": [
            {"id": c.id, "name": c.name}
            for c in sorted(article.categories, key=lambda c: c.id)
        ],
        "created_at": article.created_at,
        "updated_at": article.updated_at,
    }


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _live_articles():
    return select(Article).where(Article.deleted_at.is_(None))


async def _load_article(db: AsyncSession, article_id: int) -> Article | None:
    q = (
        _live_articles()
        .where(Article.id == article_id)
        .options(*_ARTICLE_OPTIONS)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(q)
    return result.unique().scalar_one_or_none()


async def _resolve_categories(db: AsyncSession, category_ids: list[int]) -> list[Category]:
    """Return the categories that exist among *category_ids*; unknown ids are skipped."""
    if not category_ids:
        return []
    result = await db.execute(
        select(Category).where(Category.id.in_(set(category_ids))).order_by(Category.id)
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def list_articles(
    db: AsyncSession,
    last_id: int | None = None,
    limit: int | None = None,
) -> dict:
    """Return one cursor page of live articles, newest first."""
    page = await paginate(
        db,
        _live_articles().options(*_ARTICLE_OPTIONS),
        Article.id,
        last_id=last_id,
        limit=limit,
        order=SortOrder.DESC,
        default_limit=settings.ARTICLES_DEFAULT_LIMIT,
        max_limit=settings.ARTICLES_MAX_LIMIT,
    )
    return {
        "items": [_article_to_dict(a) for a in page.items],
        "next_cursor": page.next_cursor,
        "has_more": page.has_more,
    }


async def get_article(db: AsyncSession, article_id: int) -> dict:
    """
    Return *article_id* and count the read.

    The counter is bumped with a single ``UPDATE ... SET view_count =
    view_count + 1`` so concurrent readers never lose increments; the
    response reports the value loaded before the update plus one.
    """
    article = await _load_article(db, article_id)
    if article is None:
        raise NotFoundError("Article")

    await db.execute(
        update(Article)
        .where(Article.id == article_id)
        # Reads are not edits: keep updated_at as it was.
        .values(view_count=Article.view_count + 1, updated_at=Article.updated_at)
        .execution_options(synchronize_session=False)
    )

    data = _article_to_dict(article)
    data["view_count"] = article.view_count + 1
    return data


async def top_articles(db: AsyncSession, limit: int | None = None) -> list[dict]:
    """Return the most viewed live articles, ties broken by newest id."""
    q = (
        select(Article.id, Article.title, Article.view_count)
        .where(Article.deleted_at.is_(None))
        .order_by(Article.view_count.desc(), Article.id.desc())
        .limit(limit or settings.TOP_ARTICLES_LIMIT)
    )
    result = await db.execute(q)
    return [
        {"id": row.id, "title": row.title, "view_count": row.view_count}
        for row in result.all()
    ]


async def create_article(db: AsyncSession, data: ArticleCreate, caller: CallerIdentity) -> dict:
    article = Article(
        title=data.title,
        content=data.content,
        author_id=caller.subject_id,
        view_count=0,
    )
    article.categories = await _resolve_categories(db, data.category_ids)
    db.add(article)
    await db.flush()

    return _article_to_dict(await _load_article(db, article.id))


async def update_article(
    db: AsyncSession,
    article_id: int,
    data: ArticleUpdate,
    caller: CallerIdentity,
) -> dict:
    """
    Partially update an article owned by *caller*.

    Only fields explicitly set in the request payload are modified
    (``model_dump(exclude_unset=True)``).  ``category_ids`` replaces the
    whole set; an empty list clears it.
    """
    article = await load_owned(
        db, Article, article_id, caller, "Article",
        options=(selectinload(Article.categories),),
    )

    update_data = data.model_dump(exclude_unset=True)
    category_ids = update_data.pop("category_ids", None)

    for field, value in update_data.items():
        if value is not None:
            setattr(article, field, value)

    if category_ids is not None:
        article.categories = await _resolve_categories(db, category_ids)

    await db.flush()
    return _article_to_dict(await _load_article(db, article_id))


async def delete_article(db: AsyncSession, article_id: int, caller: CallerIdentity) -> None:
    article = await load_owned(db, Article, article_id, caller, "Article")

    now = datetime.now(timezone.utc)
    article.deleted_at = now
    await db.execute(
        update(Comment)
        .where(Comment.article_id == article_id, Comment.deleted_at.is_(None))
        .values(deleted_at=now)
        .execution_options(synchronize_session=False)
    )
    await db.flush()
