"""
Comment service: comments on live articles.

Any authenticated user may comment; only the author may edit or delete a
comment.  Listing a deleted or missing article's comments yields an empty
page rather than a 404, so a client walking a stale cursor simply stops.
"""
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from blog_api.config import settings
from blog_api.errors import NotFoundError
from blog_api.guard import CallerIdentity
from blog_api.models import Article, Comment
from blog_api.pagination import SortOrder, paginate
from blog_api.schemas import CommentCreate, CommentUpdate
from blog_api.services.ownership import load_owned


def _comment_to_dict(comment: Comment) -> dict:
    return {
        "id": comment.id,
        "content": comment.content,
        "article_id": comment.article_id,
        "author_id": comment.author_id,
        "author_name": comment.author.username if comment.author else None,
        "created_at": comment.created_at,
        "updated_at": comment.updated_at,
    }


def _comment_order() -> SortOrder:
    return SortOrder(settings.COMMENTS_SORT_ORDER)


async def _article_is_live(db: AsyncSession, article_id: int) -> bool:
    result = await db.execute(
        select(Article.id).where(Article.id == article_id, Article.deleted_at.is_(None))
    )
    return result.scalar_one_or_none() is not None


async def _load_comment(db: AsyncSession, comment_id: int) -> Comment | None:
    q = (
        select(Comment)
        .where(Comment.id == comment_id, Comment.deleted_at.is_(None))
        .options(joinedload(Comment.author))
        .execution_options(populate_existing=True)
    )
    result = await db.execute(q)
    return result.unique().scalar_one_or_none()


async def list_comments(
    db: AsyncSession,
    article_id: int,
    last_id: int | None = None,
    limit: int | None = None,
) -> dict:
    if not await _article_is_live(db, article_id):
        return {"items": [], "next_cursor": None, "has_more": False}

    stmt = (
        select(Comment)
        .where(Comment.article_id == article_id, Comment.deleted_at.is_(None))
        .options(joinedload(Comment.author))
    )
    page = await paginate(
        db,
        stmt,
        Comment.id,
        last_id=last_id,
        limit=limit,
        order=_comment_order(),
        default_limit=settings.COMMENTS_DEFAULT_LIMIT,
        max_limit=settings.COMMENTS_MAX_LIMIT,
    )
    return {
        "items": [_comment_to_dict(c) for c in page.items],
        "next_cursor": page.next_cursor,
        "has_more": page.has_more,
    }


async def add_comment(
    db: AsyncSession,
    article_id: int,
    data: CommentCreate,
    caller: CallerIdentity,
) -> dict:
    """Append a comment by *caller* to a live article; 404 when the article is gone."""
    if not await _article_is_live(db, article_id):
        raise NotFoundError("Article")

    comment = Comment(
        content=data.content,
        author_id=caller.subject_id,
        article_id=article_id,
    )
    db.add(comment)
    await db.flush()

    return _comment_to_dict(await _load_comment(db, comment.id))


async def update_comment(
    db: AsyncSession,
    comment_id: int,
    data: CommentUpdate,
    caller: CallerIdentity,
) -> dict:
    comment = await load_owned(db, Comment, comment_id, caller, "Comment")
    comment.content = data.content
    await db.flush()
    return _comment_to_dict(await _load_comment(db, comment_id))


async def delete_comment(db: AsyncSession, comment_id: int, caller: CallerIdentity) -> None:
    comment = await load_owned(db, Comment, comment_id, caller, "Comment")
    comment.deleted_at = datetime.now(timezone.utc)
    await db.flush()
