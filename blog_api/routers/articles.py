from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession
from blog_api.database import get_db
from blog_api.dependencies import CursorParams, PathId, require_caller
from blog_api.guard import CallerIdentity
from blog_api.schemas import (
    ArticleCreate, ArticlePage, ArticleResponse, ArticleUpdate,
    CommentCreate, CommentPage, CommentResponse, TopArticleResponse,
)
from blog_api.services import article_service, comment_service

router = APIRouter(prefix="/api/v1/articles", tags=["articles"])

@router.get("", response_model=ArticlePage)
async def list_articles(
    cursor: CursorParams = Depends(),
    db: AsyncSession = Depends(get_db, scope="function"),
):
    return await article_service.list_articles(db, cursor.last_id, cursor.limit)

@router.get("/top/views", response_model=list[TopArticleResponse])
async def top_articles(db: AsyncSession = Depends(get_db, scope="function")):
    return await article_service.top_articles(db)

@router.get("/{article_id}", response_model=ArticleResponse)
async def get_article(article_id: PathId, db: AsyncSession = Depends(get_db, scope="function")):
    return await article_service.get_article(db, article_id)

@router.post("", status_code=201, response_model=ArticleResponse)
async def create_article(
    data: ArticleCreate,
    caller: CallerIdentity = Depends(require_caller),
    db: AsyncSession = Depends(get_db, scope="function"),
):
    return await article_service.create_article(db, data, caller)

@router.put("/{article_id}", response_model=ArticleResponse)
async def update_article(
    article_id: PathId,
    data: ArticleUpdate,
    caller: CallerIdentity = Depends(require_caller),
    db: AsyncSession = Depends(get_db, scope="function"),
):
    return await article_service.update_article(db, article_id, data, caller)

@router.delete("/{article_id}", status_code=204)
async def delete_article(
    article_id: PathId,
    caller: CallerIdentity = Depends(require_caller),
    db: AsyncSession = Depends(get_db, scope="function"),
):
    await article_service.delete_article(db, article_id, caller)
    return Response(status_code=204)

@router.get("/{article_id}/comments", response_model=CommentPage)
async def list_comments(
    article_id: PathId,
    cursor: CursorParams = Depends(),
    db: AsyncSession = Depends(get_db, scope="function"),
):
    return await comment_service.list_comments(db, article_id, cursor.last_id, cursor.limit)

@router.post("/{article_id}/comments", status_code=201, response_model=CommentResponse)
async def add_comment(
    article_id: PathId,
    data: CommentCreate,
    caller: CallerIdentity = Depends(require_caller),
    db: AsyncSession = Depends(get_db, scope="function"),
):
    return await comment_service.add_comment(db, article_id, data, caller)
