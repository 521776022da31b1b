from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession
from blog_api.database import get_db
from blog_api.dependencies import PathId, require_caller
from blog_api.guard import CallerIdentity
from blog_api.schemas import CommentResponse, CommentUpdate
from blog_api.services import comment_service

router = APIRouter(prefix="/api/v1/comments", tags=["comments"])

@router.put("/{comment_id}", response_model=CommentResponse)
async def update_comment(
    comment_id: PathId,
    data: CommentUpdate,
    caller: CallerIdentity = Depends(require_caller),
    db: AsyncSession = Depends(get_db, scope="function"),
):
    return await comment_service.update_comment(db, comment_id, data, caller)

@router.delete("/{comment_id}", status_code=204)
async def delete_comment(
    comment_id: PathId,
    caller: CallerIdentity = Depends(require_caller),
    db: AsyncSession = Depends(get_db, scope="function"),
):
    await comment_service.delete_comment(db, comment_id, caller)
    return Response(status_code=204)
