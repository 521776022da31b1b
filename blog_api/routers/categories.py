from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession
from blog_api.database import get_db
from blog_api.dependencies import PathId, require_caller
from blog_api.schemas import CategoryCreate, CategoryResponse, CategoryUpdate
from blog_api.services import category_service

router = APIRouter(prefix="/api/v1/categories", tags=["categories"])

@router.get("", response_model=list[CategoryResponse])
async def list_categories(db: AsyncSession = Depends(get_db, scope="function")):
    return await category_service.list_categories(db)

@router.get("/{category_id}", response_model=CategoryResponse)
async def get_category(category_id: PathId, db: AsyncSession = Depends(get_db, scope="function")):
    return await category_service.get_category(db, category_id)

@router.post("", status_code=201, response_model=CategoryResponse, dependencies=[Depends(require_caller)])
async def create_category(data: CategoryCreate, db: AsyncSession = Depends(get_db, scope="function")):
    return await category_service.create_category(db, data)

@router.put("/{category_id}", response_model=CategoryResponse, dependencies=[Depends(require_caller)])
async def update_category(category_id: PathId, data: CategoryUpdate, db: AsyncSession = Depends(get_db, scope="function")):
    return await category_service.update_category(db, category_id, data)

@router.delete("/{category_id}", status_code=204, dependencies=[Depends(require_caller)])
async def delete_category(category_id: PathId, db: AsyncSession = Depends(get_db, scope="function")):
    await category_service.delete_category(db, category_id)
    return Response(status_code=204)
