from fastapi import APIRouter, Depends, File, Query, Response, UploadFile
from blog_api.dependencies import require_caller
from blog_api.schemas import UploadResponse
from blog_api.services import upload_service

router = APIRouter(
    prefix="/api/v1/uploads",
    tags=["uploads"],
    dependencies=[Depends(require_caller)],
)

@router.post("/images", status_code=201, response_model=UploadResponse)
async def upload_image(image: UploadFile = File(...)):
    return await upload_service.upload_image(image)

@router.delete("/images", status_code=204)
async def delete_image(file_name: str = Query(..., min_length=1)):
    await upload_service.delete_image(file_name)
    return Response(status_code=204)
