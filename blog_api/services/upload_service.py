"""
Upload service: image files stored in the S3-compatible bucket.

Objects are written under ``images/<uuid>-<unix time><ext>``.  Clients get
back the bare file name (without the ``images/`` prefix) and hand it back
to delete the object.
"""
import logging
import time
import uuid

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import UploadFile

from blog_api.config import settings
from blog_api.errors import InternalError, ValidationError
from blog_api.storage import storage

logger = logging.getLogger(__name__)

IMAGE_PREFIX = "images/"

ALLOWED_CONTENT_TYPES: dict[str, str] = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}


def object_key(file_name: str) -> str:
    return f"{IMAGE_PREFIX}{file_name}"


def build_file_name(content_type: str) -> str:
    # The extension follows the checked content type, never the client's file name.
    return f"{uuid.uuid4()}-{int(time.time())}{ALLOWED_CONTENT_TYPES[content_type]}"


def validate_file_name(file_name: str) -> None:
    if not file_name or "/" in file_name or "\\" in file_name or ".." in file_name:
        raise ValidationError("Invalid file name", "file_name must be a bare object name")


async def upload_image(file: UploadFile) -> dict:
    content_type = (file.content_type or "").lower()
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise ValidationError(
            "Unsupported file type",
            "Allowed types: " + ", ".join(sorted(ALLOWED_CONTENT_TYPES)),
        )

    # Read one byte past the limit so oversized files are detected without
    # buffering them whole.
    body = await file.read(settings.UPLOAD_MAX_BYTES + 1)
    if len(body) > settings.UPLOAD_MAX_BYTES:
        raise ValidationError(
            "File too large",
            f"Images must be at most {settings.UPLOAD_MAX_BYTES // (1024 * 1024)} MB",
        )
    if not body:
        raise ValidationError("Empty file", "The uploaded image has no content")

    file_name = build_file_name(content_type)
    key = object_key(file_name)
    try:
        await storage.put_object(key, body, content_type)
    except (BotoCoreError, ClientError) as exc:
        logger.error("Upload of %s failed: %s", key, exc)
        raise InternalError(detail="Image could not be stored") from exc

    logger.info("Stored image %s (%d bytes)", key, len(body))
    return {"url": storage.public_url(key), "file_name": file_name, "size": len(body)}


async def delete_image(file_name: str) -> None:
    validate_file_name(file_name)
    key = object_key(file_name)
    try:
        await storage.delete_object(key)
    except (BotoCoreError, ClientError) as exc:
        logger.error("Delete of %s failed: %s", key, exc)
        raise InternalError(detail="Image could not be deleted") from exc
