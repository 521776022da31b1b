import re

import pytest
from botocore.exceptions import ClientError
from httpx import AsyncClient

from blog_api.config import settings

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.mark.asyncio
async def test_upload_image_stores_object(async_client: AsyncClient, register, s3_client):
    _, headers = await register("uploader")

    resp = await async_client.post(
        "/api/v1/uploads/images",
        files={"image": ("photo.PNG", PNG_BYTES, "image/png")},
        headers=headers,
    )
    assert resp.status_code == 201
    data = resp.json()

    assert re.fullmatch(r"[0-9a-f-]{36}-\d+\.png", data["file_name"])
    assert data["size"] == len(PNG_BYTES)
    key = f"images/{data['file_name']}"
    assert data["url"] == f"{settings.S3_ENDPOINT_URL.rstrip('/')}/{settings.S3_BUCKET}/{key}"

    stored = s3_client.objects[(settings.S3_BUCKET, key)]
    assert stored["body"] == PNG_BYTES
    assert stored["content_type"] == "image/png"


@pytest.mark.asyncio
async def test_upload_extension_from_content_type(async_client: AsyncClient, register):
    _, headers = await register("uploader")
    resp = await async_client.post(
        "/api/v1/uploads/images",
        files={"image": ("noext", b"GIF89a....", "image/gif")},
        headers=headers,
    )
    assert resp.status_code == 201
    assert resp.json()["file_name"].endswith(".gif")


@pytest.mark.asyncio
async def test_upload_ignores_client_extension(async_client: AsyncClient, register, s3_client):
    _, headers = await register("uploader")
    resp = await async_client.post(
        "/api/v1/uploads/images",
        files={"image": ("evil.html", PNG_BYTES, "image/png")},
        headers=headers,
    )
    assert resp.status_code == 201
    file_name = resp.json()["file_name"]
    assert file_name.endswith(".png")
    assert (settings.S3_BUCKET, f"images/{file_name}") in s3_client.objects
    assert not any(key.endswith(".html") for _, key in s3_client.objects)


@pytest.mark.asyncio
async def test_upload_requires_auth(async_client: AsyncClient, s3_client):
    resp = await async_client.post(
        "/api/v1/uploads/images", files={"image": ("a.png", PNG_BYTES, "image/png")}
    )
    assert resp.status_code == 401
    assert s3_client.objects == {}


@pytest.mark.asyncio
async def test_upload_rejects_unsupported_type(async_client: AsyncClient, register, s3_client):
    _, headers = await register("uploader")
    resp = await async_client.post(
        "/api/v1/uploads/images",
        files={"image": ("notes.txt", b"hello", "text/plain")},
        headers=headers,
    )
    assert resp.status_code == 422
    assert resp.json()["message"] == "Unsupported file type"
    assert s3_client.objects == {}


@pytest.mark.asyncio
async def test_upload_rejects_oversized_file(async_client: AsyncClient, register, monkeypatch, s3_client):
    monkeypatch.setattr(settings, "UPLOAD_MAX_BYTES", 16)
    _, headers = await register("uploader")
    resp = await async_client.post(
        "/api/v1/uploads/images",
        files={"image": ("big.png", b"x" * 17, "image/png")},
        headers=headers,
    )
    assert resp.status_code == 422
    assert resp.json()["message"] == "File too large"
    assert s3_client.objects == {}


@pytest.mark.asyncio
async def test_storage_failure_is_generic_500(async_client: AsyncClient, register, s3_client, monkeypatch):
    def broken_put(**kwargs):
        raise ClientError({"Error": {"Code": "NoSuchBucket", "Message": "missing"}}, "PutObject")

    monkeypatch.setattr(s3_client, "put_object", broken_put)
    _, headers = await register("uploader")

    resp = await async_client.post(
        "/api/v1/uploads/images",
        files={"image": ("a.png", PNG_BYTES, "image/png")},
        headers=headers,
    )
    assert resp.status_code == 500
    assert resp.json()["detail"] == "An unexpected error occurred"


@pytest.mark.asyncio
async def test_delete_image(async_client: AsyncClient, register, s3_client):
    _, headers = await register("uploader")
    uploaded = (await async_client.post(
        "/api/v1/uploads/images",
        files={"image": ("a.png", PNG_BYTES, "image/png")},
        headers=headers,
    )).json()

    resp = await async_client.delete(
        "/api/v1/uploads/images", params={"file_name": uploaded["file_name"]}, headers=headers
    )
    assert resp.status_code == 204
    assert s3_client.deleted == [(settings.S3_BUCKET, f"images/{uploaded['file_name']}")]
    assert s3_client.objects == {}


@pytest.mark.asyncio
@pytest.mark.parametrize("name", ["../secret.png", "nested/a.png", "back\\slash.png"])
async def test_delete_image_rejects_paths(async_client: AsyncClient, register, s3_client, name):
    _, headers = await register("uploader")
    resp = await async_client.delete(
        "/api/v1/uploads/images", params={"file_name": name}, headers=headers
    )
    assert resp.status_code == 422
    assert s3_client.deleted == []
