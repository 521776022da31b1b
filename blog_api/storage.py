"""
S3-compatible object storage (MinIO in development) for uploaded images.

boto3 clients are blocking and thread-safe, so one client is shared and each
call is pushed to Starlette's threadpool.
"""
import logging

import boto3
from starlette.concurrency import run_in_threadpool

from blog_api.config import settings
from blog_api.errors import ConfigurationError

logger = logging.getLogger(__name__)


class ObjectStorage:
    def __init__(self, bucket: str, public_base_url: str | None = None) -> None:
        self.bucket = bucket
        self._public_base_url = public_base_url
        self._client = None

    def connect(self) -> None:
        """Build the S3 client.  Called once at application startup."""
        session = boto3.session.Session()
        self._client = session.client(
            "s3",
            endpoint_url=settings.S3_ENDPOINT_URL,
            aws_access_key_id=settings.S3_ACCESS_KEY,
            aws_secret_access_key=settings.S3_SECRET_KEY,
        )
        logger.info("Object storage client ready: %s/%s", settings.S3_ENDPOINT_URL, self.bucket)

    @property
    def client(self):
        if self._client is None:
            raise ConfigurationError("Object storage is not initialized")
        return self._client

    async def put_object(self, key: str, body: bytes, content_type: str) -> None:
        await run_in_threadpool(
            self.client.put_object,
            Bucket=self.bucket,
            Key=key,
            Body=body,
            ContentType=content_type,
        )

    async def delete_object(self, key: str) -> None:
        await run_in_threadpool(self.client.delete_object, Bucket=self.bucket, Key=key)

    def public_url(self, key: str) -> str:
        # Path-style URL: <endpoint>/<bucket>/<key>
        base = (self._public_base_url or settings.S3_ENDPOINT_URL).rstrip("/")
        return f"{base}/{self.bucket}/{key}"


storage = ObjectStorage(bucket=settings.S3_BUCKET, public_base_url=settings.S3_PUBLIC_BASE_URL)
