from __future__ import annotations

import asyncio
import logging
from typing import Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from provider_onboarding.config import Settings
from provider_onboarding.errors import StorageProviderError

logger = logging.getLogger(__name__)


class DocumentStore(Protocol):
    async def put(self, path: str, data: bytes, content_type: str) -> str: ...

    async def delete(self, path: str) -> None: ...


class S3DocumentStore:
    """Document store backed by an S3-compatible bucket (R2, MinIO, S3)."""

    def __init__(
        self,
        *,
        bucket: str,
        endpoint_url: str | None = None,
        region: str = "us-east-1",
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        public_base_url: str | None = None,
        timeout_seconds: float = 20.0,
    ) -> None:
        self.bucket = bucket
        self.endpoint_url = endpoint_url
        self.public_base_url = public_base_url
        self._client = boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            region_name=region,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            config=Config(
                signature_version="s3v4",
                connect_timeout=timeout_seconds,
                read_timeout=timeout_seconds,
                retries={"max_attempts": 2},
            ),
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "S3DocumentStore":
        return cls(
            bucket=settings.storage_bucket,
            endpoint_url=settings.storage_endpoint_url,
            region=settings.storage_region,
            access_key_id=settings.storage_access_key_id,
            secret_access_key=settings.storage_secret_access_key,
            public_base_url=settings.storage_public_base_url,
            timeout_seconds=settings.external_timeout_seconds,
        )

    def _url_for(self, path: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{path}"
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket}/{path}"
        return f"https://{self.bucket}.s3.amazonaws.com/{path}"

    async def put(self, path: str, data: bytes, content_type: str) -> str:
        try:
            await asyncio.to_thread(
                self._client.put_object,
                Bucket=self.bucket,
                Key=path,
                Body=data,
                ContentType=content_type,
            )
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            logger.error("storage put failed path=%s code=%s", path, code)
            raise StorageProviderError("Document upload failed", provider_code=code) from e
        except BotoCoreError as e:
            logger.error("storage put transport failure path=%s error=%s", path, e)
            raise StorageProviderError("Document upload failed") from e

        return self._url_for(path)

    async def delete(self, path: str) -> None:
        try:
            await asyncio.to_thread(self._client.delete_object, Bucket=self.bucket, Key=path)
        except (ClientError, BotoCoreError) as e:
            raise StorageProviderError("Document delete failed") from e
