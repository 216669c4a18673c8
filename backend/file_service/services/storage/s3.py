"""S3 (and S3-compatible, e.g. MinIO) storage backend.

boto3 is a sync SDK, so every call is wrapped with asyncio.to_thread.
"""
import asyncio
import logging
import os
from typing import Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from file_service.services.storage.base import (
    BaseStorage,
    StorageDeleteError,
    StorageIOError,
    StorageNotFoundError,
    StorageUploadError,
)

logger = logging.getLogger(__name__)

DEFAULT_REGION = "us-east-1"

# create_bucket failures that mean "the bucket is already there (or about to be)"
_BUCKET_EXISTS_CODES = {
    "BucketAlreadyOwnedByYou",
    "BucketAlreadyExists",
    "OperationAborted",
}
_NOT_FOUND_CODES = {"NoSuchKey", "NotFound", "404"}


def resolve_region(explicit: Optional[str] = None) -> str:
    """Explicit region, then the AWS environment, then us-east-1."""
    return (
        explicit
        or os.environ.get("AWS_REGION")
        or os.environ.get("AWS_DEFAULT_REGION")
        or DEFAULT_REGION
    )


def _error_code(e: ClientError) -> str:
    return str(e.response.get("Error", {}).get("Code", ""))


class S3Storage(BaseStorage):
    storage_type = "s3"

    def __init__(
        self,
        bucket: str,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
    ):
        self.bucket = bucket
        self.region = resolve_region(region)

        client_kwargs = {
            "region_name": self.region,
            # MinIO needs path-style addressing
            "config": BotoConfig(s3={"addressing_style": "path"}),
        }
        if endpoint_url:
            client_kwargs["endpoint_url"] = endpoint_url
            client_kwargs["aws_access_key_id"] = access_key
            client_kwargs["aws_secret_access_key"] = secret_key
        self.client = boto3.client("s3", **client_kwargs)

    async def ensure_bucket(self) -> None:
        """Create the bucket if it does not exist. Never raises."""
        create_kwargs = {"Bucket": self.bucket}
        if self.region != DEFAULT_REGION:
            create_kwargs["CreateBucketConfiguration"] = {"LocationConstraint": self.region}
        try:
            await asyncio.to_thread(self.client.create_bucket, **create_kwargs)
            logger.info("Bucket %s created successfully", self.bucket)
            return
        except ClientError as e:
            if _error_code(e) in _BUCKET_EXISTS_CODES or "YourPreviousRequestToCreateTheBucket" in str(e):
                logger.info("Bucket %s already exists", self.bucket)
                return
            logger.warning("Could not create bucket %s: %s", self.bucket, e)
        except BotoCoreError as e:
            logger.warning("Could not create bucket %s: %s", self.bucket, e)

        try:
            await asyncio.to_thread(self.client.head_bucket, Bucket=self.bucket)
            logger.info("Bucket %s exists (verified)", self.bucket)
        except (ClientError, BotoCoreError) as e:
            logger.error("Bucket %s does not exist and cannot be created: %s", self.bucket, e)

    async def upload(self, key: str, content: bytes) -> str:
        """PutObject under `key`. Returns "s3://{key}"."""
        try:
            await asyncio.to_thread(
                self.client.put_object, Bucket=self.bucket, Key=key, Body=content
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageUploadError(str(e)) from e
        return f"s3://{key}"

    def _get_object_bytes(self, key: str) -> bytes:
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                raise StorageNotFoundError(key) from e
            raise StorageIOError(str(e)) from e
        except BotoCoreError as e:
            raise StorageIOError(str(e)) from e

        try:
            return response["Body"].read()
        except (BotoCoreError, OSError) as e:
            raise StorageIOError(f"Failed to read body of {key}: {e}") from e

    async def download(self, key: str) -> bytes:
        logger.info("S3 GET key = %s", key)
        return await asyncio.to_thread(self._get_object_bytes, key)

    async def delete(self, key: str) -> None:
        try:
            await asyncio.to_thread(self.client.delete_object, Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise StorageDeleteError(str(e)) from e
        logger.info("File deleted successfully from s3: %s", key)
