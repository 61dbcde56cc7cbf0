"""
Tubely S3-Compatible Storage Client

Storage layer for uploaded video files (and thumbnails when the S3 thumbnail
backend is selected) built on boto3. The same client talks to AWS S3 or to
any S3-compatible endpoint such as MinIO when `s3_endpoint_url` is set.

boto3 is blocking, so every network call goes through `async_wrap`, which
runs it on a worker thread via `asyncio.to_thread` and keeps the event loop
free while large files stream to the bucket.
"""

import asyncio
import logging

from collections.abc import Callable
from functools import wraps
from pathlib import Path
from typing import Any, TypeVar

import boto3

from boto3.exceptions import Boto3Error
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from app.config import Settings


logger = logging.getLogger(__name__)

T = TypeVar("T")


def async_wrap(func: Callable[..., T]) -> Callable[..., "asyncio.Future[T]"]:
    """
    Decorator to run a synchronous boto3 call on a worker thread.

    Args:
        func: The synchronous function to wrap

    Returns:
        An async function that executes the original via asyncio.to_thread
    """

    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        return await asyncio.to_thread(func, *args, **kwargs)

    return wrapper


class StorageOperationError(Exception):
    """Raised when an object storage operation fails."""


class StorageClient:
    """
    Async facade over a boto3 S3 client bound to the configured bucket.

    Attributes:
        settings: Application settings containing S3 configuration
        s3_client: Initialized boto3 S3 client
        bucket_name: Target bucket for all operations

    Example usage:
        ```python
        storage = StorageClient(get_settings())
        await storage.upload_file(
            "landscape/abc.mp4", file_path=Path("/tmp/in.mp4"), content_type="video/mp4"
        )
        url = storage.object_url("landscape/abc.mp4")
        ```
    """

    def __init__(self, settings: Settings, s3_client: Any | None = None) -> None:
        """
        Initialize the storage client.

        Args:
            settings: Settings with bucket, region, endpoint and credentials.
            s3_client: Optional pre-built boto3 client (used by tests).
        """
        self.settings = settings
        self.bucket_name = settings.s3_bucket_name

        if s3_client is None:
            # Path-style addressing keeps MinIO and other custom endpoints working
            addressing_style = "path" if settings.s3_endpoint_url else "auto"
            client_config = Config(
                signature_version="s3v4",
                s3={"addressing_style": addressing_style},
                retries={"max_attempts": 3, "mode": "standard"},
            )
            s3_client = boto3.client(
                "s3",
                endpoint_url=settings.s3_endpoint_url,
                aws_access_key_id=settings.s3_access_key_id,
                aws_secret_access_key=settings.s3_secret_access_key,
                region_name=settings.s3_region,
                config=client_config,
            )
        self.s3_client = s3_client

        logger.info(
            "S3 storage client initialized",
            extra={
                "bucket": self.bucket_name,
                "region": settings.s3_region,
                "endpoint": settings.s3_endpoint_url or "AWS S3 (default)",
            },
        )

    async def upload_file(
        self,
        object_key: str,
        *,
        content_type: str,
        file_path: Path | None = None,
        file_data: bytes | None = None,
    ) -> str:
        """
        Store an object in the bucket.

        Exactly one of `file_path` (streamed with the managed transfer, which
        switches to multipart for large files) or `file_data` (single
        PutObject) must be given.

        Args:
            object_key: Key of the object inside the bucket.
            content_type: Content-Type recorded on the object.
            file_path: Local file to upload.
            file_data: In-memory bytes to upload.

        Returns:
            str: The object key.

        Raises:
            ValueError: If neither or both sources are given.
            StorageOperationError: If the storage backend rejects the upload.
        """
        if (file_path is None) == (file_data is None):
            raise ValueError("Provide exactly one of file_path or file_data")

        logger.info(
            f"Uploading object to S3: key={object_key}, bucket={self.bucket_name}",
            extra={"content_type": content_type},
        )

        try:
            if file_path is not None:

                @async_wrap
                def _upload() -> None:
                    self.s3_client.upload_file(
                        Filename=str(file_path),
                        Bucket=self.bucket_name,
                        Key=object_key,
                        ExtraArgs={"ContentType": content_type},
                    )

            else:

                @async_wrap
                def _upload() -> None:
                    self.s3_client.put_object(
                        Bucket=self.bucket_name,
                        Key=object_key,
                        Body=file_data,
                        ContentType=content_type,
                    )

            await _upload()

        except ClientError as e:
            error_msg = f"Failed to upload {object_key}: {e.response.get('Error', {}).get('Message', str(e))}"
            logger.error(error_msg)
            raise StorageOperationError(error_msg) from e

        # The managed transfer wraps ClientError in S3UploadFailedError
        except (BotoCoreError, Boto3Error) as e:
            error_msg = f"Storage error while uploading {object_key}: {e}"
            logger.error(error_msg)
            raise StorageOperationError(error_msg) from e

        logger.info(f"Uploaded object to S3: {object_key}")
        return object_key

    async def delete_file(self, object_key: str) -> None:
        """
        Delete an object from the bucket.

        Raises:
            StorageOperationError: If the storage backend rejects the delete.
        """

        @async_wrap
        def _delete() -> None:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=object_key)

        try:
            await _delete()
        except ClientError as e:
            error_msg = f"Failed to delete {object_key}: {e.response.get('Error', {}).get('Message', str(e))}"
            logger.error(error_msg)
            raise StorageOperationError(error_msg) from e
        except BotoCoreError as e:
            error_msg = f"Storage error while deleting {object_key}: {e}"
            logger.error(error_msg)
            raise StorageOperationError(error_msg) from e

        logger.info(f"Deleted object from S3: {object_key}")

    def object_url(self, object_key: str) -> str:
        """
        Public URL of an object.

        A configured `s3_public_base_url` (e.g. a CDN) wins, then a custom
        endpoint in path style, then the AWS virtual-hosted bucket URL.
        """
        if self.settings.s3_public_base_url:
            return f"{self.settings.s3_public_base_url}/{object_key}"
        if self.settings.s3_endpoint_url:
            endpoint = self.settings.s3_endpoint_url.rstrip("/")
            return f"{endpoint}/{self.bucket_name}/{object_key}"
        return f"https://{self.bucket_name}.s3.{self.settings.s3_region}.amazonaws.com/{object_key}"
