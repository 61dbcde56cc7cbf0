"""
Thumbnail asset stores.

A thumbnail is written through exactly one `AssetStore`, chosen at startup
from `settings.thumbnail_storage`:

- `local`: file under `assets_root`, served by the app at `/assets/{name}`
- `data_uri`: base64 `data:` URI stored inline on the video record
- `s3`: object under `thumbnails/` in the configured bucket

Every store returns the URL to persist as the video's `thumbnail_url`.
"""

import base64
import logging
import secrets

from pathlib import Path
from typing import Protocol

import aiofiles

from app.config import Settings
from app.core.storage import StorageClient
from app.models.video import ThumbnailStorageMode


logger = logging.getLogger(__name__)

RANDOM_NAME_BYTES = 32


class AssetStoreError(Exception):
    """Raised when an asset cannot be written."""


def generate_asset_name(extension: str) -> str:
    """
    Random, URL-safe file name for a stored asset.

    32 random bytes encoded as URL-safe base64 without padding, plus the
    extension. Every call yields a new name, so re-uploading never
    overwrites a previous asset.
    """
    token = base64.urlsafe_b64encode(secrets.token_bytes(RANDOM_NAME_BYTES)).rstrip(b"=").decode("ascii")
    return f"{token}.{extension}" if extension else token


class AssetStore(Protocol):
    """Writes asset bytes and returns the URL they are reachable at."""

    async def save(self, data: bytes, media_type: str, extension: str) -> str: ...

    async def discard(self, url: str) -> None:
        """Remove an asset previously returned by `save`."""
        ...


def _asset_name(url: str) -> str:
    return url.rsplit("/", 1)[-1]


class LocalAssetStore:
    """Stores assets as files under `assets_root`."""

    def __init__(self, assets_root: Path, public_base_url: str) -> None:
        self.assets_root = assets_root
        self.public_base_url = public_base_url.rstrip("/")

    async def save(self, data: bytes, media_type: str, extension: str) -> str:
        name = generate_asset_name(extension)
        path = self.assets_root / name

        try:
            self.assets_root.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "wb") as f:
                await f.write(data)
        except OSError as e:
            logger.error(f"Failed to write asset {path}: {e}")
            raise AssetStoreError(f"Couldn't write asset file: {e}") from e

        logger.info(f"Stored asset locally: {path}", extra={"media_type": media_type})
        return f"{self.public_base_url}/assets/{name}"

    async def discard(self, url: str) -> None:
        path = self.assets_root / _asset_name(url)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise AssetStoreError(f"Couldn't remove asset file: {e}") from e
        logger.info(f"Removed local asset: {path}")


class DataURIAssetStore:
    """Encodes assets inline as base64 data URIs."""

    async def save(self, data: bytes, media_type: str, extension: str) -> str:
        encoded = base64.b64encode(data).decode("ascii")
        return f"data:{media_type};base64,{encoded}"

    async def discard(self, url: str) -> None:
        # Stored inline on the record; nothing to remove
        return None


class S3AssetStore:
    """Uploads assets to object storage under a key prefix."""

    def __init__(self, storage: StorageClient, prefix: str = "thumbnails") -> None:
        self.storage = storage
        self.prefix = prefix.strip("/")

    async def save(self, data: bytes, media_type: str, extension: str) -> str:
        key = f"{self.prefix}/{generate_asset_name(extension)}"
        await self.storage.upload_file(key, file_data=data, content_type=media_type)
        return self.storage.object_url(key)

    async def discard(self, url: str) -> None:
        await self.storage.delete_file(f"{self.prefix}/{_asset_name(url)}")


def build_thumbnail_store(settings: Settings, storage: StorageClient) -> AssetStore:
    """Select the thumbnail store configured by `settings.thumbnail_storage`."""
    mode = settings.thumbnail_storage
    if mode is ThumbnailStorageMode.DATA_URI:
        return DataURIAssetStore()
    if mode is ThumbnailStorageMode.S3:
        return S3AssetStore(storage)
    return LocalAssetStore(settings.assets_root, settings.public_base_url)
