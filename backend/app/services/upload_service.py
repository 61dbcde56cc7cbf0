"""
Tubely Upload Service Module

Business logic behind the two upload endpoints. Route handlers validate the
request (id, token, form field, content type, size) and hand the accepted
bytes to this service, which:

- loads the video record and checks that the caller owns it
- stores the asset (thumbnail store, or remux + object storage for video)
- persists the resulting URL on the video record, removing the stored asset
  again if the record cannot be written

Failures are raised as typed exceptions and mapped to HTTP status codes by
the routes; nothing here is logged and then treated as success.
"""

import logging

from pathlib import Path
from uuid import UUID

from app.core.context import ServiceContext
from app.core.storage import StorageOperationError
from app.models.video import Video
from app.services.asset_store import AssetStoreError, generate_asset_name
from app.services.video_repository import VideoRepositoryError
from app.utils.file_validator import extension_for_media_type


logger = logging.getLogger(__name__)


class UploadServiceError(Exception):
    """Base exception for upload service errors."""


class NotVideoOwnerError(UploadServiceError):
    """Raised when the caller does not own the target video."""

    def __init__(self, video_id: UUID, user_id: UUID) -> None:
        self.video_id = video_id
        self.user_id = user_id
        super().__init__(f"User {user_id} does not own video {video_id}")


class UploadService:
    """
    Stores uploaded thumbnails and video files for a video record.

    Example:
        ```python
        service = UploadService(context)
        video = await service.upload_thumbnail(video_id, user_id, data, "image/png")
        print(video.thumbnail_url)
        ```
    """

    def __init__(self, context: ServiceContext) -> None:
        self.context = context

    async def _load_owned_video(self, video_id: UUID, user_id: UUID) -> Video:
        video = await self.context.videos.get_video(video_id)
        if not video.is_owned_by(user_id):
            logger.warning(f"User {user_id} attempted to modify video {video_id} they do not own")
            raise NotVideoOwnerError(video_id, user_id)
        return video

    async def upload_thumbnail(
        self, video_id: UUID, user_id: UUID, data: bytes, media_type: str
    ) -> Video:
        """
        Store a thumbnail and set it as the video's `thumbnail_url`.

        Args:
            video_id: Target video.
            user_id: Authenticated caller.
            data: Validated image bytes.
            media_type: Validated media type, e.g. "image/png".

        Returns:
            Video: The updated record.

        Raises:
            VideoNotFoundError: The video does not exist.
            VideoRepositoryError: The video could not be loaded or saved.
            NotVideoOwnerError: The caller does not own the video.
            AssetStoreError, StorageOperationError: The thumbnail could not be stored.
        """
        video = await self._load_owned_video(video_id, user_id)

        url = await self.context.thumbnails.save(
            data, media_type, extension_for_media_type(media_type)
        )
        video.thumbnail_url = url

        try:
            updated = await self.context.videos.update_video(video)
        except VideoRepositoryError:
            try:
                await self.context.thumbnails.discard(url)
            except (AssetStoreError, StorageOperationError) as cleanup_error:
                logger.warning(f"Couldn't remove orphaned thumbnail for video {video_id}: {cleanup_error}")
            raise

        logger.info(
            f"Thumbnail uploaded for video {video_id}",
            extra={"size_bytes": len(data), "media_type": media_type},
        )
        return updated

    async def upload_video(
        self, video_id: UUID, user_id: UUID, source_path: Path, media_type: str
    ) -> Video:
        """
        Process a spooled video file, upload it and set the video's `video_url`.

        The file is classified by aspect ratio, remuxed for fast start, and
        the remuxed copy is uploaded under `{landscape|portrait|other}/`.
        The remuxed copy is deleted on every path; `source_path` belongs to
        the caller.

        Returns:
            Video: The updated record.

        Raises:
            VideoNotFoundError: The video does not exist.
            VideoRepositoryError: The video could not be loaded or saved.
            NotVideoOwnerError: The caller does not own the video.
            MediaProcessingError: The remux failed or timed out.
            StorageOperationError: The upload to object storage failed.
        """
        video = await self._load_owned_video(video_id, user_id)

        aspect_ratio = await self.context.media.get_aspect_ratio(source_path)
        processed_path = await self.context.media.process_for_fast_start(source_path)

        try:
            object_key = (
                f"{aspect_ratio.value}/{generate_asset_name(extension_for_media_type(media_type))}"
            )
            await self.context.storage.upload_file(
                object_key, file_path=processed_path, content_type=media_type
            )
        finally:
            processed_path.unlink(missing_ok=True)

        video.video_url = self.context.storage.object_url(object_key)

        try:
            updated = await self.context.videos.update_video(video)
        except VideoRepositoryError:
            try:
                await self.context.storage.delete_file(object_key)
            except StorageOperationError as cleanup_error:
                logger.warning(f"Couldn't remove orphaned object {object_key}: {cleanup_error}")
            raise

        logger.info(
            f"Video uploaded for video {video_id}",
            extra={"object_key": object_key, "aspect_ratio": aspect_ratio.value},
        )
        return updated
