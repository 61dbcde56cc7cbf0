"""
Video record persistence for Tubely.

Thin async repository over the MongoDB `videos` collection. Upload handlers
read a video, check ownership and write back the asset URLs through it.
"""

import logging

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from motor.motor_asyncio import AsyncIOMotorCollection
from pydantic import ValidationError
from pymongo.errors import PyMongoError

from app.models.video import Video


logger = logging.getLogger(__name__)


class VideoRepositoryError(Exception):
    """Raised when the video store cannot be read or written."""


class VideoNotFoundError(VideoRepositoryError):
    """Raised when no video exists with the requested id."""

    def __init__(self, video_id: UUID) -> None:
        self.video_id = video_id
        super().__init__(f"Video {video_id} not found")


class VideoRepository:
    """Read and update access to video records."""

    def __init__(self, collection: AsyncIOMotorCollection) -> None:
        self._collection = collection

    async def get_video(self, video_id: UUID) -> Video:
        """
        Load a video by id.

        Raises:
            VideoNotFoundError: If no document has this id.
            VideoRepositoryError: On database errors or a malformed document.
        """
        try:
            document: dict[str, Any] | None = await self._collection.find_one({"_id": str(video_id)})
        except PyMongoError as e:
            logger.exception(f"Failed to load video {video_id}")
            raise VideoRepositoryError(f"Couldn't get video: {e}") from e

        if document is None:
            raise VideoNotFoundError(video_id)

        try:
            return Video.from_document(document)
        except ValidationError as e:
            logger.exception(f"Stored video {video_id} is malformed")
            raise VideoRepositoryError(f"Stored video {video_id} is malformed") from e

    async def update_video(self, video: Video) -> Video:
        """
        Persist the mutable fields of a video and bump `updated_at`.

        Returns:
            Video: The video as stored.

        Raises:
            VideoNotFoundError: If the video no longer exists.
            VideoRepositoryError: On database errors.
        """
        updated = video.model_copy(update={"updated_at": datetime.now(UTC)})
        changes = {
            "title": updated.title,
            "description": updated.description,
            "thumbnail_url": updated.thumbnail_url,
            "video_url": updated.video_url,
            "updated_at": updated.updated_at,
        }

        try:
            result = await self._collection.update_one({"_id": str(video.id)}, {"$set": changes})
        except PyMongoError as e:
            logger.exception(f"Failed to update video {video.id}")
            raise VideoRepositoryError(f"Couldn't update video: {e}") from e

        if result.matched_count == 0:
            raise VideoNotFoundError(video.id)

        logger.debug(f"Updated video {video.id}")
        return updated
