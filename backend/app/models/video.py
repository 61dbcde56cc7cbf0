"""
Video Pydantic models for Tubely.

This module defines the Video record whose asset URLs the upload handlers
maintain, together with the enums used by the upload pipeline: the aspect
classification of an uploaded video and the thumbnail storage backend.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMS
# =============================================================================


class AspectRatio(str, Enum):
    """
    Frame geometry classification of an uploaded video.

    The value doubles as the object storage key prefix, so landscape videos
    land under `landscape/`, portrait videos under `portrait/` and everything
    else under `other/`.
    """

    LANDSCAPE = "landscape"
    PORTRAIT = "portrait"
    OTHER = "other"


class ThumbnailStorageMode(str, Enum):
    """Where thumbnail bytes are kept."""

    LOCAL = "local"
    DATA_URI = "data_uri"
    S3 = "s3"


# =============================================================================
# MODELS
# =============================================================================


class Video(BaseModel):
    """
    Pydantic model for a video record.

    Videos are created elsewhere (title and description are managed by other
    endpoints); the upload handlers only fill in `thumbnail_url` and
    `video_url`. Only the owning user may change those URLs.

    Attributes:
        id: Video identifier (stored as the MongoDB `_id` string)
        user_id: Identifier of the owning user
        title: Video title
        description: Video description
        thumbnail_url: Local URL, data URI or bucket URL of the thumbnail
        video_url: Bucket URL of the uploaded video file
        created_at: Creation timestamp (UTC)
        updated_at: Last modification timestamp (UTC)
    """

    model_config = ConfigDict(populate_by_name=True)

    id: UUID = Field(default_factory=uuid4, alias="_id", description="Video identifier")
    user_id: UUID = Field(..., description="Owning user identifier")
    title: str = Field(default="", max_length=500, description="Video title")
    description: str = Field(default="", description="Video description")
    thumbnail_url: str | None = Field(default=None, description="Thumbnail URL")
    video_url: str | None = Field(default=None, description="Video file URL")
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def is_owned_by(self, user_id: UUID) -> bool:
        """Return True when `user_id` owns this video."""
        return self.user_id == user_id

    def to_document(self) -> dict[str, Any]:
        """Convert to a MongoDB document (UUIDs stored as strings)."""
        document = self.model_dump(by_alias=True)
        document["_id"] = str(self.id)
        document["user_id"] = str(self.user_id)
        return document

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "Video":
        """Build a Video from a MongoDB document."""
        return cls.model_validate(document)
