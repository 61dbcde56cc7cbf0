"""
FastAPI Video Router for Tubely

- GET /videos/{video_id} - fetch a video record, including the asset URLs
  written by the upload endpoints
"""

import logging

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import parse_video_id
from app.core.auth import get_current_user_id
from app.core.context import ServiceContext, get_context
from app.services.video_repository import VideoNotFoundError, VideoRepositoryError


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/videos/{video_id}",
    summary="Get a video",
    responses={
        400: {"description": "Malformed video id"},
        401: {"description": "Missing or invalid token"},
        404: {"description": "Video not found"},
    },
)
async def get_video(
    video_id: UUID = Depends(parse_video_id),
    user_id: UUID = Depends(get_current_user_id),
    context: ServiceContext = Depends(get_context),
) -> dict[str, Any]:
    """Return the video record as JSON."""
    try:
        video = await context.videos.get_video(video_id)
    except VideoNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "video_not_found", "message": "Couldn't find video"},
        ) from e
    except VideoRepositoryError as e:
        logger.error(f"Failed to load video {video_id} for user {user_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "database_error", "message": "Couldn't get video"},
        ) from e

    return video.model_dump(mode="json")
