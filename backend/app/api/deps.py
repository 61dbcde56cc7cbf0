"""Shared route dependencies."""

from uuid import UUID

from fastapi import Depends, HTTPException, status

from app.core.context import ServiceContext, get_context
from app.services.upload_service import UploadService


def parse_video_id(video_id: str) -> UUID:
    """
    Parse the `{video_id}` path parameter.

    Declared ahead of authentication on each route so a malformed id is
    rejected with 400 before the token is examined.

    Raises:
        HTTPException: 400 `invalid_video_id`.
    """
    try:
        return UUID(video_id)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "invalid_video_id", "message": f"Invalid video ID: {video_id}"},
        ) from e


def get_upload_service(context: ServiceContext = Depends(get_context)) -> UploadService:
    """Dependency injection for UploadService."""
    return UploadService(context)
