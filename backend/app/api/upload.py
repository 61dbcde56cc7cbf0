"""
FastAPI Upload Router for Tubely

Endpoints attaching media to an existing video record:
- POST /thumbnail_upload/{video_id} - JPEG/PNG thumbnail (multipart field "thumbnail")
- POST /video_upload/{video_id} - MP4 video (multipart field "video")

A body larger than the route's ceiling plus multipart overhead is refused
with 413 by `UploadSizeLimitMiddleware` before it is parsed. Otherwise
requests are checked in a fixed order: video id (400), bearer token (401),
form field (400), content type (400), file size (413), video lookup (404),
ownership (401). Storage, processing and database failures return 500.
On success the updated video record is returned as JSON.
"""

import logging
import os
import tempfile

from pathlib import Path
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from app.api.deps import get_upload_service, parse_video_id
from app.core.auth import get_current_user_id
from app.core.context import ServiceContext, get_context
from app.core.storage import StorageOperationError
from app.services.asset_store import AssetStoreError
from app.services.media_service import MediaProcessingError, MediaTimeoutError
from app.services.upload_service import NotVideoOwnerError, UploadService
from app.services.video_repository import VideoNotFoundError, VideoRepositoryError
from app.utils.file_validator import (
    ALLOWED_THUMBNAIL_TYPES,
    ALLOWED_VIDEO_TYPES,
    read_upload_limited,
    spool_upload_limited,
    validate_media_type,
)
from app.utils.logger import add_log_context


logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"description": "Malformed video id, missing file or unsupported content type"},
    401: {"description": "Missing/invalid token or caller does not own the video"},
    404: {"description": "Video not found"},
    413: {"description": "File too large"},
    500: {"description": "Storage, processing or database failure"},
}


def _error(status_code: int, error: str, message: str) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"error": error, "message": message})


def _http_error_for(exc: Exception) -> HTTPException:
    """Map an upload pipeline exception to its HTTP error."""
    if isinstance(exc, VideoNotFoundError):
        return _error(status.HTTP_404_NOT_FOUND, "video_not_found", "Couldn't find video")
    if isinstance(exc, NotVideoOwnerError):
        return _error(status.HTTP_401_UNAUTHORIZED, "not_video_owner", "You don't own this video")
    if isinstance(exc, VideoRepositoryError):
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "database_error", str(exc))
    if isinstance(exc, MediaTimeoutError):
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "media_processing_failed",
            f"Video processing timed out: {exc}",
        )
    if isinstance(exc, MediaProcessingError):
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "media_processing_failed",
            f"Couldn't process video: {exc}",
        )
    if isinstance(exc, AssetStoreError | StorageOperationError):
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "storage_failed", f"Couldn't store file: {exc}"
        )
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "upload_failed", "Upload failed")


PIPELINE_ERRORS = (
    VideoRepositoryError,
    NotVideoOwnerError,
    MediaProcessingError,
    AssetStoreError,
    StorageOperationError,
)


def _require_file(upload: UploadFile | None, field: str) -> UploadFile:
    if upload is None:
        raise _error(
            status.HTTP_400_BAD_REQUEST, "missing_file", f"Missing form file field '{field}'"
        )
    return upload


@router.post(
    "/thumbnail_upload/{video_id}",
    summary="Upload a video thumbnail",
    description="Store a JPEG or PNG thumbnail (max 10 MiB by default) for a video you own.",
    responses=ERROR_RESPONSES,
)
async def upload_thumbnail(
    video_id: UUID = Depends(parse_video_id),
    user_id: UUID = Depends(get_current_user_id),
    thumbnail: UploadFile | None = File(None, description="Thumbnail image"),
    context: ServiceContext = Depends(get_context),
    upload_service: UploadService = Depends(get_upload_service),
) -> dict[str, Any]:
    """
    Upload a thumbnail for a video.

    The image is stored with the configured thumbnail backend and its URL
    saved as the video's `thumbnail_url`.

    Returns:
        dict: The updated video record.
    """
    ctx_logger = add_log_context(logger, video_id=str(video_id), user_id=str(user_id))
    ctx_logger.info("Thumbnail upload requested")

    upload = _require_file(thumbnail, "thumbnail")
    media_type = validate_media_type(upload.content_type, ALLOWED_THUMBNAIL_TYPES)
    data = await read_upload_limited(upload, context.settings.max_thumbnail_size_bytes)

    try:
        video = await upload_service.upload_thumbnail(video_id, user_id, data, media_type)
    except PIPELINE_ERRORS as e:
        ctx_logger.warning(f"Thumbnail upload failed: {e}")
        raise _http_error_for(e) from e

    ctx_logger.info("Thumbnail upload complete", extra={"size_bytes": len(data)})
    return video.model_dump(mode="json")


@router.post(
    "/video_upload/{video_id}",
    summary="Upload a video file",
    description=(
        "Store an MP4 (max 1 GiB by default) for a video you own. The file is remuxed "
        "for fast start and uploaded under a prefix chosen by its aspect ratio."
    ),
    responses=ERROR_RESPONSES,
)
async def upload_video(
    video_id: UUID = Depends(parse_video_id),
    user_id: UUID = Depends(get_current_user_id),
    video: UploadFile | None = File(None, description="MP4 video file"),
    context: ServiceContext = Depends(get_context),
    upload_service: UploadService = Depends(get_upload_service),
) -> dict[str, Any]:
    """
    Upload the video file for a video record.

    The body is spooled to a temporary file under `upload_tmp_dir`, which is
    removed whether the upload succeeds or fails.

    Returns:
        dict: The updated video record.
    """
    ctx_logger = add_log_context(logger, video_id=str(video_id), user_id=str(user_id))
    ctx_logger.info("Video upload requested")

    upload = _require_file(video, "video")
    media_type = validate_media_type(upload.content_type, ALLOWED_VIDEO_TYPES)

    settings = context.settings
    fd, tmp_name = tempfile.mkstemp(
        prefix="tubely-upload-", suffix=".mp4", dir=settings.upload_tmp_dir
    )
    os.close(fd)
    spool_path = Path(tmp_name)

    try:
        size = await spool_upload_limited(upload, spool_path, settings.max_video_size_bytes)
        # Release Starlette's copy before the remux writes a second file
        await upload.close()
        ctx_logger.debug(f"Spooled {size} bytes to {spool_path}")

        try:
            record = await upload_service.upload_video(video_id, user_id, spool_path, media_type)
        except PIPELINE_ERRORS as e:
            ctx_logger.warning(f"Video upload failed: {e}")
            raise _http_error_for(e) from e
    finally:
        spool_path.unlink(missing_ok=True)

    ctx_logger.info("Video upload complete", extra={"size_bytes": size})
    return record.model_dump(mode="json")
