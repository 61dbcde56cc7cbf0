"""
Service context for the Tubely backend.

The context bundles the long-lived collaborators (settings, database,
object storage, media tools, thumbnail store) that request handlers need.
It is built once in the application lifespan, stored on `app.state`, and
handed to handlers through the `get_context` dependency, so nothing in the
request path reads module-level clients.
"""

import logging

from dataclasses import dataclass

from fastapi import Request

from app.config import Settings
from app.core.database import DatabaseClient
from app.core.storage import StorageClient
from app.services.asset_store import AssetStore, build_thumbnail_store
from app.services.media_service import FFmpegMediaProcessor, MediaProcessor
from app.services.video_repository import VideoRepository


logger = logging.getLogger(__name__)


@dataclass
class ServiceContext:
    """Collaborators shared by all request handlers."""

    settings: Settings
    database: DatabaseClient | None
    videos: VideoRepository
    storage: StorageClient
    media: MediaProcessor
    thumbnails: AssetStore


def build_context(settings: Settings, database: DatabaseClient) -> ServiceContext:
    """
    Build the service context from settings and a connected database client.

    Args:
        settings: Application settings.
        database: Connected DatabaseClient.

    Returns:
        ServiceContext: Context ready to be stored on `app.state.context`.
    """
    storage = StorageClient(settings)
    media = FFmpegMediaProcessor(
        ffmpeg_path=settings.ffmpeg_path,
        ffprobe_path=settings.ffprobe_path,
        timeout_seconds=settings.media_tool_timeout_seconds,
    )
    context = ServiceContext(
        settings=settings,
        database=database,
        videos=VideoRepository(database.get_videos_collection()),
        storage=storage,
        media=media,
        thumbnails=build_thumbnail_store(settings, storage),
    )
    logger.info(
        "Service context built",
        extra={"thumbnail_storage": settings.thumbnail_storage.value},
    )
    return context


def get_context(request: Request) -> ServiceContext:
    """
    FastAPI dependency returning the application's service context.

    Raises:
        RuntimeError: If the application started without a context.
    """
    context = getattr(request.app.state, "context", None)
    if context is None:
        raise RuntimeError("Service context not initialized. Is the application lifespan running?")
    return context
