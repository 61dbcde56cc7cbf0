"""
Tubely API package.

Routers are aggregated into `api_router`, mounted by the application under
the `/api` prefix:
    - upload.py: thumbnail and video upload endpoints
    - videos.py: video record lookup
"""

from fastapi import APIRouter

from app.api.upload import router as upload_router
from app.api.videos import router as videos_router


api_router = APIRouter()
api_router.include_router(upload_router, tags=["upload"])
api_router.include_router(videos_router, tags=["videos"])

__all__ = ["api_router"]
