"""
Models Package for Tubely.

Pydantic models for video records and the enums used by the upload
pipeline. Video documents are stored in MongoDB with the video UUID as the
`_id` string.

Example Usage:
    ```python
    from app.models import AspectRatio, Video

    video = Video(user_id=user_id, title="Boots")
    video.video_url = f"https://bucket.s3.us-east-1.amazonaws.com/{AspectRatio.LANDSCAPE.value}/x.mp4"
    ```
"""

from app.models.video import AspectRatio, ThumbnailStorageMode, Video


__all__ = ["AspectRatio", "ThumbnailStorageMode", "Video"]
