"""
Services module for the Tubely backend.

- video_repository: persistence of video records in MongoDB
- asset_store: thumbnail storage backends (local file, data URI, S3)
- media_service: ffmpeg fast-start remux and ffprobe aspect classification
- upload_service: thumbnail and video upload workflows

Services receive their collaborators explicitly and are built per request
from the service context through FastAPI's dependency system.
"""
