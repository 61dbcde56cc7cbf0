"""
Tubely Backend Application Package

FastAPI service that accepts thumbnail and video uploads for existing video
records, stores the assets (local disk, inline data URI or S3) and records
the resulting URLs on the video.

Package Structure:
- api/: REST endpoints
- core/: infrastructure (auth, database, storage, service context)
- models/: Pydantic data models
- services/: upload workflows and their collaborators
- utils/: validation and logging helpers
"""

__version__ = "1.0.0"
__app_name__ = "Tubely"
