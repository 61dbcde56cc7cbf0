"""
Utilities Package for the Tubely backend.

Modules:
--------
file_validator:
    Upload validation helpers: media type parsing and whitelisting,
    size-limited reading and spooling of multipart uploads, and helpers that
    raise structured HTTP errors.

logger:
    Logging configuration: JSON and text formatters, application-wide
    setup with Uvicorn integration, and context-enriched logger adapters.
"""
