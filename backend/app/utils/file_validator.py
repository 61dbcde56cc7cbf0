"""
Upload validation utilities for Tubely.

Checks applied to every multipart upload before anything is stored:
- the part's declared Content-Type is present and parseable
- the media type is on the endpoint's whitelist (JPEG/PNG thumbnails, MP4 video)
- the file part stays under the endpoint's byte ceiling

FastAPI has already parsed the multipart body (Starlette spools file parts
to the system temp directory) by the time a route runs. The size checks
here therefore bound what the route reads or copies from that spool; the
body as a whole is capped earlier by `UploadSizeLimitMiddleware`.

Failures are raised as `HTTPException` with a `{"error", "message"}` detail.
"""

from email.message import Message
from pathlib import Path
import re

import aiofiles

from fastapi import HTTPException, UploadFile, status


# =============================================================================
# CONSTANTS
# =============================================================================

BYTES_PER_KB: int = 1024

# Uploads are read in 1 MiB chunks
UPLOAD_CHUNK_SIZE: int = BYTES_PER_KB * BYTES_PER_KB

ALLOWED_THUMBNAIL_TYPES: frozenset[str] = frozenset({"image/jpeg", "image/png"})

ALLOWED_VIDEO_TYPES: frozenset[str] = frozenset({"video/mp4"})

# type "/" subtype, RFC 2045 token characters
_MEDIA_TYPE_PATTERN = re.compile(r"^[A-Za-z0-9!#$&^_.+-]+/[A-Za-z0-9!#$&^_.+-]+$")


# =============================================================================
# HTTP EXCEPTION HELPERS
# =============================================================================


def raise_validation_error(error: str, message: str, status_code: int = status.HTTP_400_BAD_REQUEST) -> None:
    """
    Raise an HTTPException with the standard error detail.

    Args:
        error: Machine readable error code, e.g. "unsupported_media_type"
        message: Human readable message
        status_code: HTTP status code (default 400 Bad Request)

    Raises:
        HTTPException: Always
    """
    raise HTTPException(status_code=status_code, detail={"error": error, "message": message})


def file_too_large_detail(max_bytes: int) -> dict[str, str]:
    """Error detail for an upload over `max_bytes`."""
    return {
        "error": "file_too_large",
        "message": f"File exceeds the maximum upload size of {format_file_size(max_bytes)}",
    }


def raise_file_too_large_error(max_bytes: int) -> None:
    """Raise HTTPException 413 for an upload over `max_bytes`."""
    raise HTTPException(
        status_code=status.HTTP_413_CONTENT_TOO_LARGE, detail=file_too_large_detail(max_bytes)
    )


# =============================================================================
# MEDIA TYPES
# =============================================================================


def parse_media_type(content_type: str | None) -> str:
    """
    Parse a Content-Type header value into its lower-cased media type.

    Parameters such as `charset` are dropped.

    Example:
        >>> parse_media_type("image/PNG; name=x.png")
        "image/png"

    Raises:
        HTTPException: 400 `missing_content_type` or `invalid_content_type`.
    """
    if content_type is None or not content_type.strip():
        raise_validation_error("missing_content_type", "Missing Content-Type for file")

    header = Message()
    header["Content-Type"] = content_type
    params = header.get_params() or []
    media_type = params[0][0].strip().lower() if params else ""

    if not _MEDIA_TYPE_PATTERN.match(media_type):
        raise_validation_error("invalid_content_type", f"Invalid Content-Type: {content_type}")

    return media_type


def validate_media_type(content_type: str | None, allowed: frozenset[str]) -> str:
    """
    Parse `content_type` and check it against `allowed`.

    Returns:
        str: The normalized media type.

    Raises:
        HTTPException: 400 when missing, unparseable, or not allowed.
    """
    media_type = parse_media_type(content_type)
    if media_type not in allowed:
        raise_validation_error(
            "unsupported_media_type",
            f"Unsupported media type {media_type}; allowed: {', '.join(sorted(allowed))}",
        )
    return media_type


def extension_for_media_type(media_type: str) -> str:
    """File extension for a media type: its subtype ("image/jpeg" -> "jpeg")."""
    _, _, subtype = media_type.partition("/")
    return subtype


# =============================================================================
# SIZE-LIMITED READING
# =============================================================================


async def read_upload_limited(upload: UploadFile, max_bytes: int) -> bytes:
    """
    Read an upload into memory, enforcing a size ceiling.

    Raises:
        HTTPException: 413 as soon as more than `max_bytes` have been read.
    """
    chunks: list[bytes] = []
    total = 0
    while chunk := await upload.read(UPLOAD_CHUNK_SIZE):
        total += len(chunk)
        if total > max_bytes:
            raise_file_too_large_error(max_bytes)
        chunks.append(chunk)
    return b"".join(chunks)


async def spool_upload_limited(upload: UploadFile, dest: Path, max_bytes: int) -> int:
    """
    Copy an upload to `dest` in chunks, enforcing a size ceiling.

    ffmpeg needs a named file, and Starlette's spool may be an anonymous
    temporary file, so video bodies are copied once into `dest`.

    The partially written file is removed when the ceiling is exceeded or
    the copy fails.

    Returns:
        int: Number of bytes written.

    Raises:
        HTTPException: 413 when more than `max_bytes` are received.
    """
    total = 0
    try:
        async with aiofiles.open(dest, "wb") as out:
            while chunk := await upload.read(UPLOAD_CHUNK_SIZE):
                total += len(chunk)
                if total > max_bytes:
                    raise_file_too_large_error(max_bytes)
                await out.write(chunk)
    except BaseException:
        dest.unlink(missing_ok=True)
        raise
    return total


# =============================================================================
# FORMATTING
# =============================================================================


def format_file_size(size_bytes: int) -> str:
    """
    Format a byte count as a human-readable string.

    Example:
        >>> format_file_size(1536)
        "1.50 KB"
        >>> format_file_size(10485760)
        "10.00 MB"
    """
    if size_bytes < 0:
        return "Invalid size"

    bytes_per_mb = BYTES_PER_KB * BYTES_PER_KB
    bytes_per_gb = bytes_per_mb * BYTES_PER_KB

    if size_bytes < BYTES_PER_KB:
        return f"{size_bytes} B"
    if size_bytes < bytes_per_mb:
        return f"{size_bytes / BYTES_PER_KB:.2f} KB"
    if size_bytes < bytes_per_gb:
        return f"{size_bytes / bytes_per_mb:.2f} MB"
    return f"{size_bytes / bytes_per_gb:.2f} GB"
