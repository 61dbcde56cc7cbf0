"""
Upload validation tests for backend/app/utils/file_validator.py.
"""

from io import BytesIO
from pathlib import Path

import pytest

from fastapi import HTTPException, UploadFile, status

from app.utils.file_validator import (
    ALLOWED_THUMBNAIL_TYPES,
    ALLOWED_VIDEO_TYPES,
    UPLOAD_CHUNK_SIZE,
    extension_for_media_type,
    file_too_large_detail,
    format_file_size,
    parse_media_type,
    raise_file_too_large_error,
    read_upload_limited,
    spool_upload_limited,
    validate_media_type,
)


def make_upload(data: bytes, filename: str = "upload.bin") -> UploadFile:
    return UploadFile(file=BytesIO(data), filename=filename)


class TestParseMediaType:
    @pytest.mark.parametrize(
        ("header", "expected"),
        [
            ("image/png", "image/png"),
            ("IMAGE/JPEG", "image/jpeg"),
            ("video/mp4; codecs=\"avc1.42E01E\"", "video/mp4"),
            ("  image/png ; name=thumb.png", "image/png"),
        ],
    )
    def test_parses(self, header: str, expected: str) -> None:
        assert parse_media_type(header) == expected

    @pytest.mark.parametrize("header", [None, "", "   "])
    def test_missing(self, header: str | None) -> None:
        with pytest.raises(HTTPException) as exc_info:
            parse_media_type(header)

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail["error"] == "missing_content_type"

    @pytest.mark.parametrize("header", ["png", "image/", "/png", "image png"])
    def test_invalid(self, header: str) -> None:
        with pytest.raises(HTTPException) as exc_info:
            parse_media_type(header)

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail["error"] == "invalid_content_type"


class TestValidateMediaType:
    @pytest.mark.parametrize("media_type", ["image/jpeg", "image/png"])
    def test_thumbnail_types_allowed(self, media_type: str) -> None:
        assert validate_media_type(media_type, ALLOWED_THUMBNAIL_TYPES) == media_type

    @pytest.mark.parametrize("media_type", ["image/gif", "image/svg+xml", "video/mp4", "text/html"])
    def test_other_thumbnail_types_rejected(self, media_type: str) -> None:
        with pytest.raises(HTTPException) as exc_info:
            validate_media_type(media_type, ALLOWED_THUMBNAIL_TYPES)

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail["error"] == "unsupported_media_type"

    def test_video_only_accepts_mp4(self) -> None:
        assert validate_media_type("video/mp4", ALLOWED_VIDEO_TYPES) == "video/mp4"
        with pytest.raises(HTTPException):
            validate_media_type("video/webm", ALLOWED_VIDEO_TYPES)


def test_extension_for_media_type() -> None:
    assert extension_for_media_type("image/jpeg") == "jpeg"
    assert extension_for_media_type("image/png") == "png"
    assert extension_for_media_type("video/mp4") == "mp4"


class TestFileTooLarge:
    def test_raises_content_too_large(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            raise_file_too_large_error(10 * 1024 * 1024)

        assert exc_info.value.status_code == status.HTTP_413_CONTENT_TOO_LARGE == 413
        assert exc_info.value.detail == file_too_large_detail(10 * 1024 * 1024)

    def test_detail_names_limit(self) -> None:
        detail = file_too_large_detail(1536)

        assert detail["error"] == "file_too_large"
        assert detail["message"] == "File exceeds the maximum upload size of 1.50 KB"


class TestReadUploadLimited:
    @pytest.mark.asyncio
    async def test_reads_everything_under_limit(self) -> None:
        data = b"x" * (UPLOAD_CHUNK_SIZE + 10)

        assert await read_upload_limited(make_upload(data), max_bytes=len(data)) == data

    @pytest.mark.asyncio
    async def test_rejects_over_limit(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await read_upload_limited(make_upload(b"x" * 101), max_bytes=100)

        assert exc_info.value.status_code == 413
        assert exc_info.value.detail["error"] == "file_too_large"

    @pytest.mark.asyncio
    async def test_empty_upload(self) -> None:
        assert await read_upload_limited(make_upload(b""), max_bytes=100) == b""


class TestSpoolUploadLimited:
    @pytest.mark.asyncio
    async def test_writes_file(self, tmp_path: Path) -> None:
        data = b"\x00" * (2 * UPLOAD_CHUNK_SIZE + 3)
        dest = tmp_path / "spool.mp4"

        written = await spool_upload_limited(make_upload(data), dest, max_bytes=len(data))

        assert written == len(data)
        assert dest.read_bytes() == data

    @pytest.mark.asyncio
    async def test_removes_partial_file_when_over_limit(self, tmp_path: Path) -> None:
        dest = tmp_path / "spool.mp4"

        with pytest.raises(HTTPException) as exc_info:
            await spool_upload_limited(
                make_upload(b"\x00" * (UPLOAD_CHUNK_SIZE + 1)), dest, max_bytes=UPLOAD_CHUNK_SIZE
            )

        assert exc_info.value.status_code == 413
        assert not dest.exists()


@pytest.mark.parametrize(
    ("size", "expected"),
    [
        (512, "512 B"),
        (1536, "1.50 KB"),
        (10 * 1024 * 1024, "10.00 MB"),
        (1024 * 1024 * 1024, "1.00 GB"),
        (-1, "Invalid size"),
    ],
)
def test_format_file_size(size: int, expected: str) -> None:
    assert format_file_size(size) == expected
