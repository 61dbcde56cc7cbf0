"""
Request body ceilings for the upload routes.

FastAPI parses a multipart body, spooling file parts to disk, before any
route dependency runs. This ASGI middleware caps the body ahead of that:

- a declared Content-Length above the ceiling is answered with 413 before
  any of the body is read
- without a usable Content-Length the body is counted as it streams in, and
  the read is aborted with 413 once the ceiling is passed

The ceiling is the endpoint's file limit plus MULTIPART_OVERHEAD_BYTES for
boundaries and part headers. The exact per-file limit is still checked by
the route.
"""

import logging

from fastapi import HTTPException, status
from fastapi.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from app.utils.file_validator import file_too_large_detail


logger = logging.getLogger(__name__)

MULTIPART_OVERHEAD_BYTES = 64 * 1024


class UploadSizeLimitMiddleware:
    """
    Reject POST bodies that exceed the ceiling configured for their route.

    Args:
        app: The wrapped ASGI application
        limits: Path prefix -> maximum file size in bytes

    Example:
        ```python
        app.add_middleware(
            UploadSizeLimitMiddleware,
            limits={"/api/video_upload/": settings.max_video_size_bytes},
        )
        ```
    """

    def __init__(self, app: ASGIApp, limits: dict[str, int]) -> None:
        self.app = app
        self.limits = limits

    def limit_for(self, path: str) -> int | None:
        for prefix, max_bytes in self.limits.items():
            if path.startswith(prefix):
                return max_bytes
        return None

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope.get("method") != "POST":
            await self.app(scope, receive, send)
            return

        path = scope.get("path", "")
        max_bytes = self.limit_for(path)
        if max_bytes is None:
            await self.app(scope, receive, send)
            return

        allowance = max_bytes + MULTIPART_OVERHEAD_BYTES

        headers = dict(scope.get("headers", []))
        content_length = headers.get(b"content-length")
        if content_length is not None and content_length.isdigit() and int(content_length) > allowance:
            logger.warning(
                f"Rejected upload to {path}: Content-Length {int(content_length)} exceeds {allowance}"
            )
            response = JSONResponse(
                status_code=status.HTTP_413_CONTENT_TOO_LARGE,
                content={"detail": file_too_large_detail(max_bytes)},
            )
            await response(scope, receive, send)
            return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > allowance:
                    logger.warning(f"Aborted upload to {path}: body exceeds {allowance} bytes")
                    raise HTTPException(
                        status_code=status.HTTP_413_CONTENT_TOO_LARGE,
                        detail=file_too_large_detail(max_bytes),
                    )
            return message

        await self.app(scope, limited_receive, send)
