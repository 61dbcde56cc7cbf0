"""
Media processing service for Tubely.

Wraps the two external tools the video upload path depends on:

- ffmpeg rewrites an MP4 so the `moov` atom precedes the media data
  ("fast start"), letting players begin playback before the whole file
  has downloaded.
- ffprobe reports stream geometry, used to classify a video as landscape,
  portrait or other. The classification picks the storage key prefix.

Each invocation runs through `asyncio.create_subprocess_exec`, is bounded by
a timeout, and is killed if the awaiting request task is cancelled, so a
hung tool can never pin a request forever.
"""

import asyncio
import contextlib
import json
import logging

from math import gcd
from pathlib import Path
from typing import Any, Protocol

from app.models.video import AspectRatio


logger = logging.getLogger(__name__)

PROCESSING_SUFFIX = ".processing"
STDERR_TAIL_CHARS = 500

LANDSCAPE_RATIO = "16:9"
PORTRAIT_RATIO = "9:16"


class MediaProcessingError(Exception):
    """Raised when ffmpeg/ffprobe fails or cannot be started."""


class MediaTimeoutError(MediaProcessingError):
    """Raised when an ffmpeg/ffprobe invocation exceeds its timeout."""


class MediaProcessor(Protocol):
    """Capability interface for the video post-processing tools."""

    async def process_for_fast_start(self, input_path: Path) -> Path: ...

    async def get_aspect_ratio(self, input_path: Path) -> AspectRatio: ...


def _ratio_from_dimensions(width: Any, height: Any) -> str | None:
    try:
        w, h = int(width), int(height)
    except (TypeError, ValueError):
        return None
    if w <= 0 or h <= 0:
        return None
    divisor = gcd(w, h)
    return f"{w // divisor}:{h // divisor}"


def classify_aspect_ratio(streams: list[dict[str, Any]]) -> AspectRatio:
    """
    Classify probed streams as landscape, portrait or other.

    The first video stream is used (the first stream when none is tagged as
    video). Its `display_aspect_ratio` is compared when present, otherwise
    `width:height` reduced to lowest terms. Only an exact "16:9" or "9:16"
    matches; everything else, including an empty stream list, is `other`.

    Args:
        streams: The `streams` array of `ffprobe -print_format json -show_streams`.

    Returns:
        AspectRatio: The classification.
    """
    if not streams:
        return AspectRatio.OTHER

    stream = next((s for s in streams if s.get("codec_type") == "video"), streams[0])

    ratio = stream.get("display_aspect_ratio")
    if not ratio or ratio in {"0:1", "N/A"}:
        ratio = _ratio_from_dimensions(stream.get("width"), stream.get("height"))

    if ratio == LANDSCAPE_RATIO:
        return AspectRatio.LANDSCAPE
    if ratio == PORTRAIT_RATIO:
        return AspectRatio.PORTRAIT
    return AspectRatio.OTHER


class FFmpegMediaProcessor:
    """
    MediaProcessor backed by the ffmpeg and ffprobe executables.

    Attributes:
        ffmpeg_path: ffmpeg executable name or path
        ffprobe_path: ffprobe executable name or path
        timeout_seconds: Upper bound for a single tool invocation
    """

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        ffprobe_path: str = "ffprobe",
        timeout_seconds: float = 300.0,
    ) -> None:
        self.ffmpeg_path = ffmpeg_path
        self.ffprobe_path = ffprobe_path
        self.timeout_seconds = timeout_seconds

    async def _run(self, *cmd: str) -> bytes:
        """
        Run a tool and return its stdout.

        Raises:
            MediaTimeoutError: If the process outlives `timeout_seconds`.
            MediaProcessingError: If it cannot start or exits non-zero.
        """
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise MediaProcessingError(f"Couldn't start {cmd[0]}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError as e:
            await self._kill(process)
            raise MediaTimeoutError(
                f"{cmd[0]} timed out after {self.timeout_seconds} seconds"
            ) from e
        except asyncio.CancelledError:
            await self._kill(process)
            raise

        if process.returncode != 0:
            tail = stderr.decode("utf-8", errors="replace").strip()[-STDERR_TAIL_CHARS:]
            raise MediaProcessingError(f"{cmd[0]} exited with status {process.returncode}: {tail}")

        return stdout

    @staticmethod
    async def _kill(process: asyncio.subprocess.Process) -> None:
        # already exited between the timeout and the kill
        with contextlib.suppress(ProcessLookupError):
            process.kill()
        await process.wait()

    async def process_for_fast_start(self, input_path: Path) -> Path:
        """
        Remux an MP4 for fast start without re-encoding.

        Args:
            input_path: Source MP4.

        Returns:
            Path: The remuxed file, `input_path` + ".processing". The caller
            owns it and must delete it.

        Raises:
            MediaProcessingError: If ffmpeg fails or times out.
        """
        output_path = Path(f"{input_path}{PROCESSING_SUFFIX}")
        logger.info(f"Remuxing {input_path} for fast start")

        try:
            await self._run(
                self.ffmpeg_path,
                "-y",
                "-v",
                "error",
                "-i",
                str(input_path),
                "-c",
                "copy",
                "-movflags",
                "faststart",
                "-f",
                "mp4",
                str(output_path),
            )
        except BaseException:
            output_path.unlink(missing_ok=True)
            raise

        return output_path

    async def probe_streams(self, input_path: Path) -> list[dict[str, Any]]:
        """
        Return the stream descriptions reported by ffprobe.

        Raises:
            MediaProcessingError: If ffprobe fails, times out, or prints
                                  output that is not JSON.
        """
        stdout = await self._run(
            self.ffprobe_path,
            "-v",
            "error",
            "-print_format",
            "json",
            "-show_streams",
            str(input_path),
        )
        try:
            payload = json.loads(stdout)
        except json.JSONDecodeError as e:
            raise MediaProcessingError(f"ffprobe returned invalid JSON: {e}") from e

        streams = payload.get("streams", []) if isinstance(payload, dict) else []
        return [s for s in streams if isinstance(s, dict)]

    async def get_aspect_ratio(self, input_path: Path) -> AspectRatio:
        """
        Classify a video file's frame geometry.

        Probe failures are not fatal: the video is classified as `other`.
        """
        try:
            streams = await self.probe_streams(input_path)
        except MediaProcessingError as e:
            logger.warning(f"Couldn't probe {input_path}, classifying as other: {e}")
            return AspectRatio.OTHER

        return classify_aspect_ratio(streams)
