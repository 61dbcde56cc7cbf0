"""
Pytest Configuration and Test Fixtures for the Tubely Backend

Fixtures provided here:
- Settings with small upload ceilings and temporary asset/upload directories
- A sample video record, its owner and bearer tokens
- Mocked collaborators (video repository, S3 storage, media processor)
- A ServiceContext built from the mocks and a TestClient whose
  `get_context` dependency is overridden to return it

No MongoDB, S3 endpoint or ffmpeg binary is needed to run the suite.
"""

from collections.abc import Generator
from datetime import timedelta
from pathlib import Path
from unittest.mock import AsyncMock, Mock
from uuid import UUID, uuid4

import pytest

from fastapi.testclient import TestClient

from app.config import Settings
from app.core.auth import make_jwt
from app.core.context import ServiceContext, get_context
from app.core.storage import StorageClient
from app.main import app
from app.models.video import AspectRatio, Video
from app.services.asset_store import LocalAssetStore
from app.services.media_service import FFmpegMediaProcessor
from app.services.video_repository import VideoRepository


TEST_JWT_SECRET = "test-jwt-secret-for-tubely-suite-0123456789"

# Minimal file signatures; content is never decoded by the service
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 64
MP4_BYTES = b"\x00\x00\x00\x20ftypisom" + b"\x00" * 256


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: isolated unit test")
    config.addinivalue_line("markers", "integration: test exercising several components together")


# ==============================================================================
# Settings
# ==============================================================================


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings isolated from the environment, with 1 MiB upload ceilings."""
    upload_tmp_dir = tmp_path / "uploads"
    upload_tmp_dir.mkdir()
    return Settings(
        _env_file=None,
        app_env="testing",
        jwt_secret=TEST_JWT_SECRET,
        jwt_issuer="tubely-access",
        public_base_url="http://localhost:8091",
        s3_bucket_name="test-bucket",
        s3_region="us-east-1",
        assets_root=tmp_path / "assets",
        upload_tmp_dir=upload_tmp_dir,
        max_thumbnail_size_mb=1,
        max_video_size_mb=1,
    )


# ==============================================================================
# Users, Tokens and Videos
# ==============================================================================


@pytest.fixture
def owner_id() -> UUID:
    return uuid4()


@pytest.fixture
def other_user_id() -> UUID:
    return uuid4()


@pytest.fixture
def sample_video(owner_id: UUID) -> Video:
    return Video(user_id=owner_id, title="Boot.dev intro", description="A sample video")


def bearer_headers(user_id: UUID, settings: Settings, expires_in: timedelta | None = None) -> dict[str, str]:
    token = make_jwt(
        user_id,
        settings.jwt_secret,
        expires_in or timedelta(hours=1),
        issuer=settings.jwt_issuer,
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(owner_id: UUID, test_settings: Settings) -> dict[str, str]:
    """Authorization header for the video owner."""
    return bearer_headers(owner_id, test_settings)


@pytest.fixture
def other_user_headers(other_user_id: UUID, test_settings: Settings) -> dict[str, str]:
    """Authorization header for a user who does not own the sample video."""
    return bearer_headers(other_user_id, test_settings)


# ==============================================================================
# Mocked Collaborators
# ==============================================================================


@pytest.fixture
def mock_video_repository(sample_video: Video) -> AsyncMock:
    """Repository returning a fresh copy of the sample video and echoing updates."""
    repository = AsyncMock(spec=VideoRepository)
    repository.get_video.side_effect = lambda video_id: sample_video.model_copy()
    repository.update_video.side_effect = lambda video: video
    return repository


@pytest.fixture
def mock_storage() -> Mock:
    """StorageClient mock producing AWS-style object URLs for test-bucket."""
    storage = Mock(spec=StorageClient)
    storage.upload_file = AsyncMock(side_effect=lambda object_key, **kwargs: object_key)
    storage.delete_file = AsyncMock()
    storage.object_url = Mock(
        side_effect=lambda key: f"https://test-bucket.s3.us-east-1.amazonaws.com/{key}"
    )
    return storage


async def fake_fast_start(input_path: Path) -> Path:
    """Stand-in for the ffmpeg remux: copies the input to `<input>.processing`."""
    output_path = Path(f"{input_path}.processing")
    output_path.write_bytes(input_path.read_bytes())
    return output_path


@pytest.fixture
def mock_media() -> Mock:
    """Media processor mock classifying every video as landscape."""
    media = Mock(spec=FFmpegMediaProcessor)
    media.get_aspect_ratio = AsyncMock(return_value=AspectRatio.LANDSCAPE)
    media.process_for_fast_start = AsyncMock(side_effect=fake_fast_start)
    return media


@pytest.fixture
def service_context(
    test_settings: Settings,
    mock_video_repository: AsyncMock,
    mock_storage: Mock,
    mock_media: Mock,
) -> ServiceContext:
    """ServiceContext wired with mocks and a local thumbnail store."""
    return ServiceContext(
        settings=test_settings,
        database=None,
        videos=mock_video_repository,
        storage=mock_storage,
        media=mock_media,
        thumbnails=LocalAssetStore(test_settings.assets_root, test_settings.public_base_url),
    )


# ==============================================================================
# FastAPI Test Client
# ==============================================================================


@pytest.fixture
def client(service_context: ServiceContext) -> Generator[TestClient, None, None]:
    """TestClient with the service context dependency overridden."""
    app.dependency_overrides[get_context] = lambda: service_context
    yield TestClient(app)
    app.dependency_overrides.clear()
