"""
MongoDB client tests. AsyncIOMotorClient is patched; no server is contacted.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from pymongo.errors import OperationFailure, ServerSelectionTimeoutError

from app.config import Settings
from app.core.database import VIDEOS_COLLECTION, DatabaseClient, close_db, init_db


def make_motor_client(ping_side_effect=None) -> MagicMock:
    client = MagicMock()
    client.admin.command = AsyncMock(side_effect=ping_side_effect)
    return client


@pytest.fixture
def motor_client() -> MagicMock:
    return make_motor_client()


@pytest.fixture
def patched_motor(motor_client: MagicMock):
    with patch("app.core.database.AsyncIOMotorClient", return_value=motor_client) as mock_cls:
        yield mock_cls


class TestConnect:
    @pytest.mark.asyncio
    async def test_connects_with_pool_settings(
        self, test_settings: Settings, patched_motor: MagicMock
    ) -> None:
        client = DatabaseClient(test_settings)

        assert await client.connect() is True

        kwargs = patched_motor.call_args.kwargs
        assert patched_motor.call_args.args == (test_settings.mongodb_uri,)
        assert kwargs["minPoolSize"] == test_settings.mongodb_min_pool_size
        assert kwargs["maxPoolSize"] == test_settings.mongodb_max_pool_size
        assert kwargs["tz_aware"] is True

    @pytest.mark.asyncio
    async def test_retries_then_gives_up(self, test_settings: Settings) -> None:
        failing = make_motor_client(ping_side_effect=ServerSelectionTimeoutError("down"))

        with patch("app.core.database.AsyncIOMotorClient", return_value=failing), patch(
            "app.core.database.asyncio.sleep", new_callable=AsyncMock
        ) as mock_sleep:
            connected = await DatabaseClient(test_settings).connect(max_retries=3, retry_delay=0.5)

        assert connected is False
        assert failing.admin.command.await_count == 3
        assert failing.close.call_count == 3
        assert [c.args[0] for c in mock_sleep.await_args_list] == [0.5, 1.0]

    @pytest.mark.asyncio
    async def test_recovers_on_second_attempt(self, test_settings: Settings) -> None:
        flaky = make_motor_client(ping_side_effect=[ServerSelectionTimeoutError("down"), {"ok": 1}])

        with patch("app.core.database.AsyncIOMotorClient", return_value=flaky), patch(
            "app.core.database.asyncio.sleep", new_callable=AsyncMock
        ):
            client = DatabaseClient(test_settings)
            assert await client.connect() is True

        flaky.close.assert_called_once()
        assert client.get_database() is flaky[test_settings.mongodb_db_name]


class TestClientOperations:
    @pytest.mark.asyncio
    async def test_collection_requires_connection(self, test_settings: Settings) -> None:
        with pytest.raises(RuntimeError):
            DatabaseClient(test_settings).get_videos_collection()

    @pytest.mark.asyncio
    async def test_videos_collection(
        self, test_settings: Settings, patched_motor: MagicMock, motor_client: MagicMock
    ) -> None:
        client = DatabaseClient(test_settings)
        await client.connect()

        client.get_videos_collection()

        database = motor_client.__getitem__.return_value
        database.__getitem__.assert_called_with(VIDEOS_COLLECTION)

    @pytest.mark.asyncio
    async def test_ping(self, test_settings: Settings, patched_motor: MagicMock, motor_client: MagicMock) -> None:
        client = DatabaseClient(test_settings)
        assert await client.ping() is False

        await client.connect()
        assert await client.ping() is True

        motor_client.admin.command.side_effect = OperationFailure("not authorized")
        assert await client.ping() is False

    @pytest.mark.asyncio
    async def test_close(self, test_settings: Settings, patched_motor: MagicMock, motor_client: MagicMock) -> None:
        client = DatabaseClient(test_settings)
        await client.connect()

        await client.close()

        motor_client.close.assert_called_once()
        with pytest.raises(RuntimeError):
            client.get_database()


class TestLifecycleHelpers:
    @pytest.mark.asyncio
    async def test_init_db_creates_indexes(
        self, test_settings: Settings, patched_motor: MagicMock, motor_client: MagicMock
    ) -> None:
        collection = motor_client.__getitem__.return_value.__getitem__.return_value
        collection.create_index = AsyncMock()

        client = await init_db(test_settings)

        assert isinstance(client, DatabaseClient)
        indexed = [c.args[0] for c in collection.create_index.await_args_list]
        assert "user_id" in indexed
        assert "created_at" in indexed

    @pytest.mark.asyncio
    async def test_init_db_fails_without_database(self, test_settings: Settings) -> None:
        with patch.object(DatabaseClient, "connect", AsyncMock(return_value=False)), pytest.raises(
            RuntimeError
        ):
            await init_db(test_settings)

    @pytest.mark.asyncio
    async def test_close_db_tolerates_none(self) -> None:
        await close_db(None)
