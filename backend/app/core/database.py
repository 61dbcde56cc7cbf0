"""
Tubely MongoDB Database Client Module

Async MongoDB connection management for the Tubely upload service using
Motor. It provides:
- Connection pooling with configurable pool size
- Health checks using the MongoDB ping command
- Accessor for the videos collection
- Index creation for the video queries
- Retry logic with exponential backoff on startup
- Startup/shutdown helpers for the FastAPI lifespan
"""

import asyncio
import logging

from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorCollection,
    AsyncIOMotorDatabase,
)
from pymongo.errors import ConnectionFailure, PyMongoError, ServerSelectionTimeoutError

from app.config import Settings


logger = logging.getLogger(__name__)

VIDEOS_COLLECTION = "videos"


class DatabaseClient:
    """
    Async MongoDB client wrapper with connection pooling and lifecycle management.

    Attributes:
        _settings: Settings instance containing MongoDB configuration
        _client: Motor async MongoDB client instance
        _database: Motor async database instance

    Example usage:
        ```python
        db_client = DatabaseClient(get_settings())
        await db_client.connect()

        videos = db_client.get_videos_collection()
        await videos.find_one({"_id": str(video_id)})

        await db_client.close()
        ```
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._mongodb_uri = settings.mongodb_uri
        self._db_name = settings.mongodb_db_name
        self._min_pool_size = settings.mongodb_min_pool_size
        self._max_pool_size = settings.mongodb_max_pool_size
        self._client: AsyncIOMotorClient | None = None
        self._database: AsyncIOMotorDatabase | None = None

    async def connect(self, max_retries: int = 3, retry_delay: float = 1.0) -> bool:
        """
        Establish the MongoDB connection, retrying with exponential backoff.

        Args:
            max_retries: Number of connection attempts.
            retry_delay: Delay before the second attempt, doubled after each failure.

        Returns:
            bool: True if the server answered a ping, False after all retries failed.
        """
        for attempt in range(1, max_retries + 1):
            try:
                logger.info(
                    f"Attempting MongoDB connection (attempt {attempt}/{max_retries}) "
                    f"to {self._db_name}..."
                )

                # tz_aware so timestamps come back as aware UTC datetimes
                self._client = AsyncIOMotorClient(
                    self._mongodb_uri,
                    minPoolSize=self._min_pool_size,
                    maxPoolSize=self._max_pool_size,
                    serverSelectionTimeoutMS=5000,
                    tz_aware=True,
                )
                self._database = self._client[self._db_name]

                await self._client.admin.command("ping")

                logger.info(
                    f"Connected to MongoDB database: {self._db_name} "
                    f"with pool size {self._min_pool_size}-{self._max_pool_size}"
                )
                return True

            except (ServerSelectionTimeoutError, ConnectionFailure):
                logger.exception(f"MongoDB connection failure (attempt {attempt}/{max_retries})")
            except PyMongoError:
                logger.exception(
                    f"Unexpected MongoDB error while connecting (attempt {attempt}/{max_retries})"
                )

            self._discard_client()

            if attempt < max_retries:
                logger.warning(f"Retrying in {retry_delay} seconds...")
                await asyncio.sleep(retry_delay)
                retry_delay *= 2

        logger.error(
            f"Failed to connect to MongoDB after {max_retries} attempts. "
            "Check connection URI and server availability."
        )
        return False

    def _discard_client(self) -> None:
        """Close the client of a failed connection attempt."""
        if self._client is not None:
            self._client.close()
        self._client = None
        self._database = None

    async def close(self) -> None:
        """Close the MongoDB connection. Safe to call when not connected."""
        if self._client is None:
            logger.warning("MongoDB close called but no active connection exists")
            return

        self._client.close()
        self._client = None
        self._database = None
        logger.info(f"MongoDB connection closed for database: {self._db_name}")

    async def ping(self) -> bool:
        """
        Health check using the MongoDB admin ping command.

        Returns:
            bool: True if the ping succeeded, False otherwise.
        """
        if self._client is None:
            logger.warning("MongoDB ping failed: No active connection")
            return False

        try:
            await self._client.admin.command("ping")
            return True
        except PyMongoError:
            logger.exception("MongoDB ping failed")
            return False

    def get_database(self) -> AsyncIOMotorDatabase:
        """
        Get the database instance.

        Raises:
            RuntimeError: If not connected to MongoDB.
        """
        if self._database is None:
            raise RuntimeError(
                "MongoDB database not available. Call connect() first or check connection status."
            )
        return self._database

    def get_videos_collection(self) -> AsyncIOMotorCollection:
        """
        Get the videos collection.

        Each document holds one video record: `_id` (UUID string), `user_id`,
        title, description, `thumbnail_url`, `video_url` and timestamps.

        Raises:
            RuntimeError: If not connected to MongoDB.
        """
        return self.get_database()[VIDEOS_COLLECTION]

    async def create_indexes(self) -> None:
        """Create the indexes used by video queries."""
        videos = self.get_database()[VIDEOS_COLLECTION]
        try:
            await videos.create_index("user_id")
            await videos.create_index("created_at")
            await videos.create_index([("user_id", 1), ("created_at", -1)])
        except PyMongoError:
            logger.exception("Error creating MongoDB indexes")
            raise
        logger.info(f"Created indexes on {VIDEOS_COLLECTION} collection")


async def init_db(settings: Settings) -> DatabaseClient:
    """
    Connect a DatabaseClient and create its indexes.

    Called from the application lifespan.

    Raises:
        RuntimeError: If the connection fails after all retries.
    """
    logger.info("Initializing MongoDB database client...")
    client = DatabaseClient(settings)

    if not await client.connect():
        raise RuntimeError(
            "Failed to establish MongoDB connection. "
            "Check mongodb_uri configuration and server availability."
        )

    await client.create_indexes()
    logger.info("MongoDB database client initialization complete")
    return client


async def close_db(client: DatabaseClient | None) -> None:
    """Close a DatabaseClient created by init_db."""
    if client is None:
        logger.warning("close_db called but no database client exists")
        return
    logger.info("Closing MongoDB database client...")
    await client.close()
