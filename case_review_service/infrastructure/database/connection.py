from case_review_service.app.config import settings
import logging
from typing import Optional
from fastapi import Request
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

logger = logging.getLogger(__name__)


class MongoConnection:
    """
    Owns the Motor client for the lifetime of the process.

    Opened once at application startup and closed at shutdown; handlers receive
    the database through the get_db dependency instead of a module global.
    """

    def __init__(self, mongo_details: str, db_name: str):
        self.mongo_details = mongo_details
        self.db_name = db_name
        self.client: Optional[AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = None

    async def connect(self) -> AsyncIOMotorDatabase:
        if self.client is not None and self.db is not None:
            logger.info("MongoDB connection already established.")
            return self.db
        try:
            logger.info(f"Attempting to connect to MongoDB database '{self.db_name}'...")
            client = AsyncIOMotorClient(self.mongo_details, tz_aware=True, maxPoolSize=5)
            # Verify connection by pinging the admin database
            await client.admin.command('ping')
            self.client = client
            self.db = client[self.db_name]
            logger.info(f"Successfully connected to MongoDB and database '{self.db_name}' is set.")
            return self.db
        except Exception as e:
            logger.error(f"Failed to connect to MongoDB: {e}", exc_info=True)
            self.client = None
            self.db = None
            raise ConnectionError(f"Failed to connect to MongoDB: {e}")

    def close(self):
        if self.client:
            self.client.close()
            self.client = None
            self.db = None
            logger.info("MongoDB connection closed.")


def create_mongo_connection() -> MongoConnection:
    return MongoConnection(settings.MONGO_DETAILS, settings.DB_NAME)


async def get_db(request: Request) -> AsyncIOMotorDatabase:
    """FastAPI dependency yielding the database opened during application startup."""
    connection: Optional[MongoConnection] = getattr(request.app.state, "mongo", None)
    if connection is None or connection.db is None:
        logger.error("Database requested before the MongoDB connection was opened.")
        raise ConnectionError("Database client is not available.")
    return connection.db
