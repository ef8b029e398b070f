# tradesite/db/database.py
import logging
from typing import Optional

import certifi
from fastapi import Request
from motor.motor_asyncio import AsyncIOMotorClient

from tradesite.core.config import Settings
from tradesite.core.errors import ConfigurationError
from tradesite.db.blob_storage import BlobStorage
from tradesite.db.file_storage import FileStorage
from tradesite.db.storage import ShardStore

logger = logging.getLogger(__name__)

client: Optional[AsyncIOMotorClient] = None


def connect_to_mongo(settings: Settings) -> AsyncIOMotorClient:
    global client
    if client is None:
        if not settings.mongo_uri:
            raise ConfigurationError("MONGO_URI is required for the blob storage backend")
        options = {}
        if settings.mongo_uri.startswith("mongodb+srv://") or "tls=true" in settings.mongo_uri:
            options["tlsCAFile"] = certifi.where()
        client = AsyncIOMotorClient(settings.mongo_uri, **options)
        logger.info("Connected to MongoDB database %s", settings.mongo_db_name)
    return client


def close_mongo_connection() -> None:
    global client
    if client is not None:
        client.close()
        client = None


def create_storage(settings: Settings) -> ShardStore:
    """Build the shard store selected by ``settings.storage_backend``."""
    if settings.storage_backend == "blob":
        db = connect_to_mongo(settings)[settings.mongo_db_name]
        return BlobStorage(db[settings.blob_collection], prefix=settings.blob_prefix)
    return FileStorage(settings.data_dir)


def get_storage(request: Request) -> ShardStore:
    """FastAPI dependency returning the store attached at startup."""
    return request.app.state.storage
