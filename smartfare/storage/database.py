from __future__ import annotations

import logging

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from ..errors import StorageUnavailable
from .config import DEFAULT_STORAGE_CONFIG, StorageConfig

logger = logging.getLogger(__name__)

_client: MongoClient | None = None
_db: Database | None = None


def _host_of(uri: str) -> str:
    # Never log credentials
    return uri.rsplit("@", 1)[-1]


def connect_database(config: StorageConfig = DEFAULT_STORAGE_CONFIG) -> Database:
    """Open the shared client once and return the configured database."""
    global _client, _db
    if _db is not None:
        return _db
    if not config.configured:
        raise StorageUnavailable("MONGODB_URI non configurato")

    logger.info("Connecting to MongoDB at %s", _host_of(config.uri))
    client: MongoClient = MongoClient(
        config.uri,
        maxPoolSize=config.max_pool_size,
        minPoolSize=config.min_pool_size,
        retryWrites=True,
        w="majority",
    )
    try:
        client.admin.command("ping")
    except PyMongoError as exc:
        client.close()
        logger.error("MongoDB connection failed: %s", exc)
        raise StorageUnavailable("Database non raggiungibile") from exc

    _client = client
    _db = client[config.database]
    logger.info("MongoDB connection established (database=%s)", config.database)
    return _db


def get_database() -> Database:
    if _db is None:
        raise StorageUnavailable("Database non connesso")
    return _db


def get_collection(name: str = DEFAULT_STORAGE_CONFIG.collection) -> Collection:
    return get_database()[name]


def is_database_connected() -> bool:
    return _db is not None


def disconnect_database() -> None:
    global _client, _db
    if _client is not None:
        _client.close()
        logger.info("MongoDB connection closed")
    _client = None
    _db = None
