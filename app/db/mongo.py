# app/db/mongo.py
import logging
from typing import Any, Dict

import certifi
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, IndexModel
from pymongo.errors import PyMongoError

from app.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

_client: AsyncIOMotorClient | None = None
_db: AsyncIOMotorDatabase | None = None

# Shapes of the repository queries: active catalog scans, id lookups,
# windowed event aggregations and per-subject history.
INDEXES = {
    "products": [
        IndexModel([("product_id", ASCENDING)], unique=True),
        IndexModel([("is_active", ASCENDING), ("category_id", ASCENDING)]),
    ],
    "events": [
        IndexModel([("timestamp", DESCENDING)]),
        IndexModel([("user_id", ASCENDING), ("timestamp", DESCENDING)]),
        IndexModel([("session_id", ASCENDING), ("timestamp", DESCENDING)]),
        IndexModel([("product_id", ASCENDING), ("timestamp", DESCENDING)]),
    ],
    "users": [
        IndexModel([("user_id", ASCENDING)], unique=True),
    ],
}


def get_client() -> AsyncIOMotorClient:
    assert _client is not None, "Mongo client not initialized"
    return _client


def get_db() -> AsyncIOMotorDatabase:
    assert _db is not None, "Mongo DB not initialized"
    return _db


def client_options(settings: Settings) -> Dict[str, Any]:
    opts: Dict[str, Any] = dict(
        uuidRepresentation="standard",
        serverSelectionTimeoutMS=settings.store_timeout_ms * 2,
        connectTimeoutMS=settings.store_timeout_ms * 2,
        tz_aware=True,
    )
    if settings.MONGO_URI.startswith("mongodb+srv://"):
        opts.update(tls=True, tlsCAFile=certifi.where())  # Atlas: containers lack the CA bundle
    return opts


async def connect():
    """
    Create the Motor client. A failed startup ping is not fatal: Motor
    connects lazily, so the client is kept and the first query retries while
    the recommendation sources degrade in the meantime.
    """
    global _client, _db
    settings = get_settings()
    try:
        _client = AsyncIOMotorClient(settings.MONGO_URI, **client_options(settings))
        _db = _client[settings.MONGO_DB]
    except (PyMongoError, ValueError) as e:
        _client = None
        _db = None
        logger.error("Mongo client init failed: %s", e)
        return

    try:
        await _client.admin.command("ping")
        logger.info("Mongo connected (ping ok) db=%s", settings.MONGO_DB)
    except PyMongoError as e:
        logger.warning("Mongo ping at startup failed, will connect on first query: %s", e)


async def ensure_indexes():
    """Create the indexes behind the repository queries; idempotent."""
    if _db is None:
        return
    for name, models in INDEXES.items():
        try:
            created = await _db[name].create_indexes(models)
            logger.debug("Mongo indexes ok collection=%s indexes=%s", name, created)
        except PyMongoError as e:
            logger.warning("Mongo index creation failed collection=%s err=%s", name, e)


async def disconnect():
    global _client, _db
    if _client:
        _client.close()
    _client = None
    _db = None
