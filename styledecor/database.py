# styledecor/database.py
import logging
from typing import Any, Dict, Optional

import certifi
from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from styledecor.core.config import Settings

logger = logging.getLogger(__name__)


def create_client(settings: Settings) -> AsyncIOMotorClient:
    if settings.MONGO_TLS:
        return AsyncIOMotorClient(settings.MONGO_URL, tlsCAFile=certifi.where())
    return AsyncIOMotorClient(settings.MONGO_URL)


def get_database(client, settings: Settings) -> AsyncIOMotorDatabase:
    return client[settings.MONGO_DB_NAME]


async def ensure_indexes(db) -> None:
    """Create the indexes the stores rely on for uniqueness."""
    await db.users.create_index("email", unique=True)
    # transactionId is absent on unpaid bookings, so the index is sparse
    await db.bookings.create_index("transactionId", unique=True, sparse=True)
    await db.bookings.create_index([("customer.email", ASCENDING), ("createdAt", DESCENDING)])
    await db.bookings.create_index("assignedDecorator.email")
    await db.decorators.create_index("userId", unique=True)
    logger.info("✅ MongoDB indexes ensured.")


def to_object_id(value: str) -> Optional[ObjectId]:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def serialize_doc(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if doc is None:
        return None
    doc = dict(doc)
    if "_id" in doc:
        doc["_id"] = str(doc["_id"])
    return doc
