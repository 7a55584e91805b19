# database.py

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient

import config

logger = logging.getLogger(__name__)

client = AsyncIOMotorClient(config.MONGO_URI, serverSelectionTimeoutMS=config.MONGO_SERVER_SELECTION_TIMEOUT_MS)

db = client[config.MONGO_DB_NAME]

# Collection names
ACCOUNTS = "accounts"
SESSIONS = "sessions"
USERS = "users"
VETERINARIANS = "veterinarians"
APPOINTMENTS = "appointments"
MESSAGES = "messages"


def get_collection(name: str):
    """Returns the Motor collection from the current database handle."""
    return db[name]


def new_id() -> str:
    return str(ObjectId())


def to_store_datetime(value: Optional[datetime]) -> Optional[datetime]:
    """BSON dates carry no zone: store naive UTC."""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def from_store_datetime(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def convert_document(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Copies a raw document, turning ids into strings and store dates into aware datetimes."""
    converted = dict(doc)
    if isinstance(converted.get("_id"), ObjectId):
        converted["_id"] = str(converted["_id"])
    for key, value in converted.items():
        if isinstance(value, datetime):
            converted[key] = from_store_datetime(value)
    return converted


async def ensure_indexes():
    await get_collection(ACCOUNTS).create_index("email", unique=True)
    await get_collection(SESSIONS).create_index("token", unique=True)
    await get_collection(VETERINARIANS).create_index("userId")
    await get_collection(APPOINTMENTS).create_index([("userId", 1), ("dateTime", -1)])
    await get_collection(APPOINTMENTS).create_index([("vetId", 1), ("dateTime", -1)])
    await get_collection(MESSAGES).create_index([("timestamp", -1)])
    logger.info("Database indexes ensured.")
