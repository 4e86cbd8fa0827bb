"""
Database helpers

Connection handling for the MongoDB document store plus the small helpers
the services share: document creation with timestamps, id parsing and
conversion of stored documents into JSON-friendly dicts.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import MongoClient
from pymongo.database import Database

from config import settings
from errors import InvalidArgument, Unavailable

logger = logging.getLogger(__name__)

client: Optional[MongoClient] = None
db: Optional[Database] = None


def connect() -> Database:
    """Open the client and ping the deployment. Raises on an unreachable store."""
    global client, db
    client = MongoClient(settings.DATABASE_URL, serverSelectionTimeoutMS=settings.DATABASE_TIMEOUT_MS)
    client.admin.command("ping")
    db = client[settings.DATABASE_NAME]
    logger.info("MongoDB connected: %s/%s", client.address, settings.DATABASE_NAME)
    return db


def close():
    global client, db
    if client is not None:
        client.close()
    client = None
    db = None


def get_db() -> Database:
    if db is None:
        raise Unavailable()
    return db


def now() -> datetime:
    return datetime.now(timezone.utc)


def object_id(value: Any, label: str = "id") -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    if not isinstance(value, str):
        raise InvalidArgument(f"Invalid {label}")
    try:
        return ObjectId(value)
    except InvalidId:
        raise InvalidArgument(f"Invalid {label}")


def create_document(database: Database, collection_name: str, data: Union[BaseModel, dict]) -> str:
    """Insert a document stamped with created_at/updated_at and return its id."""
    if isinstance(data, BaseModel):
        doc = data.model_dump(mode="json")
    else:
        doc = dict(data)
    stamp = now()
    doc.setdefault("created_at", stamp)
    doc.setdefault("updated_at", stamp)
    result = database[collection_name].insert_one(doc)
    return str(result.inserted_id)


def serialize(value: Any) -> Any:
    """Rename ``_id`` to ``id`` and turn ObjectIds into strings, recursively."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        out = {}
        for k, v in value.items():
            out["id" if k == "_id" else k] = serialize(v)
        return out
    if isinstance(value, list):
        return [serialize(v) for v in value]
    return value
