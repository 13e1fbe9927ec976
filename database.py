"""
Database helpers for the Campus Social API

A single MongoClient is created from DATABASE_URL / DATABASE_NAME. When either
is missing the module still imports, `db` stays None and every helper raises
InternalError so the API can report the problem instead of crashing at startup.
"""

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Optional, Union

from bson import ObjectId
from pydantic import BaseModel
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from config import settings
from errors import InternalError
from log import logger

_client = None
db = None

if settings.DATABASE_URL and settings.DATABASE_NAME:
    _client = MongoClient(settings.DATABASE_URL)
    db = _client[settings.DATABASE_NAME]
    logger.info("MongoDB client created for database '{}'", settings.DATABASE_NAME)
else:
    logger.warning("DATABASE_URL or DATABASE_NAME not set - database unavailable")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@contextmanager
def store_call(failure_message: str):
    """Turn driver errors raised inside the block into InternalError(failure_message)."""
    try:
        yield
    except PyMongoError as exc:
        logger.exception("Store call failed: {}", failure_message)
        raise InternalError(failure_message) from exc


def get_collection(collection_name: str) -> Collection:
    if db is None:
        raise InternalError(
            "Database not available. Check DATABASE_URL and DATABASE_NAME environment variables."
        )
    return db[collection_name]


def ensure_indexes() -> None:
    if db is None:
        return
    try:
        db["user"].create_index("email", unique=True)
    except PyMongoError:
        logger.exception("Could not create the unique index on user.email")


def create_document(collection_name: str, data: Union[BaseModel, dict]) -> str:
    """Insert a single document, stamping createdAt/updatedAt. Returns the new id."""
    if isinstance(data, BaseModel):
        data_dict = data.model_dump(by_alias=True)
    else:
        data_dict = data.copy()

    now = utcnow()
    data_dict["createdAt"] = now
    data_dict["updatedAt"] = now

    result = get_collection(collection_name).insert_one(data_dict)
    return str(result.inserted_id)


def get_documents(collection_name: str, filter_dict: Optional[dict] = None, limit: Optional[int] = None) -> list:
    cursor = get_collection(collection_name).find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def to_object_id(value: str) -> Optional[ObjectId]:
    """Parse a hex id string, returning None when it is not a valid ObjectId."""
    if not isinstance(value, str) or not ObjectId.is_valid(value):
        return None
    return ObjectId(value)


def _public_value(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return to_public(value)
    if isinstance(value, list):
        return [_public_value(v) for v in value]
    return value


# Utility to convert Mongo documents to JSON-serializable dicts

def to_public(doc: dict):
    if not doc:
        return doc
    d = {key: _public_value(value) for key, value in doc.items()}
    _id = d.pop("_id", None)
    if _id is not None:
        d["id"] = _id
    if "passwordHash" in d:
        d.pop("passwordHash")
    return d
