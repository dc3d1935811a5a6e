"""
MongoDB access for the shop backend.

Collections are named after the schema classes in ``schemas.py`` (lowercase):
account, product, order, review, about, contact.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

from settings import settings

logger = logging.getLogger(__name__)

client = MongoClient(settings.database_url, serverSelectionTimeoutMS=5000)
db = client[settings.database_name]

UNIQUE_KEYS = {
    "account": ["account_id", "phone"],
    "product": ["product_id"],
    "order": ["order_id"],
    "review": ["review_id"],
}


def get_db() -> Database:
    return db


def ensure_indexes(database: Database) -> None:
    for collection_name, keys in UNIQUE_KEYS.items():
        for key in keys:
            database[collection_name].create_index([(key, ASCENDING)], unique=True)
    database["review"].create_index([("product_id", ASCENDING), ("status", ASCENDING)])
    database["order"].create_index([("account_id", ASCENDING)])


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def create_document(database: Database, collection_name: str, data: Union[BaseModel, dict]) -> Dict[str, Any]:
    """Insert ``data`` with timestamps and return the stored document.

    Raises pymongo's DuplicateKeyError when a unique key already exists; callers
    decide whether that is a conflict or something to retry.
    """
    doc = data.model_dump() if isinstance(data, BaseModel) else dict(data)
    stamp = now_utc()
    doc.setdefault("created_at", stamp)
    doc["updated_at"] = stamp
    database[collection_name].insert_one(doc)
    return doc


def get_documents(
    database: Database,
    collection_name: str,
    filter_dict: Optional[dict] = None,
    sort: Optional[list] = None,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    cursor = database[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    return [clean(doc) for doc in cursor]


def clean(doc: Optional[dict], *hidden: str) -> Optional[dict]:
    """Drop Mongo's ``_id`` (and any ``hidden`` fields) so the doc is JSON friendly."""
    if doc is None:
        return None
    d = dict(doc)
    d.pop("_id", None)
    for field in hidden:
        d.pop(field, None)
    return d
