"""
MongoDB connection for the tailor shop backend.

The client is created at import time but pymongo connects lazily, so importing
this module never blocks on the server.
"""
import logging
import os
from typing import Any, Dict, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "tailorshop")

client = MongoClient(DATABASE_URL, serverSelectionTimeoutMS=5000, tz_aware=True)
db = client[DATABASE_NAME]

# (collection, field) pairs that must stay unique
UNIQUE_KEYS = [
    ("customer", "customerId"),
    ("customer", "phoneNumber"),
    ("billing", "itemId"),
    ("aari", "orderId"),
]


def ensure_indexes(database: Database) -> None:
    for collection, field in UNIQUE_KEYS:
        database[collection].create_index([(field, ASCENDING)], unique=True)
    database["bill"].create_index([("customerId", ASCENDING), ("date", -1)])
    logger.info("Indexes ensured on %s", database.name)


def close() -> None:
    client.close()
    logger.info("MongoDB connection closed")


def oid(value: Optional[str]) -> Optional[ObjectId]:
    if value is None:
        return None
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def to_str_id(doc: Dict[str, Any]) -> Dict[str, Any]:
    if not doc:
        return doc
    d = {**doc}
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    for k, v in list(d.items()):
        if isinstance(v, ObjectId):
            d[k] = str(v)
    return d
