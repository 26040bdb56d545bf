"""
MongoDB access

`db` is the pymongo database handle, or None when DATABASE_URL / DATABASE_NAME
are not configured. Look it up through get_collection() at call time so the
handle can be swapped (tests do this).
"""

import os
from datetime import datetime, timezone
from typing import Union

from dotenv import load_dotenv
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, MongoClient

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

_client = None
db = None

if DATABASE_URL and DATABASE_NAME:
    _client = MongoClient(DATABASE_URL, tz_aware=True)
    db = _client[DATABASE_NAME]


class DatabaseUnavailable(RuntimeError):
    pass


def get_collection(name: str):
    if db is None:
        raise DatabaseUnavailable("Database not available. Check DATABASE_URL and DATABASE_NAME environment variables.")
    return db[name]


def create_document(collection_name: str, data: Union[BaseModel, dict]) -> str:
    """Insert a document stamped with created_at / updated_at and return its id."""
    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = data.copy()

    now = datetime.now(timezone.utc)
    data_dict.setdefault("created_at", now)
    data_dict["updated_at"] = now

    result = get_collection(collection_name).insert_one(data_dict)
    return str(result.inserted_id)


# (collection, keys, options)
INDEXES = [
    ("admin", [("username", ASCENDING)], {"unique": True}),
    ("admin", [("email", ASCENDING)], {"unique": True}),
    ("project", [("category", ASCENDING), ("featured", ASCENDING)], {}),
    ("project", [("created_at", DESCENDING)], {}),
    ("project", [("featured", ASCENDING), ("priority", DESCENDING)], {}),
    ("skill", [("category", ASCENDING), ("display_order", ASCENDING)], {"unique": True}),
    ("skill", [("is_active", ASCENDING)], {}),
    ("journey", [("display_order", ASCENDING)], {"unique": True}),
    ("journey", [("year", DESCENDING)], {}),
    ("highlight", [("display_order", ASCENDING)], {"unique": True}),
    ("highlight", [("is_active", ASCENDING), ("featured", ASCENDING)], {}),
    ("resume", [("version", ASCENDING)], {"unique": True}),
    ("resume", [("is_active", ASCENDING), ("is_public", ASCENDING)], {}),
    ("contact", [("status", ASCENDING)], {}),
    ("contact", [("created_at", DESCENDING)], {}),
]


def ensure_indexes():
    for collection_name, keys, options in INDEXES:
        get_collection(collection_name).create_index(keys, **options)
