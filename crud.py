"""
Helpers shared by every resource router: the response envelope, id parsing,
pagination, search, display-order bookkeeping, toggles, bulk actions and
reordering.
"""

import math
import re
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Type

from bson import ObjectId
from fastapi import HTTPException
from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from pymongo import ASCENDING, DESCENDING, ReturnDocument, UpdateOne
from pymongo.errors import BulkWriteError, DuplicateKeyError

PRIVATE_FIELDS = ("created_by", "updated_by")
NEVER_SERIALIZED = ("password_hash", "file_data")
DUPLICATE_KEY = 11000


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # pymongo hands back naive UTC unless the client is tz_aware
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def days_ago(days: int) -> datetime:
    return utcnow() - timedelta(days=days)


# =========
# Envelope
# =========

def ok(data=None, message: Optional[str] = None, **extra) -> dict:
    body = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    body.update(extra)
    return body


def _plain(value):
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {to_camel(k): _plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


def serialize(doc: dict, public: bool = False) -> dict:
    """Mongo document -> camelCase JSON-ready dict with a string id."""
    out = {}
    if "_id" in doc:
        out["id"] = str(doc["_id"])
    for key, value in doc.items():
        if key == "_id" or key in NEVER_SERIALIZED:
            continue
        if public and key in PRIVATE_FIELDS:
            continue
        out[to_camel(key)] = _plain(value)
    return out


def serialize_all(docs: Iterable[dict], public: bool = False) -> List[dict]:
    return [serialize(d, public=public) for d in docs]


# ===
# Ids
# ===

def parse_object_id(value: str) -> ObjectId:
    if not ObjectId.is_valid(value):
        raise HTTPException(status_code=400, detail="Invalid id")
    return ObjectId(value)


def parse_object_ids(values: Iterable[str]) -> List[ObjectId]:
    return [parse_object_id(v) for v in values]


def get_or_404(collection, object_id: ObjectId, label: str, query: Optional[dict] = None, projection=None) -> dict:
    doc = collection.find_one({"_id": object_id, **(query or {})}, projection)
    if not doc:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return doc


# ======================
# Listing and pagination
# ======================

def search_filter(term: str, fields: Iterable[str]) -> dict:
    pattern = re.escape(term)
    return {"$or": [{f: {"$regex": pattern, "$options": "i"}} for f in fields]}


def paginate(collection, query: dict, sort: list, page: int, limit: int, projection=None):
    page = max(page, 1)
    limit = max(limit, 1)
    total = collection.count_documents(query)
    cursor = collection.find(query, projection).sort(sort).skip((page - 1) * limit).limit(limit)
    pagination = {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit),
    }
    return list(cursor), pagination


def count_by(collection, field: str, match: Optional[dict] = None) -> List[dict]:
    pipeline = []
    if match:
        pipeline.append({"$match": match})
    pipeline += [
        {"$group": {"_id": f"${field}", "count": {"$sum": 1}}},
        {"$sort": {"count": -1, "_id": 1}},
    ]
    return list(collection.aggregate(pipeline))


# =============
# Display order
# =============

def next_display_order(collection, scope: Optional[dict] = None) -> int:
    """Max existing display_order (within scope) + 1, or 1 for an empty scope.

    Read-then-write without a lock: two concurrent creates can pick the same
    value and the unique index rejects the second.
    """
    last = collection.find_one(scope or {}, {"display_order": 1}, sort=[("display_order", DESCENDING)])
    if last and last.get("display_order") is not None:
        return last["display_order"] + 1
    return 1


@contextmanager
def duplicate_order_guard(message: str):
    try:
        yield
    except DuplicateKeyError as exc:
        raise HTTPException(status_code=400, detail=message) from exc
    except BulkWriteError as exc:
        if any(err.get("code") == DUPLICATE_KEY for err in exc.details.get("writeErrors", [])):
            raise HTTPException(status_code=400, detail=message) from exc
        raise


def reorder(collection, ids: List[str], admin_id: ObjectId, scope: Optional[dict] = None) -> int:
    """Give each id the display_order of its 1-indexed position in ids.

    Targets are first parked above the current maximum so that any
    permutation of them can be written without tripping the unique index.
    Positions 1..N held by documents outside ids are a collision and nothing
    is written; if the final batch still fails the parked orders are restored.
    """
    if not ids:
        return 0
    object_ids = parse_object_ids(ids)
    scope = scope or {}
    blocking = collection.find_one({
        **scope,
        "_id": {"$nin": object_ids},
        "display_order": {"$gte": 1, "$lte": len(object_ids)},
    })
    if blocking:
        raise DuplicateKeyError(
            f"display_order {blocking['display_order']} is held by {blocking['_id']}", DUPLICATE_KEY)

    previous = {
        doc["_id"]: doc.get("display_order")
        for doc in collection.find({"_id": {"$in": object_ids}, **scope}, {"display_order": 1})
    }
    ceiling = next_display_order(collection, scope) + len(object_ids)
    now = utcnow()

    parked = [
        UpdateOne({"_id": oid, **scope}, {"$set": {"display_order": ceiling + position}})
        for position, oid in enumerate(object_ids)
    ]
    final = [
        UpdateOne(
            {"_id": oid, **scope},
            {"$set": {"display_order": position, "updated_by": admin_id, "updated_at": now}},
        )
        for position, oid in enumerate(object_ids, start=1)
    ]
    collection.bulk_write(parked, ordered=True)
    try:
        result = collection.bulk_write(final, ordered=True)
    except BulkWriteError:
        collection.bulk_write(
            [UpdateOne({"_id": oid}, {"$set": {"display_order": order}}) for oid, order in previous.items()],
            ordered=False,
        )
        raise
    return result.matched_count


# =======================
# Updates, toggles, bulks
# =======================

def merge_update(model: Type[BaseModel], existing: dict, changes: dict) -> BaseModel:
    """Apply a partial (or full) change set on top of a stored document and re-validate.

    Keys may use either the camelCase alias or the snake_case field name.
    """
    aliases = {name: field.alias or name for name, field in model.model_fields.items()}
    current = model.model_validate(existing).model_dump(by_alias=True)
    current.update({aliases.get(key, key): value for key, value in changes.items()})
    return model.model_validate(current)


def audit_fields(admin_id: Optional[ObjectId]) -> dict:
    fields = {"updated_at": utcnow()}
    if admin_id is not None:
        fields["updated_by"] = admin_id
    return fields


def toggle_flag(collection, object_id: ObjectId, field: str, label: str, admin_id: ObjectId) -> dict:
    doc = get_or_404(collection, object_id, label)
    return collection.find_one_and_update(
        {"_id": object_id},
        {"$set": {field: not doc.get(field, False), **audit_fields(admin_id)}},
        return_document=ReturnDocument.AFTER,
    )


def bulk_action(collection, ids: List[str], action: str, actions: Dict[str, Optional[dict]], admin_id=None) -> dict:
    """Run one batched write for action over ids.

    actions maps each allowed action to the fields it sets, or to None for a
    hard delete.
    """
    if action not in actions:
        raise HTTPException(status_code=400, detail=f"Invalid action. Must be one of: {', '.join(actions)}")
    query = {"_id": {"$in": parse_object_ids(ids)}}
    changes = actions[action]
    if changes is None:
        deleted = collection.delete_many(query).deleted_count
        return {"action": action, "modifiedCount": deleted, "deletedCount": deleted}
    result = collection.update_many(query, {"$set": {**changes, **audit_fields(admin_id)}})
    return {"action": action, "modifiedCount": result.modified_count}


def ascending(*fields: str) -> list:
    return [(f, ASCENDING) for f in fields]
