from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from pymongo import DESCENDING, ReturnDocument

from auth import get_current_admin
from crud import (ascending, audit_fields, bulk_action, count_by, days_ago, duplicate_order_guard, get_or_404,
                  merge_update, next_display_order, ok, paginate, parse_object_id, reorder, search_filter,
                  serialize, serialize_all, toggle_flag)
from database import create_document, get_collection
from schemas import HIGHLIGHT_CATEGORIES, BulkRequest, Highlight, ReorderRequest

router = APIRouter(prefix="/api/highlights", tags=["highlights"])
admin_router = APIRouter(prefix="/api/admin/highlights", tags=["admin: highlights"])

SORT = ascending("display_order")
SEARCH_FIELDS = ("title", "description", "short_description", "tools", "tags")
DUPLICATE_ORDER = "A highlight with this display order already exists"
BULK_ACTIONS = {
    "activate": {"is_active": True},
    "deactivate": {"is_active": False},
    "feature": {"featured": True},
    "unfeature": {"featured": False},
    "delete": None,
}


def highlights():
    return get_collection("highlight")


def highlight_filter(category: Optional[str] = None, featured: Optional[bool] = None,
                     is_active: Optional[bool] = None) -> dict:
    query = {}
    if category:
        query["category"] = category
    if featured is not None:
        query["featured"] = featured
    if is_active is not None:
        query["is_active"] = is_active
    return query


# ======
# Public
# ======

@router.get("")
def list_highlights(
    category: Optional[str] = None,
    featured: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
):
    items, pagination = paginate(highlights(), highlight_filter(category, featured, True), SORT, page, limit)
    return ok(serialize_all(items, public=True), pagination=pagination)


@router.get("/grouped")
def grouped_highlights():
    grouped: Dict[str, list] = {}
    for doc in highlights().find({"is_active": True}).sort(ascending("category", "display_order")):
        grouped.setdefault(doc["category"], []).append(serialize(doc, public=True))
    return ok(grouped)


@router.get("/featured/list")
def featured_highlights(limit: int = Query(6, ge=1, le=50)):
    cursor = highlights().find({"is_active": True, "featured": True}).sort(SORT).limit(limit)
    data = serialize_all(cursor, public=True)
    return ok(data, count=len(data))


@router.get("/stats/overview")
def public_highlight_stats():
    active = {"is_active": True}
    # category names contain hyphens, so the keys are built here rather than camelized
    category_stats = {row["_id"]: row["count"] for row in count_by(highlights(), "category", active)}
    return ok({
        "totalHighlights": highlights().count_documents(active),
        "featuredHighlights": highlights().count_documents({**active, "featured": True}),
        "categoryStats": category_stats,
    })


@router.get("/meta/categories")
def highlight_categories():
    return ok({"categories": sorted(highlights().distinct("category", {"is_active": True})),
               "allCategories": HIGHLIGHT_CATEGORIES})


@router.get("/category/{category}")
def highlights_by_category(category: str):
    if category not in HIGHLIGHT_CATEGORIES:
        raise HTTPException(status_code=400, detail=f"Invalid category. Must be one of: {', '.join(HIGHLIGHT_CATEGORIES)}")
    data = serialize_all(highlights().find({"category": category, "is_active": True}).sort(SORT), public=True)
    return ok(data, count=len(data))


@router.get("/{highlight_id}")
def get_highlight(highlight_id: str):
    doc = get_or_404(highlights(), parse_object_id(highlight_id), "Highlight", {"is_active": True})
    return ok(serialize(doc, public=True))


# =====
# Admin
# =====

@admin_router.get("")
def admin_list_highlights(
    category: Optional[str] = None,
    featured: Optional[bool] = None,
    is_active: Optional[bool] = Query(None, alias="isActive"),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    _: dict = Depends(get_current_admin),
):
    query = highlight_filter(category, featured, is_active)
    if search:
        query.update(search_filter(search, SEARCH_FIELDS))
    items, pagination = paginate(highlights(), query, SORT, page, limit)
    return ok(serialize_all(items), pagination=pagination)


@admin_router.post("", status_code=201)
def create_highlight(highlight: Highlight, admin: dict = Depends(get_current_admin)):
    doc = highlight.model_dump()
    if doc["display_order"] is None:
        doc["display_order"] = next_display_order(highlights())
    doc["created_by"] = admin["_id"]
    with duplicate_order_guard(DUPLICATE_ORDER):
        highlight_id = create_document("highlight", doc)
    return ok(serialize(highlights().find_one({"_id": parse_object_id(highlight_id)})), "Highlight created successfully")


@admin_router.get("/stats")
def highlight_stats(_: dict = Depends(get_current_admin)):
    recent = highlights().find({}, {"title": 1, "category": 1, "created_at": 1}).sort("created_at", DESCENDING).limit(5)
    return ok({
        "totalHighlights": highlights().count_documents({}),
        "activeHighlights": highlights().count_documents({"is_active": True}),
        "featuredHighlights": highlights().count_documents({"featured": True}),
        "recentHighlights": highlights().count_documents({"created_at": {"$gte": days_ago(7)}}),
        "categoryStats": count_by(highlights(), "category"),
        "latestHighlights": serialize_all(recent),
    })


@admin_router.post("/bulk")
def bulk_highlights(data: BulkRequest, admin: dict = Depends(get_current_admin)):
    result = bulk_action(highlights(), data.ids, data.action, BULK_ACTIONS, admin["_id"])
    return ok(result, f"Bulk {data.action} completed successfully")


@admin_router.post("/reorder")
def reorder_highlights(data: ReorderRequest, admin: dict = Depends(get_current_admin)):
    with duplicate_order_guard(DUPLICATE_ORDER):
        reorder(highlights(), data.ids, admin["_id"])
    return ok(serialize_all(highlights().find({}).sort(SORT)), "Highlights reordered successfully")


@admin_router.get("/{highlight_id}")
def admin_get_highlight(highlight_id: str, _: dict = Depends(get_current_admin)):
    return ok(serialize(get_or_404(highlights(), parse_object_id(highlight_id), "Highlight")))


@admin_router.put("/{highlight_id}")
def update_highlight(highlight_id: str, changes: Dict[str, Any] = Body(...), admin: dict = Depends(get_current_admin)):
    oid = parse_object_id(highlight_id)
    existing = get_or_404(highlights(), oid, "Highlight")
    updated = merge_update(Highlight, existing, changes).model_dump()
    if updated["display_order"] is None:
        updated["display_order"] = next_display_order(highlights())
    with duplicate_order_guard(DUPLICATE_ORDER):
        doc = highlights().find_one_and_update(
            {"_id": oid},
            {"$set": {**updated, **audit_fields(admin["_id"])}},
            return_document=ReturnDocument.AFTER,
        )
    return ok(serialize(doc), "Highlight updated successfully")


@admin_router.patch("/{highlight_id}/toggle-featured")
def toggle_highlight_featured(highlight_id: str, admin: dict = Depends(get_current_admin)):
    doc = toggle_flag(highlights(), parse_object_id(highlight_id), "featured", "Highlight", admin["_id"])
    state = "featured" if doc["featured"] else "unfeatured"
    return ok(serialize(doc), f"Highlight {state} successfully")


@admin_router.patch("/{highlight_id}/toggle-active")
def toggle_highlight_active(highlight_id: str, admin: dict = Depends(get_current_admin)):
    doc = toggle_flag(highlights(), parse_object_id(highlight_id), "is_active", "Highlight", admin["_id"])
    state = "activated" if doc["is_active"] else "deactivated"
    return ok(serialize(doc), f"Highlight {state} successfully")


@admin_router.delete("/{highlight_id}")
def delete_highlight(highlight_id: str, _: dict = Depends(get_current_admin)):
    res = highlights().delete_one({"_id": parse_object_id(highlight_id)})
    if res.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Highlight not found")
    return ok(message="Highlight deleted successfully")
