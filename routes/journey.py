from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from pymongo import ReturnDocument

from auth import get_current_admin
from crud import (ascending, audit_fields, days_ago, duplicate_order_guard, get_or_404, merge_update,
                  next_display_order, ok, paginate, parse_object_id, reorder, search_filter, serialize,
                  serialize_all, utcnow)
from database import create_document, get_collection
from schemas import Journey, ReorderRequest

router = APIRouter(prefix="/api/journey", tags=["journey"])
admin_router = APIRouter(prefix="/api/admin/journey", tags=["admin: journey"])

SORT = ascending("display_order")
DUPLICATE_ORDER = "A journey entry with this display order already exists"


def journeys():
    return get_collection("journey")


def year_range() -> dict:
    pipeline = [{"$group": {"_id": None, "minYear": {"$min": "$year"}, "maxYear": {"$max": "$year"}}}]
    rows = list(journeys().aggregate(pipeline))
    current = utcnow().year
    if not rows:
        return {"minYear": current, "maxYear": current}
    return {"minYear": rows[0]["minYear"] or current, "maxYear": rows[0]["maxYear"] or current}


# ======
# Public
# ======

@router.get("")
def list_journey():
    data = serialize_all(journeys().find({}).sort(SORT), public=True)
    return ok(data, count=len(data))


@router.get("/stats/overview")
def public_journey_stats():
    return ok({"totalJourneys": journeys().count_documents({}), "yearRange": year_range()})


@router.get("/{journey_id}")
def get_journey(journey_id: str):
    return ok(serialize(get_or_404(journeys(), parse_object_id(journey_id), "Journey entry"), public=True))


# =====
# Admin
# =====

@admin_router.get("")
def admin_list_journey(
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    _: dict = Depends(get_current_admin),
):
    query = search_filter(search, ("title", "description")) if search else {}
    items, pagination = paginate(journeys(), query, SORT, page, limit)
    return ok(serialize_all(items), pagination=pagination)


@admin_router.post("", status_code=201)
def create_journey(journey: Journey, admin: dict = Depends(get_current_admin)):
    doc = journey.model_dump()
    if doc["display_order"] is None:
        doc["display_order"] = next_display_order(journeys())
    doc["created_by"] = admin["_id"]
    with duplicate_order_guard(DUPLICATE_ORDER):
        journey_id = create_document("journey", doc)
    return ok(serialize(journeys().find_one({"_id": parse_object_id(journey_id)})), "Journey entry created successfully")


@admin_router.get("/stats")
def journey_stats(_: dict = Depends(get_current_admin)):
    return ok({
        "totalJourneys": journeys().count_documents({}),
        "recentJourneys": journeys().count_documents({"created_at": {"$gte": days_ago(30)}}),
        "yearRange": year_range(),
    })


@admin_router.post("/reorder")
def reorder_journey(data: ReorderRequest, admin: dict = Depends(get_current_admin)):
    with duplicate_order_guard(DUPLICATE_ORDER):
        reorder(journeys(), data.ids, admin["_id"])
    return ok(serialize_all(journeys().find({}).sort(SORT)), "Journey entries reordered successfully")


@admin_router.get("/{journey_id}")
def admin_get_journey(journey_id: str, _: dict = Depends(get_current_admin)):
    return ok(serialize(get_or_404(journeys(), parse_object_id(journey_id), "Journey entry")))


@admin_router.put("/{journey_id}")
def update_journey(journey_id: str, changes: Dict[str, Any] = Body(...), admin: dict = Depends(get_current_admin)):
    oid = parse_object_id(journey_id)
    existing = get_or_404(journeys(), oid, "Journey entry")
    updated = merge_update(Journey, existing, changes).model_dump()
    if updated["display_order"] is None:
        updated["display_order"] = next_display_order(journeys())
    with duplicate_order_guard(DUPLICATE_ORDER):
        doc = journeys().find_one_and_update(
            {"_id": oid},
            {"$set": {**updated, **audit_fields(admin["_id"])}},
            return_document=ReturnDocument.AFTER,
        )
    return ok(serialize(doc), "Journey entry updated successfully")


@admin_router.delete("/{journey_id}")
def delete_journey(journey_id: str, _: dict = Depends(get_current_admin)):
    res = journeys().delete_one({"_id": parse_object_id(journey_id)})
    if res.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Journey entry not found")
    return ok(message="Journey entry deleted successfully")
