from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from pymongo import ReturnDocument

from auth import get_current_admin
from crud import (ascending, audit_fields, bulk_action, count_by, days_ago, duplicate_order_guard, get_or_404,
                  merge_update, next_display_order, ok, paginate, parse_object_id, reorder, search_filter,
                  serialize, serialize_all, toggle_flag)
from database import create_document, get_collection
from schemas import SKILL_CATEGORIES, BulkRequest, ReorderRequest, Skill

router = APIRouter(prefix="/api/skills", tags=["skills"])
admin_router = APIRouter(prefix="/api/admin/skills", tags=["admin: skills"])

SORT = ascending("category", "display_order", "name")
SEARCH_FIELDS = ("name", "description")
DUPLICATE_ORDER = "A skill with this display order already exists in this category"
BULK_ACTIONS = {
    "activate": {"is_active": True},
    "deactivate": {"is_active": False},
    "delete": None,
}


def skills():
    return get_collection("skill")


def check_category(category: str) -> str:
    if category not in SKILL_CATEGORIES:
        raise HTTPException(status_code=400, detail=f"Invalid category. Must be one of: {', '.join(SKILL_CATEGORIES)}")
    return category


def skill_filter(category: Optional[str] = None, proficiency: Optional[str] = None,
                 is_active: Optional[bool] = None) -> dict:
    query = {}
    if category:
        query["category"] = category
    if proficiency:
        query["proficiency"] = proficiency
    if is_active is not None:
        query["is_active"] = is_active
    return query


def category_breakdown(match: Optional[dict] = None) -> list:
    pipeline = []
    if match:
        pipeline.append({"$match": match})
    pipeline += [
        {"$group": {
            "_id": "$category",
            "count": {"$sum": 1},
            "averageProficiency": {"$avg": "$proficiency_level"},
        }},
        {"$sort": {"_id": 1}},
    ]
    return [
        {
            "category": row["_id"],
            "count": row["count"],
            "averageProficiency": round(row["averageProficiency"] or 0),
        }
        for row in skills().aggregate(pipeline)
    ]


# ======
# Public
# ======

@router.get("")
def list_skills(category: Optional[str] = None, proficiency: Optional[str] = None,
                limit: Optional[int] = Query(None, ge=1, le=500)):
    cursor = skills().find(skill_filter(category, proficiency, is_active=True)).sort(SORT)
    if limit:
        cursor = cursor.limit(limit)
    data = serialize_all(cursor, public=True)
    return ok(data, count=len(data))


@router.get("/grouped")
def grouped_skills():
    grouped: Dict[str, list] = {}
    for doc in skills().find({"is_active": True}).sort(SORT):
        grouped.setdefault(doc["category"], []).append(serialize(doc, public=True))
    return ok(grouped)


@router.get("/category/{category}")
def skills_by_category(category: str):
    check_category(category)
    data = serialize_all(skills().find({"category": category, "is_active": True}).sort(SORT), public=True)
    return ok(data, count=len(data))


@router.get("/stats/overview")
def public_skill_stats():
    return ok({
        "totalSkills": skills().count_documents({"is_active": True}),
        "categoryStats": category_breakdown({"is_active": True}),
    })


@router.get("/meta/categories")
def skill_categories():
    return ok({"categories": sorted(skills().distinct("category", {"is_active": True})),
               "allCategories": SKILL_CATEGORIES})


@router.get("/{skill_id}")
def get_skill(skill_id: str):
    doc = get_or_404(skills(), parse_object_id(skill_id), "Skill", {"is_active": True})
    return ok(serialize(doc, public=True))


# =====
# Admin
# =====

@admin_router.get("")
def admin_list_skills(
    category: Optional[str] = None,
    proficiency: Optional[str] = None,
    is_active: Optional[bool] = Query(None, alias="isActive"),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    _: dict = Depends(get_current_admin),
):
    query = skill_filter(category, proficiency, is_active)
    if search:
        query.update(search_filter(search, SEARCH_FIELDS))
    items, pagination = paginate(skills(), query, SORT, page, limit)
    return ok(serialize_all(items), pagination=pagination)


@admin_router.post("", status_code=201)
def create_skill(skill: Skill, admin: dict = Depends(get_current_admin)):
    doc = skill.model_dump()
    if doc["display_order"] is None:
        doc["display_order"] = next_display_order(skills(), {"category": doc["category"]})
    doc["created_by"] = admin["_id"]
    with duplicate_order_guard(DUPLICATE_ORDER):
        skill_id = create_document("skill", doc)
    return ok(serialize(skills().find_one({"_id": parse_object_id(skill_id)})), "Skill created successfully")


@admin_router.get("/stats")
def skill_stats(_: dict = Depends(get_current_admin)):
    return ok({
        "totalSkills": skills().count_documents({}),
        "activeSkills": skills().count_documents({"is_active": True}),
        "recentSkills": skills().count_documents({"created_at": {"$gte": days_ago(30)}}),
        "categoryStats": count_by(skills(), "category"),
        "proficiencyStats": count_by(skills(), "proficiency"),
    })


@admin_router.post("/bulk")
def bulk_skills(data: BulkRequest, admin: dict = Depends(get_current_admin)):
    result = bulk_action(skills(), data.ids, data.action, BULK_ACTIONS, admin["_id"])
    return ok(result, f"Bulk {data.action} completed successfully")


@admin_router.post("/reorder")
def reorder_skills(data: ReorderRequest, admin: dict = Depends(get_current_admin)):
    if not data.category:
        raise HTTPException(status_code=400, detail="Category is required")
    with duplicate_order_guard(DUPLICATE_ORDER):
        reorder(skills(), data.ids, admin["_id"], {"category": data.category})
    ordered = skills().find({"category": data.category}).sort(SORT)
    return ok(serialize_all(ordered), "Skills reordered successfully")


@admin_router.get("/{skill_id}")
def admin_get_skill(skill_id: str, _: dict = Depends(get_current_admin)):
    return ok(serialize(get_or_404(skills(), parse_object_id(skill_id), "Skill")))


@admin_router.put("/{skill_id}")
def update_skill(skill_id: str, changes: Dict[str, Any] = Body(...), admin: dict = Depends(get_current_admin)):
    oid = parse_object_id(skill_id)
    existing = get_or_404(skills(), oid, "Skill")
    updated = merge_update(Skill, existing, changes).model_dump()
    moved = updated["category"] != existing.get("category")
    if updated["display_order"] is None or (moved and updated["display_order"] == existing.get("display_order")):
        # a skill moving category goes to the end of its new category
        updated["display_order"] = next_display_order(skills(), {"category": updated["category"]})
    with duplicate_order_guard(DUPLICATE_ORDER):
        doc = skills().find_one_and_update(
            {"_id": oid},
            {"$set": {**updated, **audit_fields(admin["_id"])}},
            return_document=ReturnDocument.AFTER,
        )
    return ok(serialize(doc), "Skill updated successfully")


@admin_router.patch("/{skill_id}/toggle-active")
def toggle_skill_active(skill_id: str, admin: dict = Depends(get_current_admin)):
    doc = toggle_flag(skills(), parse_object_id(skill_id), "is_active", "Skill", admin["_id"])
    state = "activated" if doc["is_active"] else "deactivated"
    return ok(serialize(doc), f"Skill {state} successfully")


@admin_router.delete("/{skill_id}")
def delete_skill(skill_id: str, _: dict = Depends(get_current_admin)):
    res = skills().delete_one({"_id": parse_object_id(skill_id)})
    if res.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Skill not found")
    return ok(message="Skill deleted successfully")
