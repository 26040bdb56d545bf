from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from pymongo import DESCENDING, ReturnDocument

from auth import get_current_admin
from crud import (as_utc, audit_fields, bulk_action, count_by, days_ago, get_or_404, merge_update, ok,
                  paginate, parse_object_id, search_filter, serialize, toggle_flag, utcnow)
from database import create_document, get_collection
from schemas import PROJECT_CATEGORIES, BulkRequest, Project

router = APIRouter(prefix="/api/projects", tags=["projects"])
admin_router = APIRouter(prefix="/api/admin/projects", tags=["admin: projects"])

SEARCH_FIELDS = ("title", "description", "short_description", "technologies")
BULK_ACTIONS = {
    "feature": {"featured": True},
    "unfeature": {"featured": False},
    "delete": None,
}


def projects():
    return get_collection("project")


def project_out(doc: dict, public: bool = False) -> dict:
    out = serialize(doc, public=public)
    completed = doc.get("completion_date")
    # whole days since completion
    out["age"] = (utcnow() - as_utc(completed)).days if completed else None
    return out


def project_filter(category: Optional[str], featured: Optional[bool]) -> dict:
    query = {}
    if category:
        query["category"] = category
    if featured is not None:
        query["featured"] = featured
    return query


# ======
# Public
# ======

@router.get("")
def list_projects(
    category: Optional[str] = None,
    featured: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    items, pagination = paginate(
        projects(), project_filter(category, featured),
        [("completion_date", DESCENDING), ("_id", DESCENDING)], page, limit,
    )
    return ok([project_out(p, public=True) for p in items], pagination=pagination)


@router.get("/featured/list")
def featured_projects(limit: int = Query(6, ge=1, le=50)):
    items = projects().find({"featured": True}).sort([("priority", DESCENDING), ("completion_date", DESCENDING)]).limit(limit)
    data = [project_out(p, public=True) for p in items]
    return ok(data, count=len(data))


@router.get("/meta/categories")
def project_categories():
    return ok({"categories": sorted(projects().distinct("category")), "allCategories": PROJECT_CATEGORIES})


@router.get("/{project_id}")
def get_project(project_id: str):
    return ok(project_out(get_or_404(projects(), parse_object_id(project_id), "Project"), public=True))


# =====
# Admin
# =====

@admin_router.get("")
def admin_list_projects(
    category: Optional[str] = None,
    featured: Optional[bool] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    _: dict = Depends(get_current_admin),
):
    query = project_filter(category, featured)
    if search:
        query.update(search_filter(search, SEARCH_FIELDS))
    items, pagination = paginate(projects(), query, [("created_at", DESCENDING), ("_id", DESCENDING)], page, limit)
    return ok([project_out(p) for p in items], pagination=pagination)


@admin_router.post("", status_code=201)
def create_project(project: Project, admin: dict = Depends(get_current_admin)):
    doc = project.model_dump()
    doc["created_by"] = admin["_id"]
    project_id = create_document("project", doc)
    return ok(project_out(projects().find_one({"_id": parse_object_id(project_id)})), "Project created successfully")


@admin_router.get("/stats")
def project_stats(_: dict = Depends(get_current_admin)):
    return ok({
        "totalProjects": projects().count_documents({}),
        "featuredProjects": projects().count_documents({"featured": True}),
        "recentProjects": projects().count_documents({"created_at": {"$gte": days_ago(30)}}),
        "categoryCounts": count_by(projects(), "category"),
        "statusCounts": count_by(projects(), "status"),
    })


@admin_router.post("/bulk")
def bulk_projects(data: BulkRequest, admin: dict = Depends(get_current_admin)):
    result = bulk_action(projects(), data.ids, data.action, BULK_ACTIONS, admin["_id"])
    return ok(result, f"Bulk {data.action} completed successfully")


@admin_router.get("/{project_id}")
def admin_get_project(project_id: str, _: dict = Depends(get_current_admin)):
    return ok(project_out(get_or_404(projects(), parse_object_id(project_id), "Project")))


@admin_router.put("/{project_id}")
def update_project(project_id: str, changes: Dict[str, Any] = Body(...), admin: dict = Depends(get_current_admin)):
    oid = parse_object_id(project_id)
    existing = get_or_404(projects(), oid, "Project")
    updated = merge_update(Project, existing, changes)
    doc = projects().find_one_and_update(
        {"_id": oid},
        {"$set": {**updated.model_dump(), **audit_fields(admin["_id"])}},
        return_document=ReturnDocument.AFTER,
    )
    return ok(project_out(doc), "Project updated successfully")


@admin_router.patch("/{project_id}/featured")
def toggle_project_featured(project_id: str, admin: dict = Depends(get_current_admin)):
    doc = toggle_flag(projects(), parse_object_id(project_id), "featured", "Project", admin["_id"])
    state = "featured" if doc["featured"] else "unfeatured"
    return ok(project_out(doc), f"Project {state} successfully")


@admin_router.delete("/{project_id}")
def delete_project(project_id: str, _: dict = Depends(get_current_admin)):
    res = projects().delete_one({"_id": parse_object_id(project_id)})
    if res.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Project not found")
    return ok(message="Project deleted successfully")
