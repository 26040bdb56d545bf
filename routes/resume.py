import os
from typing import Any, Dict, Optional
from urllib.parse import quote

from bson import Binary
from fastapi import APIRouter, Body, Depends, File, Form, HTTPException, Response, UploadFile
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from auth import get_current_admin
from config import MAX_RESUME_SIZE, logger
from crud import audit_fields, get_or_404, merge_update, ok, parse_object_id, serialize, serialize_all, toggle_flag
from database import create_document, get_collection
from schemas import Resume

router = APIRouter(prefix="/api/resume", tags=["resume"])
admin_router = APIRouter(prefix="/api/admin/resumes", tags=["admin: resumes"])

RESUME_TYPES = {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}
WITHOUT_FILE = {"file_data": 0}
PUBLISHED = {"is_active": True, "is_public": True}
DUPLICATE_VERSION = "A resume with this version already exists"


def resumes():
    return get_collection("resume")


def ascii_filename(name: str) -> str:
    return "".join(ch for ch in name if " " <= ch <= "~" and ch not in '"\\')


def content_disposition(filename: str) -> str:
    """Attachment header with an ASCII fallback name and the UTF-8 original (RFC 6266)."""
    stem, ext = os.path.splitext(filename)
    fallback = (ascii_filename(stem).strip() or "resume") + ascii_filename(ext)
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


# ======
# Public
# ======

@router.get("/active")
def active_resume():
    doc = resumes().find_one(PUBLISHED, WITHOUT_FILE, sort=[("created_at", DESCENDING)])
    if not doc:
        raise HTTPException(status_code=404, detail="No active resume found")
    return ok(serialize(doc, public=True))


@router.get("/public")
def public_resumes():
    data = serialize_all(resumes().find(PUBLISHED, WITHOUT_FILE).sort("created_at", DESCENDING), public=True)
    return ok(data, count=len(data))


@router.get("/download/{resume_id}")
def download_resume(resume_id: str):
    doc = resumes().find_one_and_update(
        {"_id": parse_object_id(resume_id), **PUBLISHED},
        {"$inc": {"download_count": 1}},
        return_document=ReturnDocument.AFTER,
    )
    if not doc:
        raise HTTPException(status_code=404, detail="Resume not found or not available for download")
    content = bytes(doc["file_data"])
    filename = doc.get("original_name") or "resume"
    return Response(
        content=content,
        media_type=doc.get("content_type") or "application/octet-stream",
        headers={
            "Content-Disposition": content_disposition(filename),
            "Content-Length": str(len(content)),
        },
    )


# =====
# Admin
# =====

@admin_router.get("")
def list_resumes(_: dict = Depends(get_current_admin)):
    data = serialize_all(resumes().find({}, WITHOUT_FILE).sort("created_at", DESCENDING))
    return ok(data, count=len(data))


@admin_router.post("", status_code=201)
async def upload_resume(
    file: UploadFile = File(...),
    title: str = Form(...),
    version: str = Form("1.0"),
    description: Optional[str] = Form(None),
    tags: str = Form(""),
    is_active: bool = Form(True, alias="isActive"),
    is_public: bool = Form(True, alias="isPublic"),
    admin: dict = Depends(get_current_admin),
):
    if file.content_type not in RESUME_TYPES:
        raise HTTPException(status_code=400, detail="Only PDF, DOC and DOCX files are allowed")
    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="No file uploaded")
    if len(content) > MAX_RESUME_SIZE:
        raise HTTPException(status_code=400, detail="File too large. Maximum size is 10MB")

    meta = Resume(
        title=title,
        version=version,
        description=description,
        tags=[t.strip() for t in tags.split(",") if t.strip()],
        is_active=is_active,
        is_public=is_public,
    )
    doc = meta.model_dump()
    doc.update({
        "original_name": file.filename,
        "content_type": file.content_type,
        "file_size": len(content),
        "file_data": Binary(content),
        "download_count": 0,
        "created_by": admin["_id"],
    })
    try:
        resume_id = create_document("resume", doc)
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail=DUPLICATE_VERSION)
    logger.info("Resume %s uploaded (%s, %d bytes)", resume_id, file.filename, len(content))
    saved = resumes().find_one({"_id": parse_object_id(resume_id)}, WITHOUT_FILE)
    return ok(serialize(saved), "Resume uploaded successfully")


@admin_router.get("/{resume_id}")
def get_resume(resume_id: str, _: dict = Depends(get_current_admin)):
    return ok(serialize(get_or_404(resumes(), parse_object_id(resume_id), "Resume", projection=WITHOUT_FILE)))


@admin_router.put("/{resume_id}")
def update_resume(resume_id: str, changes: Dict[str, Any] = Body(...), admin: dict = Depends(get_current_admin)):
    oid = parse_object_id(resume_id)
    existing = get_or_404(resumes(), oid, "Resume", projection=WITHOUT_FILE)
    updated = merge_update(Resume, existing, changes)
    try:
        doc = resumes().find_one_and_update(
            {"_id": oid},
            {"$set": {**updated.model_dump(), **audit_fields(admin["_id"])}},
            projection=WITHOUT_FILE,
            return_document=ReturnDocument.AFTER,
        )
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail=DUPLICATE_VERSION)
    return ok(serialize(doc), "Resume updated successfully")


@admin_router.patch("/{resume_id}/toggle-active")
def toggle_resume_active(resume_id: str, admin: dict = Depends(get_current_admin)):
    doc = toggle_flag(resumes(), parse_object_id(resume_id), "is_active", "Resume", admin["_id"])
    state = "activated" if doc["is_active"] else "deactivated"
    return ok(serialize(doc), f"Resume {state} successfully")


@admin_router.patch("/{resume_id}/toggle-public")
def toggle_resume_public(resume_id: str, admin: dict = Depends(get_current_admin)):
    doc = toggle_flag(resumes(), parse_object_id(resume_id), "is_public", "Resume", admin["_id"])
    state = "public" if doc["is_public"] else "private"
    return ok(serialize(doc), f"Resume is now {state}")


@admin_router.delete("/{resume_id}")
def delete_resume(resume_id: str, _: dict = Depends(get_current_admin)):
    res = resumes().delete_one({"_id": parse_object_id(resume_id)})
    if res.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Resume not found")
    return ok(message="Resume deleted successfully")
