from fastapi import APIRouter, Depends, HTTPException, Request
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from auth import create_access_token, get_current_admin, hash_password, require_super_admin, verify_password
from crud import count_by, days_ago, ok, parse_object_id, serialize, serialize_all, utcnow
from database import create_document, get_collection
from schemas import Admin, AdminCreate, AdminStatusUpdate, LoginRequest, PageView, PasswordChange

router = APIRouter(prefix="/api/admin", tags=["admin"])


def admins():
    return get_collection("admin")


@router.post("/login")
def login(data: LoginRequest):
    admin = admins().find_one({"$or": [{"username": data.username}, {"email": data.username.lower()}]})
    if not admin or not admin.get("is_active", False):
        raise HTTPException(status_code=401, detail="Invalid credentials or inactive account")
    if not verify_password(data.password, admin.get("password_hash", "")):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    now = utcnow()
    admins().update_one({"_id": admin["_id"]}, {"$set": {"last_login": now}})
    admin["last_login"] = now
    token = create_access_token(str(admin["_id"]))
    return ok({"admin": serialize(admin), "token": token}, "Login successful")


@router.get("/profile")
def profile(admin: dict = Depends(get_current_admin)):
    return ok(serialize(admin))


@router.post("/create", status_code=201)
def create_admin(data: AdminCreate, _: dict = Depends(require_super_admin)):
    doc = Admin(
        username=data.username,
        email=data.email.lower(),
        password_hash=hash_password(data.password),
        role=data.role,
    )
    try:
        admin_id = create_document("admin", doc)
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail="Username or email already exists")
    return ok(serialize(admins().find_one({"_id": parse_object_id(admin_id)})), "Admin created successfully")


@router.get("/list")
def list_admins(_: dict = Depends(require_super_admin)):
    return ok(serialize_all(admins().find({}).sort("created_at", DESCENDING)))


@router.put("/change-password")
def change_password(data: PasswordChange, admin: dict = Depends(get_current_admin)):
    if not verify_password(data.current_password, admin.get("password_hash", "")):
        raise HTTPException(status_code=400, detail="Current password is incorrect")
    admins().update_one(
        {"_id": admin["_id"]},
        {"$set": {"password_hash": hash_password(data.new_password), "updated_at": utcnow()}},
    )
    return ok(message="Password changed successfully")


@router.post("/logout")
def logout(_: dict = Depends(get_current_admin)):
    # tokens are stateless; the client drops its copy
    return ok(message="Logout successful")


@router.put("/{admin_id}/status")
def update_admin_status(admin_id: str, data: AdminStatusUpdate, _: dict = Depends(require_super_admin)):
    admin = admins().find_one_and_update(
        {"_id": parse_object_id(admin_id)},
        {"$set": {"is_active": data.is_active, "updated_at": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    if not admin:
        raise HTTPException(status_code=404, detail="Admin not found")
    return ok(serialize(admin), "Admin status updated successfully")


# ==============
# View tracking
# ==============

@router.post("/track-view")
def track_view(data: PageView, request: Request):
    view = data.model_dump()
    view["user_agent"] = view["user_agent"] or request.headers.get("user-agent")
    view["client_ip"] = request.client.host if request.client else None
    create_document("pageview", view)
    return ok(message="View tracked successfully")


@router.get("/view-stats")
def view_stats(_: dict = Depends(get_current_admin)):
    views = get_collection("pageview")
    today = utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
    top_pages = [{"page": p["_id"], "views": p["count"]} for p in count_by(views, "page")[:10]]
    recent = views.find({}, {"page": 1, "referrer": 1, "created_at": 1}).sort("created_at", DESCENDING).limit(10)
    return ok({
        "totalViews": views.count_documents({}),
        "uniqueViews": len(views.distinct("client_ip")),
        "viewsToday": views.count_documents({"created_at": {"$gte": today}}),
        "viewsThisWeek": views.count_documents({"created_at": {"$gte": days_ago(7)}}),
        "viewsThisMonth": views.count_documents({"created_at": {"$gte": days_ago(30)}}),
        "topPages": top_pages,
        "recentViews": serialize_all(recent),
    })
