import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError
from pymongo.errors import DuplicateKeyError, PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

import config
import database
from auth import hash_password
from config import logger
from crud import ok, utcnow
from database import DatabaseUnavailable, create_document, ensure_indexes, get_collection
from errors import envelope_for
from github_client import GitHubClient, TTLCache
from mailer import Mailer
from routes import admin, github, highlights, journey, messages, projects, resume, skills, statistics, upload
from schemas import Admin

SETUP_PAGE = """
<html>
  <head><title>Admin Panel</title></head>
  <body>
    <h1>Admin Panel Setup Required</h1>
    <p>Place the admin panel build in the <code>public</code> directory, with <code>index.html</code> as its entry point.</p>
    <hr>
    <p>API health: <a href="/api/health">/api/health</a></p>
    <p>Admin API endpoints: <code>/api/admin/*</code></p>
  </body>
</html>
"""


def seed_super_admin():
    """Create the first super admin from ADMIN_* settings when no admin exists yet."""
    if not config.ADMIN_PASSWORD:
        return
    admins = get_collection("admin")
    if admins.count_documents({}) > 0:
        return
    create_document("admin", Admin(
        username=config.ADMIN_USERNAME,
        email=config.ADMIN_EMAIL.lower(),
        password_hash=hash_password(config.ADMIN_PASSWORD),
        role="super_admin",
    ))
    logger.info("Seeded super admin %s", config.ADMIN_USERNAME)


@asynccontextmanager
async def lifespan(app: FastAPI):
    os.makedirs(config.UPLOAD_DIR, exist_ok=True)
    try:
        ensure_indexes()
        seed_super_admin()
    except DatabaseUnavailable as exc:
        logger.warning("%s", exc)
    app.state.mailer = Mailer.from_config()
    app.state.github = GitHubClient.from_config()
    app.state.activity_cache = TTLCache(config.GITHUB_CACHE_SECONDS)
    logger.info("Portfolio API ready (%s)", config.APP_ENV)
    yield


# ==================
# FastAPI app config
# ==================
app = FastAPI(title="Portfolio API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ===============
# Error envelopes
# ===============

def _validation_message(errors) -> str:
    parts = []
    for err in errors:
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        parts.append(f"{'.'.join(loc)}: {err['msg']}" if loc else err["msg"])
    return "; ".join(parts) or "Validation failed"


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404 and exc.detail == "Not Found":
        exc = HTTPException(status_code=404, detail="Route not found")
    return JSONResponse(status_code=exc.status_code, content=envelope_for(exc), headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"success": False, "message": _validation_message(exc.errors())})


@app.exception_handler(ValidationError)
async def model_validation_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"success": False, "message": _validation_message(exc.errors())})


@app.exception_handler(DuplicateKeyError)
async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    return JSONResponse(status_code=400, content={"success": False, "message": "Duplicate value for a unique field"})


@app.exception_handler(DatabaseUnavailable)
async def database_unavailable_handler(request: Request, exc: DatabaseUnavailable):
    return JSONResponse(status_code=500, content={"success": False, "message": "Database not available"})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    content = {"success": False, "message": "Something went wrong!"}
    if not config.is_production():
        content["error"] = str(exc)
    return JSONResponse(status_code=500, content=content)


# ======
# Routes
# ======
@app.get("/")
def root():
    return {"status": "ok", "service": "portfolio-api"}


@app.get("/api/health")
def health():
    return ok(message="Server is running", timestamp=utcnow().isoformat(), environment=config.APP_ENV)


@app.get("/test")
def test_database():
    connected = database.db is not None
    collections = []
    if connected:
        try:
            collections = database.db.list_collection_names()
        except PyMongoError as exc:
            logger.warning("Database probe failed: %s", exc)
            connected = False
    return {"backend": "running", "database": "connected" if connected else "not-available", "collections": collections[:10]}


@app.get("/admin", include_in_schema=False)
def admin_panel():
    index = os.path.join(config.PUBLIC_DIR, "index.html")
    if os.path.isfile(index):
        return FileResponse(index)
    return HTMLResponse(SETUP_PAGE)


for module in (projects, skills, journey, highlights, resume, messages):
    app.include_router(module.router)
    app.include_router(module.admin_router)
app.include_router(upload.router)
app.include_router(github.router)
app.include_router(statistics.router)
# last: its /{admin_id}/status pattern must not shadow the resource routers
app.include_router(admin.router)

app.mount("/uploads", StaticFiles(directory=config.UPLOAD_DIR, check_dir=False), name="uploads")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=config.PORT, reload=not config.is_production())
