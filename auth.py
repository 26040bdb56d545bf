import json
from datetime import datetime, timedelta, timezone
from typing import Optional

from bson import ObjectId
from fastapi import Depends, HTTPException, Request
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from config import ACCESS_TOKEN_EXPIRE_MINUTES, JWT_ALGORITHM, JWT_SECRET, logger
from database import get_collection
from errors import APIError

# Use pbkdf2_sha256 to avoid external bcrypt dependency issues
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(admin_id: str, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    return jwt.encode({"sub": str(admin_id), "exp": expire}, JWT_SECRET, algorithm=JWT_ALGORITHM)


async def extract_token(request: Request) -> Optional[str]:
    """Authorization header (Bearer, bearer or bare), then ?token=, then a JSON body "token"."""
    authorization = request.headers.get("authorization")
    if authorization:
        if authorization.startswith("Bearer ") or authorization.startswith("bearer "):
            return authorization[7:].strip()
        return authorization.strip()

    token = request.query_params.get("token")
    if token:
        return token

    if request.headers.get("content-type", "").startswith("application/json"):
        body = await request.body()
        if body:
            try:
                payload = json.loads(body)
            except ValueError:
                return None
            if isinstance(payload, dict) and isinstance(payload.get("token"), str):
                return payload["token"]
    return None


async def get_current_admin(request: Request) -> dict:
    token = await extract_token(request)
    if token is None:
        raise APIError(401, "Access denied. No token provided.", reason="no_token")
    if token in ("", "null", "undefined"):
        raise APIError(401, "Access denied. Invalid token format.", reason="invalid_token_format")

    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise APIError(401, "Access denied. Token expired.", reason="token_expired")
    except JWTError as exc:
        logger.info("Token verification failed: %s", exc)
        raise APIError(401, "Access denied. Invalid token.", reason="invalid_token")

    admin_id = payload.get("sub")
    admin = None
    if admin_id and ObjectId.is_valid(admin_id):
        admin = get_collection("admin").find_one({"_id": ObjectId(admin_id)})
    if not admin or not admin.get("is_active", False):
        raise APIError(401, "Access denied. Invalid token or inactive admin.", reason="admin_inactive")

    request.state.admin = admin
    return admin


def require_super_admin(admin: dict = Depends(get_current_admin)) -> dict:
    if admin.get("role") != "super_admin":
        raise HTTPException(status_code=403, detail="Access denied. Super admin privileges required.")
    return admin
