from typing import Optional

from fastapi import HTTPException

from config import is_production, logger


class APIError(HTTPException):
    """HTTPException that also carries a reason code and, outside production, the underlying error text."""

    def __init__(self, status_code: int, message: str, reason: Optional[str] = None, error: Optional[str] = None):
        super().__init__(status_code=status_code, detail=message)
        self.reason = reason
        self.error = error


def server_error(message: str, exc: Exception) -> APIError:
    logger.error("%s: %s", message, exc, exc_info=exc)
    return APIError(500, message, error=None if is_production() else str(exc))


def envelope_for(exc: HTTPException) -> dict:
    content = {"success": False, "message": exc.detail}
    reason = getattr(exc, "reason", None)
    if reason:
        content["reason"] = reason
    error = getattr(exc, "error", None)
    if error:
        content["error"] = error
    return content
