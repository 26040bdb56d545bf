"""
Admin session client for the Portfolio API.

One AdminSession per base URL. It keeps the bearer token on the instance,
attaches it to every call and forgets it as soon as the server answers 401.

    session = AdminSession("http://localhost:4000")
    session.login("admin", "secret")
    stats = session.statistics()
"""

from typing import Any, BinaryIO, Dict, Iterable, Optional, Tuple

import requests

import config


class APIClientError(Exception):
    def __init__(self, status_code: int, message: str, payload: Optional[dict] = None):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.payload = payload or {}


class SessionExpired(APIClientError):
    """The server rejected the stored token; the session has been cleared."""


class AdminSession:
    def __init__(self, base_url: str, http=None, timeout: Optional[float] = None):
        self.base_url = base_url.rstrip("/")
        self.http = http or requests.Session()
        self.timeout = timeout if timeout is not None else (None if http else config.HTTP_TIMEOUT)
        self.token: Optional[str] = None
        self.admin: Optional[dict] = None

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None

    def clear(self) -> None:
        self.token = None
        self.admin = None

    def request(self, method: str, path: str, **kwargs) -> dict:
        headers = dict(kwargs.pop("headers", None) or {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout

        resp = self.http.request(method, f"{self.base_url}{path}", headers=headers, **kwargs)
        try:
            payload = resp.json()
        except ValueError:
            payload = {"success": False, "message": resp.text}

        if resp.status_code == 401:
            self.clear()
            raise SessionExpired(401, payload.get("message", "Unauthorized"), payload)
        if resp.status_code >= 400 or not payload.get("success", False):
            raise APIClientError(resp.status_code, payload.get("message", "Request failed"), payload)
        return payload

    # Session

    def login(self, username: str, password: str) -> dict:
        payload = self.request("POST", "/api/admin/login", json={"username": username, "password": password})
        self.token = payload["data"]["token"]
        self.admin = payload["data"]["admin"]
        return self.admin

    def logout(self) -> None:
        try:
            if self.token:
                self.request("POST", "/api/admin/logout")
        finally:
            self.clear()

    def profile(self) -> dict:
        return self.request("GET", "/api/admin/profile")["data"]

    # Projects

    def projects(self, **params) -> Tuple[list, dict]:
        payload = self.request("GET", "/api/admin/projects", params=params)
        return payload["data"], payload["pagination"]

    def create_project(self, project: Dict[str, Any]) -> dict:
        return self.request("POST", "/api/admin/projects", json=project)["data"]

    def update_project(self, project_id: str, changes: Dict[str, Any]) -> dict:
        return self.request("PUT", f"/api/admin/projects/{project_id}", json=changes)["data"]

    def delete_project(self, project_id: str) -> None:
        self.request("DELETE", f"/api/admin/projects/{project_id}")

    # Dashboard

    def statistics(self) -> dict:
        return self.request("GET", "/api/admin/statistics")["data"]

    # Messages

    def messages(self, **params) -> Tuple[list, dict]:
        payload = self.request("GET", "/api/admin/messages", params=params)
        return payload["data"], payload["pagination"]

    def message(self, message_id: str) -> dict:
        return self.request("GET", f"/api/admin/messages/{message_id}")["data"]

    def reply(self, message_id: str, reply_message: str, reply_subject: Optional[str] = None) -> dict:
        body = {"replyMessage": reply_message}
        if reply_subject:
            body["replySubject"] = reply_subject
        return self.request("POST", f"/api/admin/messages/{message_id}/reply", json=body)["data"]

    def bulk_messages(self, action: str, message_ids: Iterable[str]) -> dict:
        body = {"action": action, "messageIds": list(message_ids)}
        return self.request("POST", "/api/admin/messages/bulk", json=body)["data"]

    # Uploads

    def upload_image(self, filename: str, fh: BinaryIO, content_type: str) -> dict:
        files = {"image": (filename, fh, content_type)}
        return self.request("POST", "/api/upload/image", files=files)["data"]

    def delete_image(self, filename: str) -> None:
        self.request("DELETE", f"/api/upload/image/{filename}")
