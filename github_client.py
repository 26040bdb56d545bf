"""
GitHub REST integration: public activity feed and repository list for one
user, plus the small TTL cache the activity endpoint sits behind.
"""

import time
from typing import Callable, List, Optional
from urllib.parse import parse_qs, urlparse

import requests
from fastapi import Request

import config

GITHUB_API_URL = "https://api.github.com"
ACTIVITY_EVENT_TYPES = ("PushEvent", "CreateEvent", "PullRequestEvent")
ACTIVITY_LIMIT = 10


class TTLCache:
    """Single-value cache; `clock` is injectable so expiry can be driven from tests."""

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.clock = clock
        self._value = None
        self._stored_at: Optional[float] = None

    def get(self):
        if self._stored_at is None or self.clock() - self._stored_at >= self.ttl:
            return None
        return self._value

    def set(self, value) -> None:
        self._value = value
        self._stored_at = self.clock()

    def clear(self) -> None:
        self._value = None
        self._stored_at = None


class GitHubClient:
    def __init__(self, username: str, token: Optional[str] = None, session: Optional[requests.Session] = None,
                 timeout: float = 8.0, base_url: str = GITHUB_API_URL):
        self.username = username
        self.timeout = timeout
        self.base_url = base_url
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/vnd.github.v3+json"})
        if token:
            self.session.headers["Authorization"] = f"token {token}"

    @classmethod
    def from_config(cls) -> "GitHubClient":
        return cls(config.GITHUB_USERNAME, token=config.GITHUB_TOKEN, timeout=config.HTTP_TIMEOUT)

    def _get(self, path: str, params: Optional[dict] = None) -> requests.Response:
        resp = self.session.get(f"{self.base_url}{path}", params=params, timeout=self.timeout)
        resp.raise_for_status()
        return resp

    def public_events(self) -> List[dict]:
        return self._get(f"/users/{self.username}/events/public").json()

    def repositories(self, limit: int = 10) -> List[dict]:
        params = {"sort": "updated", "direction": "desc", "per_page": limit}
        return self._get(f"/users/{self.username}/repos", params).json()

    def user(self) -> dict:
        return self._get(f"/users/{self.username}").json()

    def repo_count(self) -> int:
        # with per_page=1 the page number of the "last" link is the total
        resp = self._get(f"/users/{self.username}/repos", {"per_page": 1})
        last = resp.links.get("last", {}).get("url")
        if last:
            page = parse_qs(urlparse(last).query).get("page")
            if page:
                return int(page[0])
        return len(resp.json())


def summarize_event(event: dict) -> dict:
    payload = event.get("payload") or {}
    info = {
        "id": event.get("id"),
        "type": event.get("type"),
        "repo": (event.get("repo") or {}).get("name"),
        "createdAt": event.get("created_at"),
    }
    if event["type"] == "PushEvent":
        info["commits"] = [{"message": c.get("message"), "url": c.get("url")} for c in payload.get("commits") or []]
    elif event["type"] == "CreateEvent":
        info["refType"] = payload.get("ref_type")
        info["ref"] = payload.get("ref")
    elif event["type"] == "PullRequestEvent":
        pull = payload.get("pull_request") or {}
        info["action"] = payload.get("action")
        info["title"] = pull.get("title")
        info["url"] = pull.get("html_url")
    return info


def summarize_repo(repo: dict) -> dict:
    return {
        "id": repo.get("id"),
        "name": repo.get("name"),
        "description": repo.get("description"),
        "url": repo.get("html_url"),
        "stars": repo.get("stargazers_count", 0),
        "forks": repo.get("forks_count", 0),
        "language": repo.get("language"),
        "updatedAt": repo.get("updated_at"),
    }


def activity_feed(client: GitHubClient, cache: TTLCache) -> List[dict]:
    cached = cache.get()
    if cached is not None:
        return cached
    events = [e for e in client.public_events() if e.get("type") in ACTIVITY_EVENT_TYPES]
    feed = [summarize_event(e) for e in events[:ACTIVITY_LIMIT]]
    cache.set(feed)
    return feed


def get_github_client(request: Request) -> GitHubClient:
    return request.app.state.github


def get_activity_cache(request: Request) -> TTLCache:
    return request.app.state.activity_cache
