import requests
from fastapi import APIRouter, Depends

from crud import ok
from errors import server_error
from github_client import GitHubClient, TTLCache, activity_feed, get_activity_cache, get_github_client, summarize_repo

router = APIRouter(prefix="/api/github", tags=["github"])


@router.get("/activity")
def github_activity(client: GitHubClient = Depends(get_github_client), cache: TTLCache = Depends(get_activity_cache)):
    try:
        feed = activity_feed(client, cache)
    except requests.RequestException as exc:
        raise server_error("Failed to fetch GitHub activity", exc)
    return ok(feed)


@router.get("/repos")
def github_repos(client: GitHubClient = Depends(get_github_client)):
    try:
        repos = client.repositories(limit=10)
    except requests.RequestException as exc:
        raise server_error("Failed to fetch GitHub repositories", exc)
    return ok([summarize_repo(r) for r in repos])
