from fastapi import APIRouter, Depends

from auth import get_current_admin
from config import logger
from crud import count_by, days_ago, ok, utcnow
from database import get_collection
from github_client import GitHubClient, get_github_client

router = APIRouter(prefix="/api/admin", tags=["admin: statistics"])


def percent(part: int, whole: int) -> int:
    return round(part / whole * 100) if whole else 0


class StatsCollector:
    """Evaluates each figure on its own; a failing one is logged and replaced by its default."""

    def __init__(self):
        self.failures = []

    def figure(self, name, fn, default=0):
        try:
            return fn()
        except Exception as exc:
            self.failures.append(name)
            logger.warning("Statistic %s unavailable: %s", name, exc)
            return default

    def count(self, name, collection, query=None):
        return self.figure(name, lambda: get_collection(collection).count_documents(query or {}))


@router.get("/statistics")
def admin_statistics(_: dict = Depends(get_current_admin), github: GitHubClient = Depends(get_github_client)):
    stats = StatsCollector()
    month = {"created_at": {"$gte": days_ago(30)}}

    total_projects = stats.count("totalProjects", "project")
    total_messages = stats.count("totalMessages", "contact")
    unread_messages = stats.count("unreadMessages", "contact", {"status": "unread"})
    total_skills = stats.count("totalSkills", "skill")
    active_skills = stats.count("activeSkills", "skill", {"is_active": True})
    recent_projects = stats.count("recentProjects", "project", month)
    recent_journeys = stats.count("recentJourneys", "journey", month)
    recent_skills = stats.count("recentSkills", "skill", month)
    recent_messages = stats.count("recentMessages", "contact", {"created_at": {"$gte": days_ago(7)}})
    github_user = stats.figure("githubUser", github.user, default={})

    data = {
        "totalProjects": total_projects,
        "featuredProjects": stats.count("featuredProjects", "project", {"featured": True}),
        "totalMessages": total_messages,
        "unreadMessages": unread_messages,
        "totalJourneys": stats.count("totalJourneys", "journey"),
        "totalSkills": total_skills,
        "activeSkills": active_skills,
        "recentProjects": recent_projects,
        "recentJourneys": recent_journeys,
        "recentSkills": recent_skills,
        "githubRepoCount": stats.figure("githubRepoCount", github.repo_count),
        "githubFollowers": github_user.get("followers", 0),
        "githubFollowing": github_user.get("following", 0),
        "projectCategoryStats": stats.figure(
            "projectCategoryStats", lambda: count_by(get_collection("project"), "category"), default=[]),
        "skillsCategoryStats": stats.figure(
            "skillsCategoryStats", lambda: count_by(get_collection("skill"), "category"), default=[]),
        "portfolioViewCount": stats.count("portfolioViewCount", "pageview"),
        # any message that has been opened counts as handled
        "messageResponseRate": percent(total_messages - unread_messages, total_messages),
        "skillsActiveRate": percent(active_skills, total_skills),
        "recentActivity": {
            "newProjects": recent_projects,
            "newJourneys": recent_journeys,
            "newSkills": recent_skills,
            "newMessages": recent_messages,
        },
        "lastUpdated": utcnow().isoformat(),
        "apiStatus": "degraded" if stats.failures else "operational",
    }
    if stats.failures:
        logger.warning("Some statistics requests failed: %s", ", ".join(stats.failures))
    return ok(data, "Admin statistics retrieved successfully")
