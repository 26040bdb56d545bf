from pymongo.errors import PyMongoError

import routes.statistics
from conftest import contact_payload, project_payload, skill_payload


def test_dashboard_statistics(client, auth, github):
    client.post("/api/admin/projects", json=project_payload(featured=True), headers=auth)
    client.post("/api/admin/skills", json=skill_payload(), headers=auth)
    client.post("/api/admin/skills", json=skill_payload(name="Go", category="backend", isActive=False), headers=auth)
    message = client.post("/api/contact", json=contact_payload()).json()["data"]["id"]
    client.post("/api/contact", json=contact_payload(subject="Again"))
    client.get(f"/api/admin/messages/{message}", headers=auth)
    client.post("/api/admin/track-view", json={"page": "/projects"})

    resp = client.get("/api/admin/statistics", headers=auth)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["totalProjects"] == 1
    assert data["featuredProjects"] == 1
    assert data["totalSkills"] == 2
    assert data["activeSkills"] == 1
    assert data["skillsActiveRate"] == 50
    assert data["totalMessages"] == 2
    assert data["unreadMessages"] == 1
    assert data["messageResponseRate"] == 50
    assert data["githubRepoCount"] == 31
    assert data["githubFollowers"] == 12
    assert data["githubFollowing"] == 4
    assert data["portfolioViewCount"] == 1
    assert data["projectCategoryStats"] == [{"_id": "Web", "count": 1}]
    assert data["recentActivity"]["newMessages"] == 2
    assert data["apiStatus"] == "operational"


def test_failures_degrade_individual_figures(client, auth, github, monkeypatch):
    client.post("/api/admin/projects", json=project_payload(), headers=auth)
    github.fail = True

    def broken(*args, **kwargs):
        raise PyMongoError("aggregate failed")

    monkeypatch.setattr(routes.statistics, "count_by", broken)

    resp = client.get("/api/admin/statistics", headers=auth)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["totalProjects"] == 1
    assert data["githubRepoCount"] == 0
    assert data["githubFollowers"] == 0
    assert data["projectCategoryStats"] == []
    assert data["skillsCategoryStats"] == []
    assert data["apiStatus"] == "degraded"


def test_view_tracking(client, auth):
    for page in ("/", "/", "/projects"):
        client.post("/api/admin/track-view", json={"page": page, "referrer": "https://search.example"})
    stats = client.get("/api/admin/view-stats", headers=auth).json()["data"]
    assert stats["totalViews"] == 3
    assert stats["uniqueViews"] == 1
    assert stats["viewsToday"] == 3
    assert stats["topPages"][0] == {"page": "/", "views": 2}
    assert len(stats["recentViews"]) == 3
