from datetime import datetime, timedelta, timezone

from bson import ObjectId

from conftest import project_payload


def seed_projects(client, auth, count):
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    ids = []
    for n in range(1, count + 1):
        # project n completes n days after base, so the newest is project `count`
        body = project_payload(title=f"Project {n}", completionDate=(base + timedelta(days=n)).isoformat())
        resp = client.post("/api/admin/projects", json=body, headers=auth)
        assert resp.status_code == 201, resp.json()
        ids.append(resp.json()["data"]["id"])
    return ids


def test_create_and_fetch_project(client, auth):
    resp = client.post("/api/admin/projects", json=project_payload(featured=True), headers=auth)
    assert resp.status_code == 201
    created = resp.json()["data"]
    assert created["title"] == "Portfolio Site"
    assert created["status"] == "completed"
    assert created["age"] >= 0

    public = client.get(f"/api/projects/{created['id']}").json()["data"]
    assert public["githubUrl"] == "https://github.com/example/portfolio"
    assert "createdBy" not in public


def test_project_validation(client, auth):
    resp = client.post("/api/admin/projects", json=project_payload(technologies=[]), headers=auth)
    assert resp.status_code == 400
    assert resp.json()["success"] is False

    resp = client.post("/api/admin/projects", json=project_payload(category="Games"), headers=auth)
    assert resp.status_code == 400


def test_public_pagination(client, auth):
    seed_projects(client, auth, 12)
    resp = client.get("/api/projects", params={"page": 2, "limit": 5})
    body = resp.json()
    assert body["pagination"] == {"page": 2, "limit": 5, "total": 12, "pages": 3}
    # newest first: page 2 holds the 6th..10th newest
    assert [p["title"] for p in body["data"]] == [f"Project {n}" for n in range(7, 2, -1)]


def test_last_page_is_partial(client, auth):
    seed_projects(client, auth, 12)
    body = client.get("/api/projects", params={"page": 3, "limit": 5}).json()
    assert len(body["data"]) == 2


def test_admin_search_and_filters(client, auth):
    client.post("/api/admin/projects", json=project_payload(title="Chess Engine", category="Research"), headers=auth)
    client.post("/api/admin/projects", json=project_payload(title="Shop (beta)", category="Fullstack"), headers=auth)

    found = client.get("/api/admin/projects", params={"search": "chess"}, headers=auth).json()["data"]
    assert [p["title"] for p in found] == ["Chess Engine"]

    # regex metacharacters are matched literally
    found = client.get("/api/admin/projects", params={"search": "(beta)"}, headers=auth).json()["data"]
    assert [p["title"] for p in found] == ["Shop (beta)"]

    found = client.get("/api/projects", params={"category": "Research"}).json()["data"]
    assert len(found) == 1


def test_partial_update_keeps_other_fields(client, auth):
    project_id = seed_projects(client, auth, 1)[0]
    resp = client.put(f"/api/admin/projects/{project_id}", json={"priority": 7}, headers=auth)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["priority"] == 7
    assert data["title"] == "Project 1"

    resp = client.put(f"/api/admin/projects/{project_id}", json={"priority": 42}, headers=auth)
    assert resp.status_code == 400


def test_toggle_featured(client, auth):
    project_id = seed_projects(client, auth, 1)[0]
    resp = client.patch(f"/api/admin/projects/{project_id}/featured", headers=auth)
    assert resp.json()["data"]["featured"] is True
    featured = client.get("/api/projects/featured/list").json()
    assert featured["count"] == 1


def test_bulk_delete_counts_only_existing(client, auth, db):
    ids = seed_projects(client, auth, 3)
    resp = client.post(
        "/api/admin/projects/bulk",
        json={"action": "delete", "projectIds": [ids[0], ids[1], str(ObjectId())]},
        headers=auth,
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["deletedCount"] == 2
    assert db["project"].count_documents({}) == 1


def test_bulk_rejects_unknown_action_and_bad_ids(client, auth):
    ids = seed_projects(client, auth, 1)
    resp = client.post("/api/admin/projects/bulk", json={"action": "archive", "ids": ids}, headers=auth)
    assert resp.status_code == 400

    resp = client.post("/api/admin/projects/bulk", json={"action": "feature", "ids": ["not-an-id"]}, headers=auth)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid id"


def test_project_stats(client, auth):
    seed_projects(client, auth, 2)
    client.post("/api/admin/projects", json=project_payload(category="API", featured=True), headers=auth)
    stats = client.get("/api/admin/projects/stats", headers=auth).json()["data"]
    assert stats["totalProjects"] == 3
    assert stats["featuredProjects"] == 1
    assert stats["recentProjects"] == 3
    assert stats["categoryCounts"][0] == {"_id": "Web", "count": 2}


def test_missing_and_malformed_ids(client, auth):
    assert client.get(f"/api/projects/{ObjectId()}").status_code == 404
    assert client.get("/api/projects/xyz").status_code == 400
    assert client.delete(f"/api/admin/projects/{ObjectId()}", headers=auth).status_code == 404
