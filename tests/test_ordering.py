"""Display order assignment, the duplicate-order race and reordering for skills, journey and highlights."""

from datetime import datetime, timezone

import pytest

from conftest import skill_payload

import routes.skills


def create_skill(client, auth, **overrides):
    resp = client.post("/api/admin/skills", json=skill_payload(**overrides), headers=auth)
    assert resp.status_code == 201, resp.json()
    return resp.json()["data"]


def journey_payload(**overrides):
    body = {"year": 2020, "title": "Started", "description": "First job"}
    body.update(overrides)
    return body


def highlight_payload(**overrides):
    body = {
        "title": "Banking app",
        "description": "Mobile banking redesign",
        "imageUrl": "https://img.example.com/h.png",
        "category": "mobile-app",
        "completionDate": datetime(2023, 6, 1, tzinfo=timezone.utc).isoformat(),
    }
    body.update(overrides)
    return body


def test_display_order_is_assigned_per_category(client, auth):
    assert create_skill(client, auth, name="React")["displayOrder"] == 1
    assert create_skill(client, auth, name="Vue")["displayOrder"] == 2
    assert create_skill(client, auth, name="Django", category="backend")["displayOrder"] == 1


def test_duplicate_display_order_is_rejected(client, auth):
    create_skill(client, auth, name="React", displayOrder=3)
    resp = client.post("/api/admin/skills", json=skill_payload(name="Vue", displayOrder=3), headers=auth)
    assert resp.status_code == 400
    assert resp.json()["message"] == "A skill with this display order already exists in this category"


def test_concurrent_creates_picking_the_same_order(client, auth, db, monkeypatch):
    # both requests read the same maximum before either writes
    monkeypatch.setattr(routes.skills, "next_display_order", lambda collection, scope=None: 1)
    first = client.post("/api/admin/skills", json=skill_payload(name="React"), headers=auth)
    second = client.post("/api/admin/skills", json=skill_payload(name="Vue"), headers=auth)
    assert first.status_code == 201
    assert second.status_code == 400
    assert db["skill"].count_documents({}) == 1


def test_reorder_skills_reverses_category(client, auth, db):
    ids = [create_skill(client, auth, name=n)["id"] for n in ("A", "B", "C")]
    other = create_skill(client, auth, name="Go", category="backend")

    resp = client.post(
        "/api/admin/skills/reorder",
        json={"category": "frontend", "skillIds": list(reversed(ids))},
        headers=auth,
    )
    assert resp.status_code == 200
    assert [s["name"] for s in resp.json()["data"]] == ["C", "B", "A"]

    listed = client.get("/api/skills", params={"category": "frontend"}).json()["data"]
    assert [s["name"] for s in listed] == ["C", "B", "A"]
    assert [s["displayOrder"] for s in listed] == [1, 2, 3]
    assert client.get(f"/api/admin/skills/{other['id']}", headers=auth).json()["data"]["displayOrder"] == 1


def test_reorder_requires_category_for_skills(client, auth):
    resp = client.post("/api/admin/skills/reorder", json={"skillIds": []}, headers=auth)
    assert resp.status_code == 400


def test_reorder_with_empty_list_is_a_noop(client, auth):
    client.post("/api/admin/journey", json=journey_payload(), headers=auth)
    resp = client.post("/api/admin/journey/reorder", json={"journeyIds": []}, headers=auth)
    assert resp.status_code == 200
    assert [j["displayOrder"] for j in resp.json()["data"]] == [1]


def test_journey_order_and_reorder(client, auth):
    ids = []
    for year in (2018, 2020, 2022):
        resp = client.post("/api/admin/journey", json=journey_payload(year=year, title=f"Year {year}"), headers=auth)
        assert resp.status_code == 201
        ids.append(resp.json()["data"]["id"])

    order = [ids[1], ids[2], ids[0]]
    resp = client.post("/api/admin/journey/reorder", json={"journeyIds": order}, headers=auth)
    assert [j["id"] for j in resp.json()["data"]] == order
    listed = client.get("/api/journey").json()["data"]
    assert [j["id"] for j in listed] == order

    stats = client.get("/api/journey/stats/overview").json()["data"]
    assert stats["yearRange"] == {"minYear": 2018, "maxYear": 2022}


def test_journey_year_limit(client, auth):
    far = datetime.now(timezone.utc).year + 11
    resp = client.post("/api/admin/journey", json=journey_payload(year=far), headers=auth)
    assert resp.status_code == 400


def test_journey_year_range_defaults_to_current_year(client):
    current = datetime.now(timezone.utc).year
    stats = client.get("/api/journey/stats/overview").json()["data"]
    assert stats["yearRange"] == {"minYear": current, "maxYear": current}


def test_highlight_reorder_swap(client, auth):
    first = client.post("/api/admin/highlights", json=highlight_payload(title="One"), headers=auth).json()["data"]
    second = client.post("/api/admin/highlights", json=highlight_payload(title="Two"), headers=auth).json()["data"]
    assert (first["displayOrder"], second["displayOrder"]) == (1, 2)

    client.post("/api/admin/highlights/reorder", json={"highlightIds": [second["id"], first["id"]]}, headers=auth)
    listed = client.get("/api/highlights").json()["data"]
    assert [h["title"] for h in listed] == ["Two", "One"]


def test_reorder_onto_an_order_held_by_an_unlisted_entry(client, auth, db):
    ids = [
        client.post("/api/admin/journey", json=journey_payload(year=year), headers=auth).json()["data"]["id"]
        for year in (2018, 2020, 2022)
    ]
    resp = client.post("/api/admin/journey/reorder", json={"journeyIds": [ids[2], ids[1]]}, headers=auth)
    assert resp.status_code == 400
    assert resp.json()["message"] == "A journey entry with this display order already exists"
    stored = {str(doc["_id"]): doc["display_order"] for doc in db["journey"].find()}
    assert [stored[i] for i in ids] == [1, 2, 3]


def test_reorder_subset_into_free_positions(client, auth):
    ids = [create_skill(client, auth, name=n, displayOrder=order)["id"] for n, order in (("A", 1), ("B", 2), ("C", 5))]
    resp = client.post(
        "/api/admin/skills/reorder",
        json={"category": "frontend", "skillIds": [ids[1], ids[0]]},
        headers=auth,
    )
    assert resp.status_code == 200
    assert [(s["name"], s["displayOrder"]) for s in resp.json()["data"]] == [("B", 1), ("A", 2), ("C", 5)]


def test_failed_reorder_batch_restores_parked_orders(db):
    from bson import ObjectId
    from fastapi import HTTPException
    from pymongo.errors import BulkWriteError

    import crud

    collection = db["highlight"]
    ids = [collection.insert_one({"title": t, "display_order": n}).inserted_id for n, t in ((1, "One"), (2, "Two"))]

    class FailingFinalBatch:
        def __init__(self, inner):
            self.inner = inner
            self.calls = 0

        def __getattr__(self, name):
            return getattr(self.inner, name)

        def bulk_write(self, requests, ordered=True):
            self.calls += 1
            if self.calls == 2:
                raise BulkWriteError({"writeErrors": [{"index": 0, "code": 11000, "errmsg": "dup"}]})
            return self.inner.bulk_write(requests, ordered=ordered)

    with pytest.raises(HTTPException) as info:
        with crud.duplicate_order_guard("taken"):
            crud.reorder(FailingFinalBatch(collection), [str(ids[1]), str(ids[0])], ObjectId())
    assert info.value.status_code == 400
    assert info.value.detail == "taken"
    assert [collection.find_one({"_id": oid})["display_order"] for oid in ids] == [1, 2]
