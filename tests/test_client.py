import io

import pytest

from client import AdminSession, APIClientError, SessionExpired
from conftest import ADMIN_PASSWORD, contact_payload, project_payload


@pytest.fixture
def session(client, admin):
    return AdminSession("http://testserver", http=client)


def test_login_keeps_token_on_the_session(session):
    assert not session.is_authenticated
    admin = session.login("owner", ADMIN_PASSWORD)
    assert admin["username"] == "owner"
    assert session.is_authenticated
    assert session.profile()["username"] == "owner"


def test_failed_login(session):
    with pytest.raises(SessionExpired):
        session.login("owner", "wrong")
    assert not session.is_authenticated


def test_project_round_trip(session):
    session.login("owner", ADMIN_PASSWORD)
    created = session.create_project(project_payload())
    session.update_project(created["id"], {"featured": True})
    items, pagination = session.projects()
    assert pagination["total"] == 1
    assert items[0]["featured"] is True
    session.delete_project(created["id"])
    assert session.projects()[1]["total"] == 0


def test_api_errors_carry_status_and_message(session):
    session.login("owner", ADMIN_PASSWORD)
    with pytest.raises(APIClientError) as info:
        session.delete_project("bad-id")
    assert info.value.status_code == 400
    assert info.value.message == "Invalid id"


def test_unauthorized_response_clears_the_session(session, db, admin):
    session.login("owner", ADMIN_PASSWORD)
    db["admin"].update_one({"_id": admin["_id"]}, {"$set": {"is_active": False}})
    with pytest.raises(SessionExpired):
        session.statistics()
    assert not session.is_authenticated
    assert session.admin is None


def test_messages_and_reply(session, client, mailer):
    client.post("/api/contact", json=contact_payload())
    session.login("owner", ADMIN_PASSWORD)
    items, _ = session.messages(status="unread")
    reply = session.reply(items[0]["id"], "Thanks for writing")
    assert reply["status"] == "replied"
    assert session.bulk_messages("delete", [items[0]["id"]])["deletedCount"] == 1


def test_upload_through_the_session(session):
    session.login("owner", ADMIN_PASSWORD)
    data = session.upload_image("logo.png", io.BytesIO(b"\x89PNG data"), "image/png")
    session.delete_image(data["filename"])


def test_logout_clears_even_when_server_rejects(session, db, admin):
    session.login("owner", ADMIN_PASSWORD)
    db["admin"].delete_one({"_id": admin["_id"]})
    with pytest.raises(SessionExpired):
        session.logout()
    assert not session.is_authenticated
