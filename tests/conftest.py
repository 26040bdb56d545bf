import mongomock
import pytest
import requests
from fastapi.testclient import TestClient

import config
import database
import main
from auth import create_access_token, hash_password
from github_client import TTLCache, get_activity_cache, get_github_client
from mailer import MailError, get_mailer

ADMIN_PASSWORD = "s3cret-pass"


class FakeMailer:
    def __init__(self):
        self.sent = []
        self.fail = False

    def _deliver(self, kind, to, subject):
        if self.fail:
            raise MailError("SMTP server unreachable")
        self.sent.append({"kind": kind, "to": to, "subject": subject})

    def notify_new_contact(self, contact):
        self._deliver("notify", "owner@example.com", f"Portfolio Contact: {contact['subject']}")

    def send_auto_reply(self, contact):
        self._deliver("auto-reply", contact["email"], "Thank you for contacting me!")

    def send_reply(self, contact, subject, reply):
        self._deliver("reply", contact["email"], subject)


class FakeGitHub:
    def __init__(self):
        self.events = []
        self.repos = []
        self.followers = 12
        self.following = 4
        self.total_repos = 31
        self.event_fetches = 0
        self.fail = False

    def _check(self):
        if self.fail:
            raise requests.ConnectionError("github unreachable")

    def public_events(self):
        self._check()
        self.event_fetches += 1
        return list(self.events)

    def repositories(self, limit=10):
        self._check()
        return self.repos[:limit]

    def user(self):
        self._check()
        return {"followers": self.followers, "following": self.following}

    def repo_count(self):
        self._check()
        return self.total_repos


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def db(monkeypatch, tmp_path):
    mock_db = mongomock.MongoClient(tz_aware=True)["portfolio_test"]
    monkeypatch.setattr(database, "db", mock_db)
    monkeypatch.setattr(config, "ADMIN_PASSWORD", None)
    monkeypatch.setattr(config, "UPLOAD_DIR", str(tmp_path / "uploads"))
    return mock_db


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def github():
    return FakeGitHub()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def activity_cache(clock):
    return TTLCache(config.GITHUB_CACHE_SECONDS, clock=clock)


@pytest.fixture
def client(db, mailer, github, activity_cache):
    main.app.dependency_overrides[get_mailer] = lambda: mailer
    main.app.dependency_overrides[get_github_client] = lambda: github
    main.app.dependency_overrides[get_activity_cache] = lambda: activity_cache
    with TestClient(main.app) as c:
        yield c
    main.app.dependency_overrides.clear()


def insert_admin(db, username="owner", role="super_admin", is_active=True):
    result = db["admin"].insert_one({
        "username": username,
        "email": f"{username}@example.com",
        "password_hash": hash_password(ADMIN_PASSWORD),
        "role": role,
        "is_active": is_active,
        "last_login": None,
    })
    return db["admin"].find_one({"_id": result.inserted_id})


@pytest.fixture
def admin(db):
    return insert_admin(db)


@pytest.fixture
def token(admin):
    return create_access_token(str(admin["_id"]))


@pytest.fixture
def auth(token):
    return {"Authorization": f"Bearer {token}"}


def project_payload(**overrides):
    body = {
        "title": "Portfolio Site",
        "description": "Personal site with an admin panel",
        "technologies": ["FastAPI", "MongoDB"],
        "imageUrl": "https://img.example.com/p.png",
        "githubUrl": "https://github.com/example/portfolio",
        "category": "Web",
        "completionDate": "2024-03-01T00:00:00Z",
    }
    body.update(overrides)
    return body


def skill_payload(**overrides):
    body = {
        "name": "React",
        "category": "frontend",
        "proficiency": "advanced",
        "proficiencyLevel": 85,
    }
    body.update(overrides)
    return body


def contact_payload(**overrides):
    body = {
        "name": "Jo Visitor",
        "email": "Jo@Example.com",
        "subject": "Collaboration",
        "message": "Would you like to build something together?",
    }
    body.update(overrides)
    return body
