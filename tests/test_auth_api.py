import re
from datetime import timedelta

import pytest

from auth.security import hash_token
from models.buddy import Buddy
from models.user import User
from models.user_stats import UserStats
from services import auth_service
from services.dates import utcnow
from services.errors import DependencyError


def _register(client, email="carol@example.com", password="secret123", name="Carol"):
    return client.post("/auth/register", json={"name": name, "email": email, "password": password})


@pytest.fixture
def sent_emails(monkeypatch):
    outbox = []
    monkeypatch.setattr(auth_service, "send_email", lambda **kw: outbox.append(kw))
    return outbox


@pytest.fixture
def failing_email(monkeypatch):
    def _fail(**kw):
        raise DependencyError("Email could not be sent")

    monkeypatch.setattr(auth_service, "send_email", _fail)


# -------------------------
# register
# -------------------------
def test_register_returns_token_and_creates_stats(client, db):
    res = _register(client)
    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["token"]
    assert body["data"]["email"] == "carol@example.com"
    assert "password_hash" not in body["data"]

    user = db.query(User).filter(User.email == "carol@example.com").one()
    assert db.query(UserStats).filter(UserStats.user_id == user.user_id).count() == 1
    # 検証トークンはハッシュで保存されている
    assert user.verification_token and len(user.verification_token) == 64
    assert user.is_verified is False


def test_register_assigns_default_buddy(client, db):
    buddy = Buddy(name="Helper", personality="helper", is_default=True, default_messages={})
    db.add(buddy)
    db.commit()

    data = _register(client).json()["data"]
    assert data["default_buddy_id"] == str(buddy.buddy_id)


def test_register_without_default_buddy(client):
    assert _register(client).json()["data"]["default_buddy_id"] is None


def test_duplicate_email_is_conflict(client, db):
    assert _register(client).status_code == 200
    res = _register(client, email="Carol@Example.com")

    assert res.status_code == 400
    assert res.json() == {"success": False, "message": "Email already in use"}
    assert db.query(User).count() == 1
    assert db.query(UserStats).count() == 1


def test_register_validates_input(client):
    assert _register(client, email="not-an-email").status_code == 400
    assert _register(client, password="123").status_code == 400


def test_verification_email_failure_clears_token(client, db, monkeypatch, failing_email):
    monkeypatch.setenv("SEND_VERIFICATION_EMAIL", "true")
    res = _register(client)

    assert res.status_code == 500
    assert res.json()["message"] == "Email could not be sent"
    user = db.query(User).filter(User.email == "carol@example.com").one()
    assert user.verification_token is None


# -------------------------
# login / me
# -------------------------
def test_login(client, user, db):
    res = client.post("/auth/login", json={"email": "alice@example.com", "password": "secret123"})
    assert res.status_code == 200
    token = res.json()["token"]

    db.refresh(user)
    assert user.last_login is not None

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["data"]["email"] == "alice@example.com"
    assert me.json()["data"]["default_buddy"] is None


@pytest.mark.parametrize(
    "email, password",
    [("alice@example.com", "wrong-pass"), ("nobody@example.com", "secret123")],
)
def test_login_failures_share_message(client, user, email, password):
    res = client.post("/auth/login", json={"email": email, "password": password})
    assert res.status_code == 401
    assert res.json() == {"success": False, "message": "Invalid credentials"}


def test_login_requires_fields(client):
    res = client.post("/auth/login", json={"email": "alice@example.com"})
    assert res.status_code == 400
    assert res.json()["message"] == "Please provide an email and password"


def test_invalid_token(client):
    res = client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert res.status_code == 401


def test_logout(client, auth_headers):
    res = client.get("/auth/logout", headers=auth_headers)
    assert res.json()["message"] == "Logged out successfully"


# -------------------------
# email verification
# -------------------------
def test_verify_email(client, db, user):
    token = auth_service.issue_verification_token(db, user)

    res = client.get(f"/auth/verify-email/{token}")
    assert res.status_code == 200

    db.refresh(user)
    assert user.is_verified is True
    assert user.verification_token is None

    assert client.get(f"/auth/verify-email/{token}").status_code == 400


# -------------------------
# password reset
# -------------------------
def test_forgot_and_reset_password(client, db, user, sent_emails):
    res = client.post("/auth/forgot-password", json={"email": "alice@example.com"})
    assert res.status_code == 200
    assert len(sent_emails) == 1

    token = re.search(r"reset-password/(\w+)", sent_emails[0]["text"]).group(1)
    db.refresh(user)
    assert user.reset_password_token == hash_token(token)

    res = client.put(f"/auth/reset-password/{token}", json={"password": "newsecret"})
    assert res.status_code == 200
    assert res.json()["token"]

    db.refresh(user)
    assert user.reset_password_token is None
    assert user.reset_password_expire is None

    ok = client.post("/auth/login", json={"email": "alice@example.com", "password": "newsecret"})
    assert ok.status_code == 200

    # 使用済みトークンは無効
    assert client.put(f"/auth/reset-password/{token}", json={"password": "another1"}).status_code == 400


def test_reset_with_expired_token(client, db, user, sent_emails):
    client.post("/auth/forgot-password", json={"email": "alice@example.com"})
    token = re.search(r"reset-password/(\w+)", sent_emails[0]["text"]).group(1)

    user.reset_password_expire = utcnow() - timedelta(seconds=1)
    db.commit()

    res = client.put(f"/auth/reset-password/{token}", json={"password": "newsecret"})
    assert res.status_code == 400
    assert res.json()["message"] == "Invalid token"


def test_reset_with_unknown_token(client, user):
    assert client.put("/auth/reset-password/deadbeef", json={"password": "newsecret"}).status_code == 400


def test_forgot_password_unknown_email(client):
    res = client.post("/auth/forgot-password", json={"email": "ghost@example.com"})
    assert res.status_code == 404


def test_forgot_password_email_failure_clears_token(client, db, user, failing_email):
    res = client.post("/auth/forgot-password", json={"email": "alice@example.com"})
    assert res.status_code == 500

    db.refresh(user)
    assert user.reset_password_token is None
    assert user.reset_password_expire is None


# -------------------------
# update details / password
# -------------------------
def test_update_details(client, auth_headers, other_headers):
    res = client.put("/auth/update-details", json={"name": "Alicia"}, headers=auth_headers)
    assert res.json()["data"]["name"] == "Alicia"

    res = client.put("/auth/update-details", json={"email": "bob@example.com"}, headers=auth_headers)
    assert res.status_code == 400


def test_update_password(client, auth_headers):
    res = client.put(
        "/auth/update-password",
        json={"currentPassword": "wrong-pass", "newPassword": "newsecret"},
        headers=auth_headers,
    )
    assert res.status_code == 401
    assert res.json()["message"] == "Password is incorrect"

    res = client.put(
        "/auth/update-password",
        json={"current_password": "secret123", "new_password": "newsecret"},
        headers=auth_headers,
    )
    assert res.status_code == 200
    assert client.post("/auth/login", json={"email": "alice@example.com", "password": "newsecret"}).status_code == 200
