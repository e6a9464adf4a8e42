from datetime import timedelta

import pytest

from serenity.api.routes import auth
from serenity.core import security
from serenity.services.admin import create_admin

LOGIN = "/api/auth/login"


@pytest.fixture()
def admin_user(storage):
    return create_admin(storage, "Admin@Example.com", "correct-horse", "Ada", "Admin")


@pytest.fixture()
def client(make_client, settings):
    return make_client((auth.router, "/api"), as_admin=False)


def login(client, password, email="admin@example.com"):
    return client.post(LOGIN, json={"email": email, "password": password})


def test_login_success(client, admin_user):
    response = login(client, "correct-horse")

    assert response.status_code == 200
    body = response.json()
    assert body["user"]["email"] == "admin@example.com"
    assert "password_hash" not in body["user"]
    claims = security.decode_access_token(body["token"])
    assert claims["sub"] == str(admin_user["id"])
    assert claims["role"] == "admin"


def test_bad_credentials(client, admin_user):
    assert login(client, "wrong-password").status_code == 401
    assert login(client, "correct-horse", email="nobody@example.com").status_code == 401


def test_lockout_after_five_failures(client, admin_user):
    for _ in range(5):
        assert login(client, "wrong-password").status_code == 401

    response = login(client, "correct-horse")

    assert response.status_code == 429


def test_success_resets_failures(client, admin_user):
    for _ in range(4):
        login(client, "wrong-password")
    assert login(client, "correct-horse").status_code == 200

    for _ in range(4):
        assert login(client, "wrong-password").status_code == 401
    assert login(client, "correct-horse").status_code == 200


def test_register_requires_key(client):
    payload = {
        "email": "new@example.com",
        "password": "long-enough-pw",
        "firstName": "New",
        "lastName": "Admin",
        "adminKey": "not-the-right-key",
    }

    assert client.post("/api/auth/register", json=payload).status_code == 403

    payload["adminKey"] = "registration-key-123"
    created = client.post("/api/auth/register", json=payload)
    assert created.status_code == 201
    assert created.json()["user"]["email"] == "new@example.com"

    assert client.post("/api/auth/register", json=payload).status_code == 409


def test_verify_with_bearer_and_cookie(client, admin_user):
    token = security.token_for_user(admin_user)

    bearer = client.get("/api/auth/verify", headers={"Authorization": f"Bearer {token}"})
    assert bearer.status_code == 200
    assert bearer.json()["user"]["id"] == admin_user["id"]

    client.cookies.set("token", token)
    assert client.get("/api/auth/verify").status_code == 200


def test_token_errors(client, admin_user):
    expired = security.create_access_token(
        {"sub": str(admin_user["id"]), "email": admin_user["email"], "role": "admin"},
        expires_delta=timedelta(minutes=-5),
    )

    missing = client.get("/api/auth/verify")
    assert missing.status_code == 401
    assert missing.json()["detail"] == "Access token required"

    stale = client.get("/api/auth/verify", headers={"Authorization": f"Bearer {expired}"})
    assert stale.status_code == 401
    assert stale.json()["detail"] == "Token expired"

    garbage = client.get("/api/auth/verify", headers={"Authorization": "Bearer not-a-token"})
    assert garbage.status_code == 403
    assert garbage.json()["detail"] == "Invalid token"


def test_refresh_issues_new_token(client, admin_user):
    token = security.token_for_user(admin_user)

    response = client.post("/api/auth/refresh", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    claims = security.decode_access_token(response.json()["token"])
    assert claims["email"] == "admin@example.com"


def test_change_password(client, admin_user):
    headers = {"Authorization": f"Bearer {security.token_for_user(admin_user)}"}

    wrong = client.post(
        "/api/auth/change-password",
        json={"currentPassword": "not-current", "newPassword": "brand-new-pw"},
        headers=headers,
    )
    assert wrong.status_code == 401

    changed = client.post(
        "/api/auth/change-password",
        json={"currentPassword": "correct-horse", "newPassword": "brand-new-pw"},
        headers=headers,
    )
    assert changed.status_code == 200
    assert login(client, "brand-new-pw").status_code == 200
