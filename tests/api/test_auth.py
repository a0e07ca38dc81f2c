from __future__ import annotations

from datetime import UTC, datetime, timedelta

import jwt
from fastapi.testclient import TestClient

from portal.services import token_service
from tests.conftest import auth, create_test_org, create_test_user, mint_token

SETUP_KEY = "test-setup-key-0123"


# ---- login ----


def test_login_returns_token_and_user(client: TestClient) -> None:
    org = create_test_org()
    user = create_test_user(email="Client@Example.com", org=org)

    resp = client.post(
        "/auth/login", json={"email": "client@example.com", "password": "correct-horse"}
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["id"] == str(user.id)
    assert body["user"]["role"] == "client"
    assert body["user"]["organization_id"] == str(org.id)

    claims = token_service.decode_access_token(body["access_token"])
    assert claims["sub"] == str(user.id)
    assert claims["roles"] == ["client"]
    assert claims["org_id"] == str(org.id)


def test_login_rejects_wrong_password(client: TestClient) -> None:
    create_test_user()
    resp = client.post(
        "/auth/login", json={"email": "client@example.com", "password": "wrong"}
    )
    assert resp.status_code == 401
    assert resp.json()["detail"] == {"message": "Invalid email or password"}


def test_login_unknown_email_looks_like_wrong_password(client: TestClient) -> None:
    resp = client.post(
        "/auth/login", json={"email": "ghost@example.com", "password": "whatever"}
    )
    assert resp.status_code == 401
    assert resp.json()["detail"] == {"message": "Invalid email or password"}


# ---- /auth/me and bearer validation ----


def test_me_echoes_principal(client: TestClient) -> None:
    org = create_test_org()
    token = mint_token(username="u-1", roles=["teamMember"], org_id=org.id)

    resp = client.get("/auth/me", headers=auth(token))

    assert resp.status_code == 200
    assert resp.json() == {
        "user_id": "u-1",
        "roles": ["teamMember"],
        "organization_id": str(org.id),
    }


def test_me_requires_token(client: TestClient) -> None:
    assert client.get("/auth/me").status_code == 401


def test_garbage_token_rejected(client: TestClient) -> None:
    resp = client.get("/auth/me", headers=auth("total-garbage"))
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid token"


def test_expired_token_rejected(client: TestClient) -> None:
    past = datetime.now(UTC) - timedelta(hours=2)
    token = jwt.encode(
        {
            "sub": "u-1",
            "iss": token_service.ISSUER,
            "aud": token_service.AUDIENCE,
            "iat": past,
            "exp": past + timedelta(minutes=5),
            "jti": "j-1",
            "roles": ["admin"],
        },
        token_service._private_key,
        algorithm=token_service.ALGORITHM,
    )
    resp = client.get("/auth/me", headers=auth(token))
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Token expired"


def test_token_with_wrong_audience_rejected(client: TestClient) -> None:
    now = datetime.now(UTC)
    token = jwt.encode(
        {
            "sub": "u-1",
            "iss": token_service.ISSUER,
            "aud": "someone-else",
            "iat": now,
            "exp": now + timedelta(minutes=5),
            "jti": "j-2",
        },
        token_service._private_key,
        algorithm=token_service.ALGORITHM,
    )
    assert client.get("/auth/me", headers=auth(token)).status_code == 401


# ---- admin bootstrap ----


def _setup(client: TestClient, **overrides):
    body = {
        "name": "Root Admin",
        "email": "root@example.com",
        "password": "long-password",
        "setup_key": SETUP_KEY,
    } | overrides
    return client.post("/auth/admin-setup", json=body)


def test_admin_setup_creates_admin_and_logs_in(client: TestClient) -> None:
    resp = _setup(client)

    assert resp.status_code == 201
    body = resp.json()
    assert body["user"]["role"] == "admin"
    assert body["user"]["organization_id"] is None
    claims = token_service.decode_access_token(body["access_token"])
    assert claims["roles"] == ["admin"]

    login = client.post(
        "/auth/login", json={"email": "root@example.com", "password": "long-password"}
    )
    assert login.status_code == 200


def test_admin_setup_rejects_wrong_key(client: TestClient) -> None:
    resp = _setup(client, setup_key="not-the-key-at-all")
    assert resp.status_code == 403
    assert resp.json()["detail"] == {"message": "Invalid setup key"}


def test_admin_setup_only_once(client: TestClient) -> None:
    assert _setup(client).status_code == 201
    resp = _setup(client, email="second@example.com")
    assert resp.status_code == 409


def test_admin_setup_validates_input(client: TestClient) -> None:
    assert _setup(client, email="not-an-email").status_code == 422
    assert _setup(client, name="   ").status_code == 422
    assert _setup(client, password="short").status_code == 422
