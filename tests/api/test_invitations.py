"""Invitation flow over HTTP: issue, validate, complete."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from portal.repos.registry import IN_MEMORY
from portal.services import token_service
from portal.services.task_queue import INVITATION_EMAIL_QUEUE, task_queue
from tests.conftest import FakeClock, auth, create_test_org, create_test_user, mint_token


def _invite(client: TestClient, admin_token: str, org_id, **overrides):
    body = {
        "email": "Ada@Example.com",
        "name": "Ada Lovelace",
        "role": "client",
        "organization_id": str(org_id),
    } | overrides
    return client.post("/invitations", json=body, headers=auth(admin_token))


def _token_for(invitation_id: str) -> str:
    return next(
        i.token
        for i in IN_MEMORY.invitations._by_id.values()  # type: ignore[attr-defined]
        if str(i.id) == invitation_id
    )


@pytest.fixture
def org():
    return create_test_org("Acme Media")


def test_admin_issues_invitation(
    client: TestClient, admin_token: str, org, clock: FakeClock
) -> None:
    resp = _invite(client, admin_token, org.id)

    assert resp.status_code == 201
    body = resp.json()
    assert body["email"] == "ada@example.com"
    assert body["status"] == "pending"
    assert body["role"] == "client"
    assert "token" not in body
    token = _token_for(body["id"])
    assert body["invite_link"].endswith(f"/register/complete?token={token}")


def test_issuing_enqueues_email(client: TestClient, admin_token: str, org) -> None:
    body = _invite(client, admin_token, org.id).json()

    task = asyncio.run(task_queue.dequeue(INVITATION_EMAIL_QUEUE))
    assert task is not None
    assert task.payload["invitation_id"] == body["id"]
    assert task.payload["email"] == "ada@example.com"
    assert task.payload["token"] == _token_for(body["id"])


def test_queue_outage_does_not_fail_invitation(
    client: TestClient, admin_token: str, org, monkeypatch: pytest.MonkeyPatch
) -> None:
    async def down(*_args, **_kwargs):
        raise ConnectionError("redis unavailable")

    monkeypatch.setattr(task_queue, "enqueue", down)

    assert _invite(client, admin_token, org.id).status_code == 201


def test_non_admin_cannot_invite(client: TestClient, org) -> None:
    token = mint_token(roles=["teamMember"], org_id=org.id)
    assert _invite(client, token, org.id).status_code == 403


def test_invite_rejects_admin_role_and_unknown_org(
    client: TestClient, admin_token: str, org
) -> None:
    assert _invite(client, admin_token, org.id, role="admin").status_code == 422
    resp = _invite(client, admin_token, "00000000-0000-4000-8000-000000000000")
    assert resp.status_code == 404


def test_validate_returns_invitee_and_org(client: TestClient, admin_token: str, org) -> None:
    token = _token_for(_invite(client, admin_token, org.id).json()["id"])

    resp = client.get("/invitations/validate", params={"token": token})

    assert resp.status_code == 200
    assert resp.json() == {
        "name": "Ada Lovelace",
        "email": "ada@example.com",
        "role": "client",
        "organization": {
            "id": str(org.id),
            "name": "Acme Media",
            "company": "Acme Media LLC",
        },
    }


def test_validate_unknown_token_is_400(client: TestClient) -> None:
    resp = client.get("/invitations/validate", params={"token": "nope"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Invalid or expired invitation token"


def test_validate_expired_token_flips_status(
    client: TestClient, admin_token: str, org, clock: FakeClock
) -> None:
    body = _invite(client, admin_token, org.id).json()
    token = _token_for(body["id"])

    clock.now = clock.now + timedelta(days=8)
    resp = client.get("/invitations/validate", params={"token": token})

    assert resp.status_code == 400
    stored = asyncio.run(IN_MEMORY.invitations.get_by_token(token))
    assert stored is not None
    assert stored.status == "expired"


def test_complete_registers_user_and_logs_in(
    client: TestClient, admin_token: str, org
) -> None:
    body = _invite(client, admin_token, org.id, role="teamMember").json()
    token = _token_for(body["id"])

    resp = client.post(
        "/invitations/complete",
        json={"token": token, "password": "long-password", "phone": "555-0100"},
    )

    assert resp.status_code == 201
    payload = resp.json()
    assert payload["user"]["email"] == "ada@example.com"
    assert payload["user"]["role"] == "teamMember"
    assert payload["user"]["organization_id"] == str(org.id)
    claims = token_service.decode_access_token(payload["access_token"])
    assert claims["org_id"] == str(org.id)

    # Token is spent.
    assert client.get("/invitations/validate", params={"token": token}).status_code == 400
    again = client.post(
        "/invitations/complete", json={"token": token, "password": "long-password"}
    )
    assert again.status_code == 400

    login = client.post(
        "/auth/login", json={"email": "ada@example.com", "password": "long-password"}
    )
    assert login.status_code == 200


def test_complete_rejects_short_password(client: TestClient, admin_token: str, org) -> None:
    token = _token_for(_invite(client, admin_token, org.id).json()["id"])
    resp = client.post("/invitations/complete", json={"token": token, "password": "short"})
    assert resp.status_code == 422


def test_complete_rejects_existing_account(
    client: TestClient, admin_token: str, org
) -> None:
    create_test_user(email="ada@example.com", org=org)
    token = _token_for(_invite(client, admin_token, org.id).json()["id"])

    resp = client.post(
        "/invitations/complete", json={"token": token, "password": "long-password"}
    )

    assert resp.status_code == 409


def test_complete_expired_token_is_400(
    client: TestClient, admin_token: str, org, clock: FakeClock
) -> None:
    token = _token_for(_invite(client, admin_token, org.id).json()["id"])
    clock.now = clock.now + timedelta(days=7)

    resp = client.post(
        "/invitations/complete", json={"token": token, "password": "long-password"}
    )
    assert resp.status_code == 400


def test_pending_list_for_org(
    client: TestClient, admin_token: str, org, clock: FakeClock
) -> None:
    first = _invite(client, admin_token, org.id, email="one@example.com").json()
    _invite(client, admin_token, org.id, email="two@example.com")
    done = _token_for(first["id"])
    client.post("/invitations/complete", json={"token": done, "password": "long-password"})

    resp = client.get(f"/organizations/{org.id}/invitations", headers=auth(admin_token))

    assert resp.status_code == 200
    assert [i["email"] for i in resp.json()] == ["two@example.com"]
