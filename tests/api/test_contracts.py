from __future__ import annotations

from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from tests.conftest import FakeClock, auth, create_test_org, mint_token


@pytest.fixture
def org():
    return create_test_org()


def _contract(client: TestClient, admin_token: str, org_id, **overrides) -> dict:
    body = {
        "organization_id": str(org_id),
        "title": "Q3 retainer",
        "package_type": "creator",
        "start_date": "2026-07-01",
        "value": 4800,
        "total_months": 3,
        "sync_call_day": 15,
    } | overrides
    return client.post("/contracts", json=body, headers=auth(admin_token))


def _video(client: TestClient, admin_token: str, contract_id: str) -> dict:
    resp = client.post(
        f"/contracts/{contract_id}/videos",
        json={"title": "Episode 1", "due_date": "2026-07-20"},
        headers=auth(admin_token),
    )
    assert resp.status_code == 201
    return resp.json()


def _advance(client: TestClient, admin_token: str, contract_id: str, video_id: str):
    return client.post(
        f"/contracts/{contract_id}/videos/{video_id}/advance", headers=auth(admin_token)
    )


def test_create_and_fetch_contract(client: TestClient, admin_token: str, org) -> None:
    resp = _contract(client, admin_token, org.id)
    assert resp.status_code == 201
    contract = resp.json()
    assert contract["status"] == "draft"
    assert contract["value"] == 4800

    resp = client.get(f"/contracts/{contract['id']}", headers=auth(admin_token))
    assert resp.status_code == 200
    assert resp.json()["videos"] == []


def test_contract_validation(client: TestClient, admin_token: str, org) -> None:
    assert _contract(client, admin_token, org.id, value=-1).status_code == 422
    assert _contract(client, admin_token, org.id, sync_call_day=32).status_code == 422
    assert _contract(client, admin_token, org.id, package_type="gold").status_code == 422
    resp = _contract(client, admin_token, "00000000-0000-4000-8000-000000000000")
    assert resp.status_code == 404


def test_contracts_are_admin_only(client: TestClient, org) -> None:
    token = mint_token(roles=["teamMember"], org_id=org.id)
    assert client.get("/contracts", headers=auth(token)).status_code == 403


def test_list_filters(client: TestClient, admin_token: str, org) -> None:
    other = create_test_org("Other Co")
    _contract(client, admin_token, org.id, status="active")
    _contract(client, admin_token, org.id)
    _contract(client, admin_token, other.id, status="active")

    resp = client.get(
        "/contracts",
        params={"organization_id": str(org.id), "status": "active"},
        headers=auth(admin_token),
    )
    assert len(resp.json()) == 1


def test_update_contract(client: TestClient, admin_token: str, org) -> None:
    contract = _contract(client, admin_token, org.id).json()
    resp = client.put(
        f"/contracts/{contract['id']}",
        json={"status": "signed"},
        headers=auth(admin_token),
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "signed"
    assert resp.json()["title"] == "Q3 retainer"

    resp = client.put(
        f"/contracts/{contract['id']}",
        json={"organization_id": "00000000-0000-4000-8000-000000000000"},
        headers=auth(admin_token),
    )
    assert resp.status_code == 404


def test_video_walks_through_stages(
    client: TestClient, admin_token: str, org, clock: FakeClock
) -> None:
    contract = _contract(client, admin_token, org.id).json()
    video = _video(client, admin_token, contract["id"])
    assert video["status"] == "planning"
    assert video["progress_percent"] == 17

    seen = []
    for _ in range(5):
        video = _advance(client, admin_token, contract["id"], video["id"]).json()
        seen.append(video["status"])

    assert seen == ["scripting", "production", "editing", "review", "completed"]
    assert video["progress_percent"] == 100
    assert datetime.fromisoformat(video["delivery_date"]) == clock.now

    resp = _advance(client, admin_token, contract["id"], video["id"])
    assert resp.status_code == 409


def test_revision_only_during_review(client: TestClient, admin_token: str, org) -> None:
    contract = _contract(client, admin_token, org.id).json()
    video = _video(client, admin_token, contract["id"])
    url = f"/contracts/{contract['id']}/videos/{video['id']}/revisions"

    resp = client.post(url, json={"feedback": "Too long"}, headers=auth(admin_token))
    assert resp.status_code == 409

    for _ in range(4):
        _advance(client, admin_token, contract["id"], video["id"])

    resp = client.post(url, json={"feedback": "Too long"}, headers=auth(admin_token))
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "editing"
    assert body["revision_count"] == 1
    assert body["feedback"] == ["Too long"]


def test_delete_contract_removes_videos(client: TestClient, admin_token: str, org) -> None:
    contract = _contract(client, admin_token, org.id).json()
    video = _video(client, admin_token, contract["id"])

    resp = client.delete(f"/contracts/{contract['id']}", headers=auth(admin_token))
    assert resp.status_code == 204

    assert client.get(f"/contracts/{contract['id']}", headers=auth(admin_token)).status_code == 404
    resp = _advance(client, admin_token, contract["id"], video["id"])
    assert resp.status_code == 404


def test_org_with_contract_cannot_be_deleted(
    client: TestClient, admin_token: str, org
) -> None:
    _contract(client, admin_token, org.id)
    resp = client.delete(f"/organizations/{org.id}", headers=auth(admin_token))
    assert resp.status_code == 409
    assert "contracts" in resp.json()["detail"]


def test_update_null_clears_terms(client: TestClient, admin_token: str, org) -> None:
    contract = _contract(client, admin_token, org.id, terms="Net 30").json()
    url = f"/contracts/{contract['id']}"

    resp = client.put(url, json={"terms": None}, headers=auth(admin_token))
    assert resp.status_code == 200
    assert resp.json()["terms"] is None

    resp = client.put(url, json={"value": None}, headers=auth(admin_token))
    assert resp.status_code == 422
