"""Demo: bootstrap an admin, onboard a client and spend its project quota.

Runs in-process against the in-memory repositories using FastAPI's
TestClient, so no database or Redis is needed.

Run with:
    APP_ENV=dev ADMIN_SETUP_KEY=demo-setup-key-123 python scripts/demo_onboarding_flow.py
"""

from __future__ import annotations

import asyncio

from fastapi.testclient import TestClient

from portal.core.config import SETTINGS
from portal.main import app
from portal.services.task_queue import INVITATION_EMAIL_QUEUE, task_queue
from portal.worker import process_task

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "demo-admin-pass"
CLIENT_PASSWORD = "demo-client-pass"


def main() -> None:
    client = TestClient(app)

    # ── Step 1: bootstrap the first admin ───────────────────────────
    r = client.post(
        "/auth/admin-setup",
        json={
            "name": "Demo Admin",
            "email": ADMIN_EMAIL,
            "password": ADMIN_PASSWORD,
            "setup_key": SETTINGS.admin_setup_key or "",
        },
    )
    print(f"1. POST /auth/admin-setup      → {r.status_code}")
    if r.status_code != 201:
        print("   Set ADMIN_SETUP_KEY (12+ chars) to run this demo.")
        return
    admin = {"Authorization": f"Bearer {r.json()['access_token']}"}

    # ── Step 2: create a client organization ────────────────────────
    r = client.post(
        "/organizations",
        json={
            "name": "Demo Creator",
            "company": "Demo Creator LLC",
            "email": "hello@demo-creator.test",
            "plan": "creator",
        },
        headers=admin,
    )
    org = r.json()
    print(
        f"2. POST /organizations         → {r.status_code}  "
        f"code={org['code']} quota={org['monthly_quota']}"
    )

    # ── Step 3: invite a client user ────────────────────────────────
    r = client.post(
        "/invitations",
        json={
            "email": "client@demo-creator.test",
            "name": "Casey Client",
            "role": "client",
            "organization_id": org["id"],
        },
        headers=admin,
    )
    invite_link = r.json()["invite_link"]
    token = invite_link.split("token=", 1)[1]
    print(f"3. POST /invitations           → {r.status_code}  link={invite_link[:48]}…")

    # ── Step 4: drain the email queue the way the worker would ──────
    task = asyncio.run(task_queue.dequeue(INVITATION_EMAIL_QUEUE))
    if task is not None:
        ok = asyncio.run(process_task(task))
        print(f"4. worker: invitation email    → {'handled' if ok else 'failed'}")

    # ── Step 5: validate and complete the invitation ────────────────
    r = client.get("/invitations/validate", params={"token": token})
    print(f"5. GET  /invitations/validate  → {r.status_code}  {r.json()['organization']}")

    r = client.post(
        "/invitations/complete", json={"token": token, "password": CLIENT_PASSWORD}
    )
    user = r.json()["user"]
    print(f"6. POST /invitations/complete  → {r.status_code}  role={user['role']}")

    r = client.get("/invitations/validate", params={"token": token})
    print(f"7. GET  /invitations/validate  → {r.status_code}  (token spent)")

    # ── Step 8: create projects until the monthly quota bites ───────
    created = 0
    while True:
        r = client.post(
            "/projects",
            json={
                "title": f"Short #{created + 1}",
                "organization_id": org["id"],
                "status": "not_started",
            },
            headers=admin,
        )
        if r.status_code != 201:
            break
        created += 1
    print(f"8. POST /projects x{created}          → then {r.status_code}  {r.json()['detail']}")

    r = client.get(f"/organizations/{org['id']}/quota", headers=admin)
    print(f"9. GET  /organizations/…/quota → {r.status_code}  {r.json()}")

    print("\nAll steps completed.")


if __name__ == "__main__":
    main()
