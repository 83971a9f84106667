#!/usr/bin/env python3
"""
Bug tracker quickstart — the whole lifecycle in one script.

Registers two users → project with a member → issues → comments →
filtered listing → cleanup through the cascading delete.
Run with: python examples/quickstart.py

Requires: pip install httpx
Backend must be running: bugtracker serve (http://localhost:5000)
"""

import sys
import uuid

import httpx

BASE = "http://localhost:5000/api/v1"


def register(client: httpx.Client, name: str) -> dict:
    resp = client.post("/auth/register", json={
        "username": name,
        "email": f"{name}@example.com",
        "password": "demo-password-123",
    })
    assert resp.status_code == 201, f"Failed: {resp.text}"
    body = resp.json()
    return {**body["user"], "headers": {"Authorization": f"Bearer {body['token']}"}}


def main():
    run_id = uuid.uuid4().hex[:6]
    client = httpx.Client(base_url=BASE, timeout=10)

    # ── Health check ──────────────────────────────────────────────
    print("Checking backend health...")
    try:
        resp = client.get("/health")
    except httpx.ConnectError:
        print(f"Backend not reachable at {BASE}")
        sys.exit(1)
    health = resp.json()
    print(f"  Database: {'✓' if health['database'] == 'ok' else '✗'}")

    # ── Users ─────────────────────────────────────────────────────
    print("\n1. Registering users...")
    lead = register(client, f"lead-{run_id}")
    dev = register(client, f"dev-{run_id}")
    print(f"   {lead['username']} and {dev['username']}")

    # ── Project ───────────────────────────────────────────────────
    print("\n2. Creating project...")
    resp = client.post("/projects", headers=lead["headers"], json={
        "name": f"Storefront {run_id}",
        "description": "Customer-facing web shop",
        "priority": "High",
        "members": [{"user": dev["id"], "role": "developer"}],
    })
    assert resp.status_code == 201, f"Failed: {resp.text}"
    project = resp.json()
    for member in project["members"]:
        print(f"   Member: {member['user']['username']} ({member['role']})")

    # ── Issues ────────────────────────────────────────────────────
    print("\n3. Filing issues...")
    issues = []
    for title, priority in [
        ("Checkout button unresponsive", "Critical"),
        ("Product images load slowly", "Medium"),
        ("Typo in the footer", "Low"),
    ]:
        resp = client.post("/issues", headers=lead["headers"], json={
            "title": title,
            "project": project["id"],
            "priority": priority,
            "assignedTo": dev["id"],
        })
        assert resp.status_code == 201, f"Failed: {resp.text}"
        issues.append(resp.json())
        print(f"   [{priority}] {title}")

    # ── Work the first issue ──────────────────────────────────────
    print("\n4. Developer picks up the critical issue...")
    critical = issues[0]
    resp = client.put(f"/issues/{critical['id']}", headers=dev["headers"], json={"status": "In Progress"})
    assert resp.status_code == 200, f"Failed: {resp.text}"
    resp = client.post(
        f"/issues/{critical['id']}/comments",
        headers=dev["headers"],
        json={"content": "Event handler is detached after the cart refreshes."},
    )
    assert resp.status_code == 201, f"Failed: {resp.text}"
    print(f"   Status: {critical['status']} → In Progress, 1 comment")

    # ── Listing ───────────────────────────────────────────────────
    print("\n5. Issues in the project, sorted by title...")
    resp = client.get("/issues", headers=lead["headers"], params={
        "project": project["id"],
        "sortBy": "title",
        "order": "asc",
        "limit": 5,
    })
    page = resp.json()
    print(f"   {page['total']} total")
    for issue in page["issues"]:
        print(f"   - {issue['title']} [{issue['status']}] → {issue['assignedTo']['username']}")

    # ── Cleanup ───────────────────────────────────────────────────
    print("\n6. Deleting the project (issues and comments go with it)...")
    resp = client.delete(f"/projects/{project['id']}", headers=lead["headers"])
    assert resp.status_code == 200, f"Failed: {resp.text}"
    print(f"   {resp.json()['msg']}")

    resp = client.get(f"/issues/{critical['id']}", headers=lead["headers"])
    print(f"   Issue lookup afterwards: {resp.status_code}")


if __name__ == "__main__":
    main()
