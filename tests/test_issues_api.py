"""Issue API tests — CRUD, the listing query language, policy modes."""

import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from bugtracker.main import create_app

from conftest import create_issue, create_project, make_settings, register


@pytest_asyncio.fixture()
async def project(client, alice):
    return await create_project(client, alice, "Web Store")


# ═══════════════════════════════════════════════════════════
# Create / read
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_create_issue_defaults_and_population(client, alice, bob, project):
    issue = await create_issue(
        client, alice, project["id"], "Cart total is wrong", assignedTo=bob["id"], dueDate="2026-12-01"
    )
    assert issue["status"] == "Open"
    assert issue["priority"] == "Medium"
    assert issue["type"] == "Bug"
    assert issue["description"] == ""
    assert issue["project"] == {"id": project["id"], "name": "Web Store"}
    assert issue["createdBy"]["username"] == "alice"
    assert issue["assignedTo"] == {"id": bob["id"], "username": "bob", "email": "bob@example.com"}
    assert issue["dueDate"] == "2026-12-01"

    r = await client.get(f"/api/v1/issues/{issue['id']}", headers=bob["headers"])
    assert r.status_code == 200
    assert r.json()["title"] == "Cart total is wrong"


@pytest.mark.asyncio
async def test_create_issue_unknown_project(client, alice):
    r = await client.post(
        "/api/v1/issues",
        json={"title": "Orphan issue", "project": str(uuid.uuid4())},
        headers=alice["headers"],
    )
    assert r.status_code == 404
    assert r.json()["error"]["message"] == "Project not found"


@pytest.mark.asyncio
async def test_create_issue_bad_assignee(client, alice, project):
    r = await client.post(
        "/api/v1/issues",
        json={"title": "Assign me", "project": project["id"], "assignedTo": "nobody"},
        headers=alice["headers"],
    )
    assert r.status_code == 400
    assert r.json()["error"]["message"] == "Invalid Assigned To User ID format"

    r = await client.post(
        "/api/v1/issues",
        json={"title": "Assign me", "project": project["id"], "assignedTo": str(uuid.uuid4())},
        headers=alice["headers"],
    )
    assert r.status_code == 404
    assert r.json()["error"]["message"] == "Assigned user not found"


@pytest.mark.asyncio
async def test_empty_assignee_means_unassigned(client, alice, bob, project):
    issue = await create_issue(client, alice, project["id"], assignedTo="")
    assert issue["assignedTo"] is None

    r = await client.put(f"/api/v1/issues/{issue['id']}", json={"assignedTo": bob["id"]}, headers=alice["headers"])
    assert r.json()["assignedTo"]["id"] == bob["id"]
    r = await client.put(f"/api/v1/issues/{issue['id']}", json={"assignedTo": ""}, headers=alice["headers"])
    assert r.status_code == 200
    assert r.json()["assignedTo"] is None


@pytest.mark.asyncio
async def test_create_issue_validation(client, alice, project):
    r = await client.post(
        "/api/v1/issues",
        json={"title": "Bug", "project": project["id"]},
        headers=alice["headers"],
    )
    assert r.status_code == 400
    assert r.json()["error"]["kind"] == "ValidationError"


@pytest.mark.asyncio
async def test_any_user_may_file_issue_in_parity_mode(client, alice, carol, project):
    """Historical behaviour: no membership check on issue creation."""
    issue = await create_issue(client, carol, project["id"], "Outsider report")
    assert issue["createdBy"]["username"] == "carol"


@pytest.mark.asyncio
async def test_get_issue_bad_ids(client, alice):
    r = await client.get("/api/v1/issues/xyz", headers=alice["headers"])
    assert r.status_code == 400
    assert r.json()["error"]["message"] == "Invalid Issue ID format"
    r = await client.get(f"/api/v1/issues/{uuid.uuid4()}", headers=alice["headers"])
    assert r.status_code == 404


# ═══════════════════════════════════════════════════════════
# Update
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_update_issue_fields(client, alice, bob, project):
    issue = await create_issue(client, alice, project["id"])
    r = await client.put(
        f"/api/v1/issues/{issue['id']}",
        json={"status": "In Progress", "priority": "High", "assignedTo": bob["id"]},
        headers=bob["headers"],
    )
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "In Progress"
    assert body["priority"] == "High"
    assert body["title"] == issue["title"]
    assert body["assignedTo"]["id"] == bob["id"]


@pytest.mark.asyncio
async def test_update_issue_unassign_and_clear_due_date(client, alice, bob, project):
    issue = await create_issue(client, alice, project["id"], assignedTo=bob["id"], dueDate="2026-11-30")

    # Absent keys leave the values alone.
    r = await client.put(f"/api/v1/issues/{issue['id']}", json={"type": "Task"}, headers=alice["headers"])
    assert r.json()["assignedTo"]["id"] == bob["id"]
    assert r.json()["dueDate"] == "2026-11-30"

    r = await client.put(
        f"/api/v1/issues/{issue['id']}",
        json={"assignedTo": None, "dueDate": None},
        headers=alice["headers"],
    )
    assert r.status_code == 200
    assert r.json()["assignedTo"] is None
    assert r.json()["dueDate"] is None


@pytest.mark.asyncio
async def test_update_issue_move_project(client, alice, project):
    other = await create_project(client, alice, "Back Office")
    issue = await create_issue(client, alice, project["id"])
    r = await client.put(
        f"/api/v1/issues/{issue['id']}", json={"project": other["id"]}, headers=alice["headers"]
    )
    assert r.status_code == 200
    assert r.json()["project"] == {"id": other["id"], "name": "Back Office"}


@pytest.mark.asyncio
async def test_update_issue_unknown_project(client, alice, project):
    issue = await create_issue(client, alice, project["id"])
    r = await client.put(
        f"/api/v1/issues/{issue['id']}", json={"project": str(uuid.uuid4())}, headers=alice["headers"]
    )
    assert r.status_code == 404


# ═══════════════════════════════════════════════════════════
# Delete
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_delete_issue_creator_only(client, alice, bob, project):
    issue = await create_issue(client, alice, project["id"])

    r = await client.delete(f"/api/v1/issues/{issue['id']}", headers=bob["headers"])
    assert r.status_code == 403
    assert r.json()["error"]["message"] == "Not authorized to delete this issue"

    r = await client.delete(f"/api/v1/issues/{issue['id']}", headers=alice["headers"])
    assert r.status_code == 200
    assert r.json()["msg"] == "Issue removed successfully"

    r = await client.get(f"/api/v1/issues/{issue['id']}", headers=alice["headers"])
    assert r.status_code == 404


# ═══════════════════════════════════════════════════════════
# Listing: filters, search, sort, pagination
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_list_defaults_newest_first(client, alice, project):
    first = await create_issue(client, alice, project["id"], "First reported bug")
    second = await create_issue(client, alice, project["id"], "Second reported bug")

    r = await client.get("/api/v1/issues", headers=alice["headers"])
    assert r.status_code == 200
    body = r.json()
    assert body["total"] == 2
    assert body["page"] == 1
    assert body["limit"] == 10
    assert [i["id"] for i in body["issues"]] == [second["id"], first["id"]]


@pytest.mark.asyncio
async def test_pagination(client, alice, project):
    for n in range(15):
        await create_issue(client, alice, project["id"], f"Paginated issue {n:02d}")

    r = await client.get("/api/v1/issues", params={"page": 2, "limit": 10}, headers=alice["headers"])
    body = r.json()
    assert body["total"] == 15
    assert body["page"] == 2
    assert len(body["issues"]) == 5

    r = await client.get("/api/v1/issues", params={"page": 3}, headers=alice["headers"])
    assert r.json()["issues"] == []
    assert r.json()["total"] == 15


@pytest.mark.asyncio
async def test_exact_filters(client, alice, bob, project):
    other = await create_project(client, alice, "Infra")
    await create_issue(client, alice, project["id"], "Slow search page", priority="High", type="Improvement")
    await create_issue(client, alice, project["id"], "Crash on logout", status="Closed", assignedTo=bob["id"])
    await create_issue(client, alice, other["id"], "Disk almost full", priority="High")

    async def titles(**params):
        r = await client.get("/api/v1/issues", params=params, headers=alice["headers"])
        assert r.status_code == 200
        return sorted(i["title"] for i in r.json()["issues"])

    assert await titles(project=project["id"]) == ["Crash on logout", "Slow search page"]
    assert await titles(priority="High") == ["Disk almost full", "Slow search page"]
    assert await titles(priority="High", project=other["id"]) == ["Disk almost full"]
    assert await titles(status="Closed") == ["Crash on logout"]
    assert await titles(type="Improvement") == ["Slow search page"]
    assert await titles(assignedTo=bob["id"]) == ["Crash on logout"]


@pytest.mark.asyncio
async def test_search_is_case_insensitive_on_title_or_description(client, alice, project):
    await create_issue(client, alice, project["id"], "Timeout in CHECKOUT flow")
    await create_issue(client, alice, project["id"], "Broken image", description="Only on the checkout page")
    await create_issue(client, alice, project["id"], "Typo in footer")

    r = await client.get("/api/v1/issues", params={"search": "checkout"}, headers=alice["headers"])
    assert r.json()["total"] == 2


@pytest.mark.asyncio
async def test_search_wildcards_are_literal(client, alice, project):
    await create_issue(client, alice, project["id"], "CPU pinned at 100% load")
    await create_issue(client, alice, project["id"], "Memory at 1000 MB")

    r = await client.get("/api/v1/issues", params={"search": "100%"}, headers=alice["headers"])
    assert [i["title"] for i in r.json()["issues"]] == ["CPU pinned at 100% load"]


@pytest.mark.asyncio
async def test_sort_by_title(client, alice, project):
    for title in ("Bravo issue", "Alpha issue", "Charlie issue"):
        await create_issue(client, alice, project["id"], title)

    r = await client.get("/api/v1/issues", params={"sortBy": "title"}, headers=alice["headers"])
    assert [i["title"] for i in r.json()["issues"]] == ["Alpha issue", "Bravo issue", "Charlie issue"]

    r = await client.get(
        "/api/v1/issues", params={"sortBy": "title", "order": "desc"}, headers=alice["headers"]
    )
    assert [i["title"] for i in r.json()["issues"]] == ["Charlie issue", "Bravo issue", "Alpha issue"]


@pytest.mark.asyncio
async def test_sort_by_unknown_field(client, alice):
    r = await client.get("/api/v1/issues", params={"sortBy": "password"}, headers=alice["headers"])
    assert r.status_code == 400
    assert r.json()["error"]["kind"] == "ValidationError"


@pytest.mark.asyncio
async def test_filter_by_missing_assignee(client, alice):
    r = await client.get(
        "/api/v1/issues", params={"assignedTo": str(uuid.uuid4())}, headers=alice["headers"]
    )
    assert r.status_code == 404
    assert r.json()["error"]["message"] == "Assigned user for filter not found"

    r = await client.get("/api/v1/issues", params={"project": "abc"}, headers=alice["headers"])
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_page_must_be_positive(client, alice):
    r = await client.get("/api/v1/issues", params={"page": 0}, headers=alice["headers"])
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_oversized_page_and_limit_rejected(client, alice):
    r = await client.get("/api/v1/issues", params={"limit": 10000000000000000000}, headers=alice["headers"])
    assert r.status_code == 400
    assert r.json()["error"]["kind"] == "ValidationError"

    r = await client.get("/api/v1/issues", params={"limit": 101}, headers=alice["headers"])
    assert r.status_code == 400

    r = await client.get("/api/v1/issues", params={"page": 10000000000000000000}, headers=alice["headers"])
    assert r.status_code == 400
    assert r.json()["error"]["kind"] == "ValidationError"

    r = await client.get("/api/v1/issues", params={"limit": 100}, headers=alice["headers"])
    assert r.status_code == 200
    assert r.json()["limit"] == 100


# ═══════════════════════════════════════════════════════════
# Strict policy mode
# ═══════════════════════════════════════════════════════════


@pytest_asyncio.fixture()
async def strict_client():
    app = create_app(make_settings(policy_mode="strict"))
    await app.state.db.create_all()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    await app.state.db.dispose()


@pytest.mark.asyncio
async def test_strict_mode_requires_membership(strict_client):
    owner = await register(strict_client, "owner")
    member = await register(strict_client, "member")
    outsider = await register(strict_client, "outsider")
    project = await create_project(strict_client, owner, members=[{"user": member["id"]}])

    issue = await create_issue(strict_client, member, project["id"], "Member may file")

    r = await strict_client.post(
        "/api/v1/issues",
        json={"title": "Outsider may not", "project": project["id"]},
        headers=outsider["headers"],
    )
    assert r.status_code == 403
    assert r.json()["error"]["message"] == "Not authorized to create issues in this project"

    r = await strict_client.put(
        f"/api/v1/issues/{issue['id']}", json={"status": "Closed"}, headers=outsider["headers"]
    )
    assert r.status_code == 403
    assert r.json()["error"]["message"] == "Not authorized to update this issue"
