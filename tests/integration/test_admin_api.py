import csv
import io

API = "/api/v1"


async def test_dashboard_without_ratings(client, admin_headers, create_user):
    await create_user("pending@example.com", approved=False)
    response = await client.get(f"{API}/admin/dashboard", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["total_agents"] == 0
    assert data["total_ratings"] == 0
    assert data["average_rating"] is None
    assert data["pending_approvals"] == 1
    assert data["recent_ratings"] == []


async def test_dashboard_totals(
    client, admin_headers, create_agent, create_employee, create_question, submit_ratings, file_complaint
):
    agent = await create_agent()
    await create_employee()
    question = await create_question("agent")
    await submit_ratings("agent", agent["id"], [(question["id"], 5)])
    await submit_ratings("agent", agent["id"], [(question["id"], 2)])
    await file_complaint()

    data = (await client.get(f"{API}/admin/dashboard", headers=admin_headers)).json()
    assert data["total_agents"] == 1
    assert data["total_employees"] == 1
    assert data["total_ratings"] == 2
    assert data["total_complaints"] == 1
    assert data["average_rating"] == 3.5
    assert data["recent_ratings"][0]["question_text"] == question["question_text"]
    assert len(data["recent_complaints"]) == 1


async def test_dashboard_is_admin_only(client, create_user, login):
    await create_user("zoe@example.com", role="frontline")
    headers = await login("zoe@example.com")
    assert (await client.get(f"{API}/admin/dashboard", headers=headers)).status_code == 403
    assert (await client.get(f"{API}/admin/dashboard")).status_code == 401


async def test_list_users_filters(client, admin_headers, create_user):
    await create_user("amy@example.com", role="agent", approved=False)
    await create_user("ben@example.com", role="frontline")

    pending = await client.get(f"{API}/admin/users", params={"approved": False}, headers=admin_headers)
    assert [u["email"] for u in pending.json()["items"]] == ["amy@example.com"]

    frontline = await client.get(f"{API}/admin/users", params={"role": "frontline"}, headers=admin_headers)
    assert [u["email"] for u in frontline.json()["items"]] == ["ben@example.com"]

    everyone = await client.get(f"{API}/admin/users", headers=admin_headers)
    assert everyone.json()["total"] == 3


async def test_change_role(client, admin_headers, create_user):
    user = await create_user("cody@example.com", role="agent")
    response = await client.put(
        f"{API}/admin/users/{user.id}", json={"role": "frontline"}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["role"] == "frontline"


async def test_role_change_must_fit_linked_profile(client, admin_headers, create_user, create_agent, login):
    user = await create_user("dina@example.com", role="agent")
    agent = await create_agent(user_id=user.id)

    response = await client.put(
        f"{API}/admin/users/{user.id}", json={"role": "frontline"}, headers=admin_headers
    )
    assert response.status_code == 409
    assert f"agent {agent['id']}" in response.json()["detail"]

    headers = await login("dina@example.com")
    assert (await client.get(f"{API}/dashboard/stats", headers=headers)).status_code == 200

    unlink = await client.put(f"{API}/agents/{agent['id']}", json={"user_id": None}, headers=admin_headers)
    assert unlink.status_code == 200
    response = await client.put(
        f"{API}/admin/users/{user.id}", json={"role": "frontline"}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["role"] == "frontline"


async def test_admin_cannot_delete_self(client, admin_headers):
    me = (await client.get(f"{API}/auth/me", headers=admin_headers)).json()
    response = await client.delete(f"{API}/admin/users/{me['id']}", headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["errors"][0]["message"] == "Cannot delete your own account"


async def test_delete_unknown_user(client, admin_headers):
    response = await client.delete(f"{API}/admin/users/999", headers=admin_headers)
    assert response.status_code == 404


async def test_export_agents_csv(client, admin_headers, create_agent, create_question, submit_ratings):
    rated = await create_agent(name="Beth Rated", latitude=1.5, longitude=2.5)
    await create_agent(name="Adam Unrated")
    question = await create_question("agent")
    await submit_ratings("agent", rated["id"], [(question["id"], 4)])

    response = await client.get(f"{API}/admin/export/agents", headers=admin_headers)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert response.headers["content-disposition"].startswith('attachment; filename="agents-export-')
    assert response.headers["cache-control"] == "no-cache"

    rows = list(csv.reader(io.StringIO(response.text)))
    assert rows[0][:2] == ["ID", "Name"]
    assert rows[0][-3:] == ["Total Ratings", "Average Rating", "Created Date"]
    assert [row[1] for row in rows[1:]] == ["Adam Unrated", "Beth Rated"]
    assert rows[1][-3:-1] == ["0", ""]
    assert rows[2][-3:-1] == ["1", "4.00"]
    assert rows[2][rows[0].index("Online Status")] == "Offline"


async def test_export_employees_csv(client, admin_headers, create_employee):
    await create_employee(name="Carl Clerk")
    response = await client.get(f"{API}/admin/export/employees", headers=admin_headers)
    assert response.status_code == 200
    rows = list(csv.reader(io.StringIO(response.text)))
    assert "Department" in rows[0]
    assert rows[1][1] == "Carl Clerk"


async def test_export_unknown_kind(client, admin_headers):
    response = await client.get(f"{API}/admin/export/managers", headers=admin_headers)
    assert response.status_code == 400
