API = "/api/v1"


async def test_new_complaint_is_pending(file_complaint):
    complaint = await file_complaint(status="resolved", resolved_at="2026-01-01T00:00:00Z")
    assert complaint["status"] == "pending"
    assert complaint["resolved_at"] is None
    assert complaint["priority"] == "medium"
    assert complaint["agent_id"] is None
    assert complaint["employee_id"] is None


async def test_complaint_about_a_profile(create_employee, file_complaint):
    employee = await create_employee()
    complaint = await file_complaint(employee_id=employee["id"], priority="high")
    assert complaint["employee_id"] == employee["id"]
    assert complaint["priority"] == "high"


async def test_complaint_about_unknown_profile(client):
    response = await client.post(
        f"{API}/complaints",
        json={
            "complainant_name": "Dave Customer",
            "complainant_email": "dave@example.com",
            "complainant_phone": "5553333333",
            "complaint_type": "billing",
            "subject": "Wrong premium charged",
            "description": "I was billed twice this month.",
            "agent_id": 999,
        },
    )
    assert response.status_code == 404


async def test_invalid_complaint_lists_every_field(client):
    response = await client.post(f"{API}/complaints", json={"complainant_name": "x"})
    assert response.status_code == 400
    fields = {error["field"] for error in response.json()["errors"]}
    assert {
        "complainant_name",
        "complainant_email",
        "complainant_phone",
        "complaint_type",
        "subject",
        "description",
    } <= fields


async def test_status_transitions(client, admin_headers, file_complaint):
    complaint = await file_complaint()
    url = f"{API}/complaints/{complaint['id']}"

    resolved = await client.put(
        url, json={"status": "resolved", "resolution": "Refund issued"}, headers=admin_headers
    )
    assert resolved.status_code == 200
    assert resolved.json()["status"] == "resolved"
    assert resolved.json()["resolved_at"] is not None
    assert resolved.json()["resolution"] == "Refund issued"

    reopened = await client.put(url, json={"status": "pending"}, headers=admin_headers)
    assert reopened.json()["status"] == "pending"
    assert reopened.json()["resolved_at"] is None
    assert reopened.json()["resolution"] == "Refund issued"

    closed = await client.put(url, json={"status": "closed", "priority": "low"}, headers=admin_headers)
    assert closed.json()["status"] == "closed"
    assert closed.json()["priority"] == "low"
    assert closed.json()["resolved_at"] is None


async def test_resolution_can_be_cleared(client, admin_headers, file_complaint):
    complaint = await file_complaint()
    url = f"{API}/complaints/{complaint['id']}"
    await client.put(url, json={"resolution": "Called the customer"}, headers=admin_headers)

    cleared = await client.put(url, json={"resolution": None}, headers=admin_headers)
    assert cleared.json()["resolution"] is None


async def test_empty_update_is_invalid(client, admin_headers, file_complaint):
    complaint = await file_complaint()
    response = await client.put(f"{API}/complaints/{complaint['id']}", json={}, headers=admin_headers)
    assert response.status_code == 400


async def test_null_status_or_priority_is_invalid(client, admin_headers, file_complaint):
    complaint = await file_complaint()
    for field in ("status", "priority"):
        response = await client.put(
            f"{API}/complaints/{complaint['id']}", json={field: None}, headers=admin_headers
        )
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == field

    unchanged = await client.get(f"{API}/complaints/{complaint['id']}", headers=admin_headers)
    assert unchanged.json()["status"] == "pending"
    assert unchanged.json()["priority"] == "medium"


async def test_unknown_status_is_invalid(client, admin_headers, file_complaint):
    complaint = await file_complaint()
    response = await client.put(
        f"{API}/complaints/{complaint['id']}", json={"status": "escalated"}, headers=admin_headers
    )
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "status"


async def test_list_filters(client, admin_headers, file_complaint):
    await file_complaint(subject="Late payout on claim", complaint_type="claim", priority="urgent")
    await file_complaint(subject="Rude phone call", priority="low")
    billing = await file_complaint(subject="Double billing", complaint_type="billing")
    await client.put(
        f"{API}/complaints/{billing['id']}", json={"status": "in_progress"}, headers=admin_headers
    )

    async def total(**params):
        response = await client.get(f"{API}/complaints", params=params, headers=admin_headers)
        assert response.status_code == 200
        return response.json()["total"]

    assert await total() == 3
    assert await total(status="in_progress") == 1
    assert await total(priority="urgent") == 1
    assert await total(type="claim") == 1
    assert await total(search="billing") == 1
    assert await total(search="dave@example") == 3


async def test_newest_first(client, admin_headers, file_complaint):
    first = await file_complaint(subject="First complaint")
    second = await file_complaint(subject="Second complaint")
    response = await client.get(f"{API}/complaints", headers=admin_headers)
    ids = [item["id"] for item in response.json()["items"]]
    assert ids == [second["id"], first["id"]]


async def test_only_admin_updates_and_deletes(client, admin_headers, create_user, login, create_agent, file_complaint):
    user = await create_user("paul@example.com", role="agent")
    agent = await create_agent(user_id=user.id)
    complaint = await file_complaint(agent_id=agent["id"])
    staff = await login("paul@example.com")
    url = f"{API}/complaints/{complaint['id']}"

    assert (await client.put(url, json={"status": "closed"}, headers=staff)).status_code == 403
    assert (await client.delete(url, headers=staff)).status_code == 403
    assert (await client.delete(url, headers=admin_headers)).status_code == 200
    assert (await client.get(url, headers=admin_headers)).status_code == 404
