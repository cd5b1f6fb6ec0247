API = "/api/v1"


async def test_resolve_scanned_link(client, create_agent):
    agent = await create_agent()
    response = await client.post(
        f"{API}/qr/resolve", json={"payload": f"http://localhost:3000/rate/agent/{agent['id']}"}
    )
    assert response.status_code == 200
    assert response.json() == {
        "kind": "agent",
        "id": agent["id"],
        "rate_path": f"/rate/agent/{agent['id']}",
    }


async def test_resolve_rejects_foreign_payloads(client):
    for payload in ("", "https://evil.example/phish", "/rate/agent/01", "/rate/boss/1"):
        response = await client.post(f"{API}/qr/resolve", json={"payload": payload})
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid code"


async def test_downloaded_qr_resolves_to_its_profile(client, admin_headers, create_employee):
    employee = await create_employee()
    # The image encodes the deep link built from PUBLIC_BASE_URL
    png = await client.get(f"{API}/employees/{employee['id']}/qr", headers=admin_headers)
    assert png.status_code == 200

    response = await client.post(
        f"{API}/qr/resolve", json={"payload": f"http://localhost:3000/rate/employee/{employee['id']}"}
    )
    assert response.json()["kind"] == "employee"
    assert response.json()["id"] == employee["id"]


async def test_rating_form(client, create_agent, create_question):
    agent = await create_agent(name="Tom Agent")
    second = await create_question("agent", "Was the agent on time?", order_index=2)
    first = await create_question("agent", "Was the agent polite?", order_index=1)
    await create_question("agent", "Retired agent question", is_active=False)
    await create_question("employee", "Was the clerk helpful?")

    response = await client.get(f"{API}/rate/agent/{agent['id']}")
    assert response.status_code == 200
    data = response.json()
    assert data["profile"]["name"] == "Tom Agent"
    assert data["profile"]["total_ratings"] == 0
    assert [q["id"] for q in data["questions"]] == [first["id"], second["id"]]


async def test_rating_form_unknown_profile(client):
    assert (await client.get(f"{API}/rate/employee/999")).status_code == 404
    assert (await client.get(f"{API}/rate/manager/1")).status_code == 400


async def test_oversized_ids_are_rejected_before_lookup(client):
    oversized = "99999999999999999999"
    response = await client.post(f"{API}/qr/resolve", json={"payload": f"http://x/rate/agent/{oversized}"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid code"

    assert (await client.get(f"{API}/rate/agent/{oversized}")).status_code == 400
    assert (await client.get(f"{API}/agents/{oversized}")).status_code == 400
    assert (await client.get(f"{API}/rate/employee/0")).status_code == 400


async def test_search_by_name(client, create_agent, create_employee):
    await create_agent(name="Alice Walker")
    await create_agent(name="Alicia Keys")
    await create_agent(name="Bob Stone")
    await create_employee(name="Alice Clerk")

    response = await client.get(f"{API}/search", params={"q": "ali"})
    assert response.status_code == 200
    assert [p["name"] for p in response.json()] == ["Alice Walker", "Alicia Keys"]

    employees = await client.get(f"{API}/search", params={"q": "alice", "type": "employee"})
    [only] = employees.json()
    assert only["kind"] == "employee"
    assert only["name"] == "Alice Clerk"


async def test_empty_search_returns_nothing(client, create_agent):
    await create_agent()
    response = await client.get(f"{API}/search", params={"q": "   "})
    assert response.status_code == 200
    assert response.json() == []


async def test_search_wildcards_match_literally(client, create_agent):
    await create_agent(name="Alice Walker")
    await create_agent(name="Team_Lead Ops")

    assert (await client.get(f"{API}/search", params={"q": "%"})).json() == []
    underscored = await client.get(f"{API}/search", params={"q": "_"})
    assert [p["name"] for p in underscored.json()] == ["Team_Lead Ops"]


async def test_search_includes_rating_figures(client, create_agent, create_question, submit_ratings):
    agent = await create_agent(name="Uma Rated")
    question = await create_question("agent")
    await submit_ratings("agent", agent["id"], [(question["id"], 4)])
    await submit_ratings("agent", agent["id"], [(question["id"], 5)])

    [result] = (await client.get(f"{API}/search", params={"q": "uma"})).json()
    assert result["total_ratings"] == 2
    assert result["average_rating"] == 4.5


async def test_nearby_agents(client, admin_headers, create_agent):
    async def online_agent(name, lat=None, lng=None, online=True):
        agent = await create_agent(name=name, latitude=lat, longitude=lng)
        if online:
            await client.put(f"{API}/agents/{agent['id']}", json={"is_online": True}, headers=admin_headers)
        return agent

    far_corner = await online_agent("Midtown Agent", 40.75, -73.99)
    next_door = await online_agent("Next Door Agent", 40.7130, -74.0050)
    await online_agent("Offline Agent", 40.7128, -74.0060, online=False)
    await online_agent("Upstate Agent", 41.5, -74.0)
    await online_agent("Nowhere Agent")

    response = await client.get(
        f"{API}/agents/nearby", params={"lat": 40.7128, "lng": -74.0060, "radius": 10}
    )
    assert response.status_code == 200
    results = response.json()
    assert [r["id"] for r in results] == [next_door["id"], far_corner["id"]]
    assert results[0]["distance_km"] < 1
    assert 3 < results[1]["distance_km"] < 6
    assert all(r["is_online"] for r in results)


async def test_nearby_agents_across_antimeridian(client, admin_headers, create_agent):
    agent = await create_agent(name="Dateline Agent", latitude=0.0, longitude=179.99)
    await client.put(f"{API}/agents/{agent['id']}", json={"is_online": True}, headers=admin_headers)

    response = await client.get(f"{API}/agents/nearby", params={"lat": 0.0, "lng": -179.99, "radius": 10})
    assert response.status_code == 200
    [result] = response.json()
    assert result["id"] == agent["id"]
    assert result["distance_km"] < 3


async def test_nearby_requires_coordinates(client):
    response = await client.get(f"{API}/agents/nearby", params={"lat": 100, "lng": 0})
    assert response.status_code == 400
