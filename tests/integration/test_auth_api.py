from portal.core.user_store import ensure_admin

API = "/api/v1"


async def test_registration_waits_for_admin_approval(client, admin_headers):
    response = await client.post(
        f"{API}/auth/register",
        json={"name": "Bob", "email": "bob@x.com", "password": "secret123", "role": "agent"},
    )
    assert response.status_code == 201
    user = response.json()["user"]
    assert user["is_approved"] is False
    assert user["role"] == "agent"

    pending = await client.post(
        f"{API}/auth/login", data={"username": "bob@x.com", "password": "secret123"}
    )
    assert pending.status_code == 403
    assert pending.json()["detail"] == "Account pending approval"

    approve = await client.put(
        f"{API}/admin/users/{user['id']}", json={"is_approved": True}, headers=admin_headers
    )
    assert approve.status_code == 200
    assert approve.json()["is_approved"] is True

    approved = await client.post(
        f"{API}/auth/login", data={"username": "bob@x.com", "password": "secret123"}
    )
    assert approved.status_code == 200
    data = approved.json()
    assert data["token_type"] == "bearer"
    assert data["user"]["role"] == "agent"


async def test_wrong_password_is_unauthorized(client, create_user):
    await create_user("carol@example.com", role="frontline")
    response = await client.post(
        f"{API}/auth/login", data={"username": "carol@example.com", "password": "wrong-password"}
    )
    assert response.status_code == 401
    assert response.json()["detail"] == "Incorrect email or password"
    assert response.headers["www-authenticate"] == "Bearer"


async def test_unknown_email_is_unauthorized(client):
    response = await client.post(
        f"{API}/auth/login", data={"username": "nobody@example.com", "password": "secret123"}
    )
    assert response.status_code == 401


async def test_duplicate_email_conflicts(client, create_user):
    await create_user("dup@example.com")
    response = await client.post(
        f"{API}/auth/register",
        json={"name": "Dup", "email": "DUP@example.com", "password": "secret123", "role": "agent"},
    )
    assert response.status_code == 409
    assert response.json()["detail"] == "User with this email already exists"


async def test_register_reports_every_invalid_field(client):
    response = await client.post(
        f"{API}/auth/register",
        json={"name": "B", "email": "not-an-email", "password": "123", "role": "manager"},
    )
    assert response.status_code == 400
    fields = {error["field"] for error in response.json()["errors"]}
    assert {"name", "email", "password", "role"} <= fields


async def test_me(client, create_user, login):
    await create_user("erin@example.com", role="agent", name="Erin")
    headers = await login("erin@example.com")

    response = await client.get(f"{API}/auth/me", headers=headers)
    assert response.status_code == 200
    assert response.json()["email"] == "erin@example.com"
    assert response.json()["name"] == "Erin"


async def test_me_requires_token(client):
    response = await client.get(f"{API}/auth/me")
    assert response.status_code == 401

    response = await client.get(f"{API}/auth/me", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401


async def test_revoked_approval_takes_effect_immediately(client, admin_headers, create_user, login):
    user = await create_user("frank@example.com")
    headers = await login("frank@example.com")

    revoke = await client.put(
        f"{API}/admin/users/{user.id}", json={"is_approved": False}, headers=admin_headers
    )
    assert revoke.status_code == 200

    response = await client.get(f"{API}/auth/me", headers=headers)
    assert response.status_code == 401


async def test_change_password(client, create_user, login):
    await create_user("gina@example.com")
    headers = await login("gina@example.com")

    response = await client.post(
        f"{API}/auth/change-password",
        json={"current_password": "secret123", "new_password": "newpass456", "confirm_password": "newpass456"},
        headers=headers,
    )
    assert response.status_code == 200

    await login("gina@example.com", "newpass456")
    old = await client.post(
        f"{API}/auth/login", data={"username": "gina@example.com", "password": "secret123"}
    )
    assert old.status_code == 401


async def test_change_password_reports_both_mistakes(client, create_user, login):
    await create_user("hank@example.com")
    headers = await login("hank@example.com")

    response = await client.post(
        f"{API}/auth/change-password",
        json={"current_password": "wrong", "new_password": "newpass456", "confirm_password": "different"},
        headers=headers,
    )
    assert response.status_code == 400
    fields = {error["field"] for error in response.json()["errors"]}
    assert fields == {"current_password", "confirm_password"}


async def test_ensure_admin_approves_pending_admin(client, session_factory, create_user, login):
    await create_user("boss@example.com", role="admin", approved=False)
    async with session_factory() as session:
        admin = await ensure_admin("Boss", "boss@example.com", "unused-password", session)
    assert admin.role == "admin"
    assert admin.is_approved is True

    headers = await login("boss@example.com")
    me = await client.get(f"{API}/auth/me", headers=headers)
    assert me.json()["email"] == "boss@example.com"


async def test_ensure_admin_leaves_other_roles_alone(session_factory, create_user):
    await create_user("clerk@example.com", role="frontline", approved=False)
    async with session_factory() as session:
        user = await ensure_admin("Clerk", "clerk@example.com", "unused-password", session)
    assert user.role == "frontline"
    assert user.is_approved is False
