"""
Shared fixtures: a fresh in-memory SQLite database per test, the app wired
to it through a ``get_db`` override, and small factories for users,
profiles and questions.
"""

import itertools
import os

# Settings are read at import time, so the environment goes first.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["ALLOWED_ORIGINS"] = "http://localhost:3000"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["DEBUG"] = "false"
os.environ["ADMIN_EMAIL"] = ""
os.environ["ADMIN_PASSWORD"] = ""
os.environ["PUBLIC_BASE_URL"] = "http://localhost:3000"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

import portal.models.db_models  # noqa: F401 (registers tables on Base.metadata)
from portal.core.database import Base, get_db, make_engine
from portal.core.user_store import register_user
from portal.main import app

API = "/api/v1"
ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "admin123"
DEFAULT_PASSWORD = "secret123"


# ---------------------------------------------------------------------------
# Database & client
# ---------------------------------------------------------------------------

@pytest.fixture
async def engine():
    engine = make_engine("sqlite+aiosqlite://")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Users & tokens
# ---------------------------------------------------------------------------

@pytest.fixture
def create_user(session_factory):
    async def _create(email, role="agent", password=DEFAULT_PASSWORD, name=None, approved=True):
        async with session_factory() as session:
            return await register_user(
                name or email.split("@")[0].title(),
                email,
                password,
                role,
                session,
                is_approved=approved,
            )

    return _create


@pytest.fixture
def login(client):
    async def _login(email, password=DEFAULT_PASSWORD):
        response = await client.post(
            f"{API}/auth/login", data={"username": email, "password": password}
        )
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    return _login


@pytest.fixture
async def admin_headers(create_user, login):
    await create_user(ADMIN_EMAIL, role="admin", password=ADMIN_PASSWORD, name="Site Admin")
    return await login(ADMIN_EMAIL, ADMIN_PASSWORD)


# ---------------------------------------------------------------------------
# Profiles, questions, submissions
# ---------------------------------------------------------------------------

@pytest.fixture
def create_agent(client, admin_headers):
    counter = itertools.count(1)

    async def _create(**overrides):
        n = next(counter)
        payload = {
            "name": f"Agent {n}",
            "email": f"agent{n}@example.com",
            "phone": "5550000000",
            "location": "Main Street 1",
            "branch": "Downtown",
            **overrides,
        }
        response = await client.post(f"{API}/agents", json=payload, headers=admin_headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def create_employee(client, admin_headers):
    counter = itertools.count(1)

    async def _create(**overrides):
        n = next(counter)
        payload = {
            "name": f"Employee {n}",
            "email": f"employee{n}@example.com",
            "phone": "5551111111",
            "department": "Claims",
            "position": "Officer",
            "branch": "Downtown",
            **overrides,
        }
        response = await client.post(f"{API}/employees", json=payload, headers=admin_headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def create_question(client, admin_headers):
    async def _create(kind="agent", text=None, **overrides):
        payload = {
            "question_text": text or f"How satisfied are you with this {kind}?",
            "question_type": kind,
            **overrides,
        }
        response = await client.post(f"{API}/questions", json=payload, headers=admin_headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def submit_ratings(client):
    async def _submit(kind, profile_id, answers):
        payload = {
            "rater_name": "Carol Customer",
            "rater_email": "carol@example.com",
            "rater_phone": "5552222222",
            f"{kind}_id": profile_id,
            "ratings": [
                {"question_id": question_id, "rating_value": value}
                for question_id, value in answers
            ],
        }
        return await client.post(f"{API}/ratings", json=payload)

    return _submit


@pytest.fixture
def file_complaint(client):
    async def _file(**overrides):
        payload = {
            "complainant_name": "Dave Customer",
            "complainant_email": "dave@example.com",
            "complainant_phone": "5553333333",
            "complaint_type": "service",
            "subject": "Slow claim handling",
            "description": "My claim has been open for three weeks.",
            **overrides,
        }
        response = await client.post(f"{API}/complaints", json=payload)
        assert response.status_code == 201, response.text
        return response.json()

    return _file
