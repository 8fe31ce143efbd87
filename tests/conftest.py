"""Shared fixtures and utilities for tests."""

import os

# Settings and the engine are built at import time, so the environment has
# to be in place before any application module is imported.
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key-min-32-chars-long-for-security")
os.environ.setdefault("JWT_ALGORITHM", "HS256")
os.environ.setdefault("ACCESS_TOKEN_EXPIRE_MINUTES", "60")
os.environ.setdefault("JSON_LOGS", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from itertools import count
from typing import Any, Optional

import httpx
import pytest
import pytest_asyncio

from core.security import create_access_token, hash_password
from database.engine import AsyncSessionLocal, Base, db_engine
from database import models  # noqa: F401
from database.models.jobs import ExperienceLevel, Job, JobCategory, JobType
from database.models.users import User, UserType

DEFAULT_PASSWORD = "SecurePass123!"

_sequence = count(1)


@pytest_asyncio.fixture
async def db():
    """Fresh schema for every test."""
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield db_engine
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await db_engine.dispose()


@pytest_asyncio.fixture
async def session(db):
    """Database session for service-level tests."""
    async with AsyncSessionLocal() as session:
        yield session


@pytest.fixture
def make_user(session):
    """Factory inserting a user with the default password."""

    async def factory(
        user_type: UserType = UserType.JOB_SEEKER,
        name: Optional[str] = None,
        email: Optional[str] = None,
        is_active: bool = True,
    ) -> User:
        n = next(_sequence)
        user = User(
            name=name or f"User {n}",
            email=email or f"user{n}@example.com",
            password_hash=hash_password(DEFAULT_PASSWORD),
            user_type=user_type,
            is_active=is_active,
        )
        session.add(user)
        await session.commit()
        await session.refresh(user)
        return user

    return factory


@pytest_asyncio.fixture
async def seeker(make_user):
    return await make_user(UserType.JOB_SEEKER, name="Jane Seeker")


@pytest_asyncio.fixture
async def recruiter(make_user):
    return await make_user(UserType.RECRUITER, name="Rita Recruiter")


@pytest_asyncio.fixture
async def other_recruiter(make_user):
    return await make_user(UserType.RECRUITER, name="Oscar Recruiter")


@pytest_asyncio.fixture
async def admin(make_user):
    return await make_user(UserType.ADMIN, name="Ada Admin")


@pytest.fixture
def make_job(session):
    """Factory inserting an active job owned by the given user."""

    async def factory(owner: User, **overrides: Any) -> Job:
        n = next(_sequence)
        fields = {
            "title": f"Backend Engineer {n}",
            "company": "Acme Corp",
            "description": "Build and operate the services behind our hiring platform. " * 2,
            "location": "Berlin, Germany",
            "job_type": JobType.FULL_TIME,
            "category": JobCategory.TECHNOLOGY,
            "experience_level": ExperienceLevel.MID,
            "tags": ["python"],
            "benefits": [],
            "is_active": True,
        }
        fields.update(overrides)
        job = Job(**fields, created_by=owner.id, applications_count=0, views_count=0)
        session.add(job)
        await session.commit()
        await session.refresh(job)
        return job

    return factory


@pytest.fixture
def job_payload():
    """Factory for a valid create-job request body."""

    def factory(**overrides: Any) -> dict[str, Any]:
        payload = {
            "title": "Senior Python Developer",
            "company": "Acme Corp",
            "description": "Design, build and run the APIs that power our job marketplace.",
            "location": "Remote, Europe",
            "type": "full-time",
            "category": "technology",
            "experience_level": "senior",
            "salary": {"min": 3000, "max": 5000, "currency": "EUR", "period": "monthly"},
            "tags": ["Python", " FastAPI ", "python"],
            "benefits": ["Remote work", "Learning budget"],
        }
        payload.update(overrides)
        return payload

    return factory


@pytest.fixture
def auth_headers():
    """Build a bearer header for a persisted user."""

    def factory(user: User) -> dict[str, str]:
        token = create_access_token(user.id, user.email, user.user_type.value)
        return {"Authorization": f"Bearer {token}"}

    return factory


@pytest.fixture
def app(db):
    """Application instance bound to the per-test schema."""
    from api.main import create_app

    return create_app()


@pytest_asyncio.fixture
async def client(app):
    """HTTP client driving the ASGI app in-process."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.fixture
def register(client):
    """Register through the API. Returns the token response plus auth headers."""

    async def factory(user_type: str = "job_seeker", name: Optional[str] = None) -> dict[str, Any]:
        n = next(_sequence)
        response = await client.post(
            "/api/v1/auth/register",
            json={
                "name": name or f"Member {n}",
                "email": f"member{n}@example.com",
                "password": DEFAULT_PASSWORD,
                "user_type": user_type,
            },
        )
        assert response.status_code == 201, response.text
        data = response.json()
        data["headers"] = {"Authorization": f"Bearer {data['access_token']}"}
        return data

    return factory
