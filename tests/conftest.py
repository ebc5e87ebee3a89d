"""
Pytest configuration and fixtures for testing
"""
import os
import tempfile

# Settings are read at import time, so test values go in before the app is imported
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key-for-pytest-only")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_placeholder")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_placeholder")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="house-renting-uploads-"))

from datetime import datetime, timedelta

import httpx
import jwt
import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from auth_utils import ALGORITHM, create_jwt, hash_password
from config import settings
from database import Base, get_db
import database_models  # noqa: F401
from database_models import Property, User
from main import app

# In-memory SQLite shared by every session of one test
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_PASSWORD = "TestPassword123!"


@pytest.fixture
async def test_engine():
    """
    Fresh in-memory database per test.

    StaticPool keeps a single connection so every session sees the same data.
    """
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest.fixture
async def test_db(session_factory):
    """Session for tests that exercise repositories and services directly."""
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@pytest.fixture
async def async_client(session_factory):
    """httpx client bound to the app with get_db pointed at the test database."""
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_jwt(str(user.id))}"}
    return _headers


@pytest.fixture
def expired_jwt():
    """Builds a correctly signed token whose expiry is already in the past."""
    def _token(user_id: str, expired_seconds_ago: int = 1) -> str:
        claims = {"sub": user_id, "exp": datetime.utcnow() - timedelta(seconds=expired_seconds_ago)}
        return jwt.encode(claims, settings.jwt_secret_key, algorithm=ALGORITHM)
    return _token


@pytest.fixture
def create_user(session_factory):
    """
    Factory inserting a user directly.

    subscribed=True gives an active subscription expiring in 20 days.
    """
    counter = {"n": 0}

    async def _create(
        role: str = "student",
        subscribed: bool = True,
        id_proof_document: str | None = None,
        **overrides,
    ) -> User:
        counter["n"] += 1
        data = {
            "name": f"User {counter['n']}",
            "email": f"user{counter['n']}@example.com",
            "phone": "+15550000000",
            "role": role,
            "hashed_password": hash_password(TEST_PASSWORD),
            "id_proof_document": id_proof_document,
        }
        if subscribed:
            data["subscription_status"] = "active"
            data["subscription_expiry_date"] = datetime.utcnow() + timedelta(days=20)
        data.update(overrides)
        async with session_factory() as session:
            user = User(**data)
            session.add(user)
            await session.commit()
            await session.refresh(user)
            return user

    return _create


@pytest.fixture
def create_property(session_factory):
    """Factory inserting a listing directly for an owner."""
    async def _create(owner: User, **overrides) -> Property:
        data = {
            "owner_id": owner.id,
            "title": "Two bedroom flat",
            "description": "Close to campus",
            "house_number": "12B",
            "street": "Oxford Street",
            "city": "Accra",
            "region": "Greater Accra",
            "longitude": -0.1870,
            "latitude": 5.6037,
            "rent_price": 1200.0,
            "photos": [],
            "videos": [],
            "amenities": [],
            "property_type": "apartment",
            "bedrooms": 2,
            "bathrooms": 1.0,
            "availability": "available",
        }
        data.update(overrides)
        async with session_factory() as session:
            prop = Property(**data)
            session.add(prop)
            await session.commit()
            await session.refresh(prop)
            return prop

    return _create


@pytest.fixture
def failing_commit(monkeypatch):
    """Calling the returned function makes every later session commit fail."""
    def arm():
        async def commit(self):
            raise OperationalError("COMMIT", {}, Exception("database is unavailable"))
        monkeypatch.setattr(AsyncSession, "commit", commit)
    return arm
