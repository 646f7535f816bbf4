"""
Pytest configuration and fixtures.

Both databases are replaced with in-memory SQLite engines through
FastAPI dependency overrides. Environment variables are set before the
application is imported so settings load without a .env file.
"""
import hashlib
import hmac
import os
import time
from datetime import date
from typing import Any, AsyncGenerator, Callable

os.environ["API_KEY"] = "test-api-key"
os.environ["SECRET_KEY"] = "test-jwt-secret"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_fake_key_for_testing"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_fake_secret"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["LICENSE_DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "test"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.config import settings
from app.core.constants import FineStatus, UserRole
from app.core.database import aget_db, aget_license_db
from app.core.security import create_access_token, hash_password
from app.main import app
from app.models import Base, Driver, Fine, LicenseBase, PoliceDivision

API_KEY = "test-api-key"
DRIVER_PASSWORD = "driver-pass"
DIVISION_PASSWORD = "division-pass"

# bcrypt is slow on purpose; hash once per test run
DRIVER_PASSWORD_HASH = hash_password(DRIVER_PASSWORD)
DIVISION_PASSWORD_HASH = hash_password(DIVISION_PASSWORD)


async def _memory_sessionmaker(metadata) -> Any:
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    return engine, async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_factory() -> AsyncGenerator[async_sessionmaker, Any]:
    """Session factory on the operational database."""
    engine, factory = await _memory_sessionmaker(Base.metadata)
    yield factory
    await engine.dispose()


@pytest_asyncio.fixture
async def license_factory() -> AsyncGenerator[async_sessionmaker, Any]:
    """Session factory on the license registry."""
    engine, factory = await _memory_sessionmaker(LicenseBase.metadata)
    yield factory
    await engine.dispose()


@pytest_asyncio.fixture
async def client(
    db_factory: async_sessionmaker, license_factory: async_sessionmaker
) -> AsyncGenerator[AsyncClient, Any]:
    """HTTP client wired to the in-memory databases."""

    async def override_db():
        async with db_factory() as session:
            yield session

    async def override_license_db():
        async with license_factory() as session:
            yield session

    app.dependency_overrides[aget_db] = override_db
    app.dependency_overrides[aget_license_db] = override_license_db

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def qr_dir(tmp_path, monkeypatch) -> str:
    path = str(tmp_path / "qr_codes")
    monkeypatch.setattr(settings, "QR_CODE_DIR", path)
    return path


@pytest.fixture
def seed(db_factory: async_sessionmaker) -> Callable:
    """Persist ORM objects in their own committed session."""

    async def _seed(*objects):
        async with db_factory() as session:
            session.add_all(objects)
            await session.commit()
        return objects if len(objects) > 1 else objects[0]

    return _seed


@pytest.fixture
def seed_license(license_factory: async_sessionmaker) -> Callable:
    async def _seed(*objects):
        async with license_factory() as session:
            session.add_all(objects)
            await session.commit()
        return objects

    return _seed


@pytest_asyncio.fixture
async def division(seed: Callable) -> PoliceDivision:
    return await seed(PoliceDivision(
        division_id="D001",
        division_name="Colombo Central",
        email="central@police.lk",
        location="Colombo 01",
        password=DIVISION_PASSWORD_HASH,
    ))


@pytest_asyncio.fixture
async def driver(seed: Callable, division: PoliceDivision) -> Driver:
    return await seed(Driver(
        license_number="B1234567",
        nic_number="199012345678",
        division_id=division.division_id,
        surname="Perera",
        firstname="Kamal",
        date_of_birth=date(1990, 4, 12),
        username="kamal",
        password=DRIVER_PASSWORD_HASH,
        qr_code="qr_codes/B1234567.png",
        profile_picture="profiles/B1234567.jpg",
    ))


@pytest.fixture
def driver_token(driver: Driver) -> str:
    return create_access_token(driver.driver_id, UserRole.DRIVER.value)


@pytest.fixture
def auth_headers(driver_token: str) -> dict:
    return {"Authorization": f"Bearer {driver_token}"}


@pytest.fixture
def make_fine(seed: Callable, driver: Driver) -> Callable:
    async def _make_fine(**overrides) -> Fine:
        values = {
            "driver_id": driver.driver_id,
            "division_id": driver.division_id,
            "amount": 50.0,
            "description": "Speeding",
            "category": "speed",
            "status": FineStatus.NOT_PAID,
            "date": date(2024, 1, 25),
            "lat": 6.9271,
            "lon": 79.8612,
        }
        values.update(overrides)
        return await seed(Fine(**values))

    return _make_fine


def stripe_signature(payload: bytes, secret: str = "whsec_test_fake_secret", timestamp: int = None) -> str:
    """Stripe-Signature header for `payload`, computed the way Stripe signs webhooks."""
    timestamp = timestamp or int(time.time())
    signed_payload = f"{timestamp}.".encode() + payload
    signature = hmac.new(secret.encode(), signed_payload, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"
