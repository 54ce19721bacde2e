"""Pytest fixtures and configuration."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable, Generator
from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.dentacare.core.config import get_settings
from src.dentacare.core.security import create_access_token, hash_password
from src.dentacare.db.session import Base, get_db
from src.dentacare.main import app
from src.dentacare.models.appointment import Treatment
from src.dentacare.models.clinic import Clinic
from src.dentacare.models.enums import UserRole
from src.dentacare.models.patient import Patient
from src.dentacare.models.user import User
from src.dentacare.services.blob_storage_service import reset_blob_storage_service

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

# Test database URL (in-memory SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_PASSWORD = "correct-horse-battery"


@pytest.fixture(autouse=True)
def test_settings(monkeypatch: pytest.MonkeyPatch, tmp_path) -> Generator[None, None, None]:
    """Point blob storage at a temp dir and switch off background jobs."""
    monkeypatch.setenv("BLOB_STORAGE_PATH", str(tmp_path / "blobs"))
    monkeypatch.setenv("HOUSEKEEPING_INTERVAL_SECONDS", "0")
    monkeypatch.setenv("GOOGLE_API_KEY", "")
    monkeypatch.setenv("APP_ENV", "development")
    get_settings.cache_clear()
    reset_blob_storage_service()
    yield
    get_settings.cache_clear()
    reset_blob_storage_service()


@pytest_asyncio.fixture(scope="function")
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session_factory = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    async with async_session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def client(test_engine: AsyncEngine) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client with overridden dependencies."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async_session_factory = async_sessionmaker(
            test_engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autocommit=False,
            autoflush=False,
        )
        async with async_session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Tenants and accounts
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def clinic(db_session: AsyncSession) -> Clinic:
    clinic = Clinic(name="Smile Dental - Main", phone="+15550100", subscription_package="growth", is_active=True)
    db_session.add(clinic)
    await db_session.commit()
    return clinic


@pytest_asyncio.fixture
async def branch(db_session: AsyncSession, clinic: Clinic) -> Clinic:
    branch = Clinic(name="Smile Dental - Riverside", parent_clinic_id=clinic.id, is_active=True)
    db_session.add(branch)
    await db_session.commit()
    return branch


@pytest_asyncio.fixture
async def other_clinic(db_session: AsyncSession) -> Clinic:
    other = Clinic(name="Bright Teeth", is_active=True)
    db_session.add(other)
    await db_session.commit()
    return other


async def _make_user(db: AsyncSession, email: str, role: UserRole, clinic_id: int | None, name: str) -> User:
    user = User(
        email=email,
        full_name=name,
        password_hash=hash_password(TEST_PASSWORD, iterations=1_000),
        role=role.value,
        clinic_id=clinic_id,
        is_active=True,
    )
    db.add(user)
    await db.commit()
    return user


@pytest_asyncio.fixture
async def super_admin(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "root@dentacare-platform.com", UserRole.SUPER_ADMIN, None, "Platform Admin")


@pytest_asyncio.fixture
async def clinic_admin(db_session: AsyncSession, clinic: Clinic) -> User:
    return await _make_user(db_session, "admin@smiledental.com", UserRole.CLINIC_ADMIN, clinic.id, "Clinic Admin")


@pytest_asyncio.fixture
async def dentist(db_session: AsyncSession, clinic: Clinic) -> User:
    return await _make_user(db_session, "dr.rao@smiledental.com", UserRole.DENTIST, clinic.id, "Dr. Rao")


@pytest_asyncio.fixture
async def staff(db_session: AsyncSession, clinic: Clinic) -> User:
    return await _make_user(db_session, "desk@smiledental.com", UserRole.RECEPTIONIST, clinic.id, "Front Desk")


@pytest_asyncio.fixture
async def outsider(db_session: AsyncSession, other_clinic: Clinic) -> User:
    return await _make_user(db_session, "desk@brightteeth.com", UserRole.STAFF, other_clinic.id, "Other Desk")


@pytest_asyncio.fixture
async def branch_admin(db_session: AsyncSession, branch: Clinic) -> User:
    return await _make_user(db_session, "admin@riverside.smiledental.com", UserRole.CLINIC_ADMIN, branch.id, "Branch Admin")


@pytest_asyncio.fixture
async def branch_staff(db_session: AsyncSession, branch: Clinic) -> User:
    return await _make_user(db_session, "desk@riverside.smiledental.com", UserRole.STAFF, branch.id, "Branch Desk")


@pytest_asyncio.fixture
async def patient_user(db_session: AsyncSession, clinic: Clinic) -> User:
    return await _make_user(db_session, "jane@mailbox.com", UserRole.PATIENT, clinic.id, "Jane Doe")


@pytest_asyncio.fixture
async def patient(db_session: AsyncSession, clinic: Clinic, patient_user: User) -> Patient:
    record = Patient(
        clinic_id=clinic.id,
        full_name="Jane Doe",
        contact_number="+15550111",
        email="jane@mailbox.com",
        user_id=patient_user.id,
        is_active=True,
    )
    db_session.add(record)
    await db_session.commit()
    return record


@pytest_asyncio.fixture
async def treatment(db_session: AsyncSession, clinic: Clinic) -> Treatment:
    cleaning = Treatment(
        clinic_id=clinic.id,
        name="Scaling and polishing",
        default_price=80.0,
        default_duration_minutes=45,
        is_active=True,
    )
    db_session.add(cleaning)
    await db_session.commit()
    return cleaning


@pytest.fixture
def headers_for() -> Callable[[User], dict[str, str]]:
    """Build Authorization headers for a user."""

    def _headers(user: User) -> dict[str, str]:
        token, _ = create_access_token(
            user_id=user.id,
            role=user.role,
            clinic_id=user.clinic_id,
            settings=get_settings(),
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers


# ---------------------------------------------------------------------------
# External services
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_gemini() -> Generator[MagicMock, None, None]:
    """Mock Gemini service to prevent actual LLM generation calls."""
    mock_instance = MagicMock()
    mock_instance.is_configured = True
    mock_instance.generate_structured = AsyncMock(return_value={"mocked_key": "mocked_value"})

    with patch("src.dentacare.services.ai_assistant_service.get_gemini_service", return_value=mock_instance):
        yield mock_instance
