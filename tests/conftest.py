"""
Pytest configuration and fixtures for HKI dashboard tests.
"""

import os

# Settings are read at import time; point them at a throwaway database first
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ.pop("SUPER_ADMIN_EMAIL", None)

from collections.abc import AsyncGenerator  # noqa: E402
from dataclasses import dataclass, field  # noqa: E402
from datetime import datetime, timedelta, timezone  # noqa: E402
from typing import Any, Optional  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from hkidash.core.config import settings  # noqa: E402
from hkidash.core.exceptions import StorageError  # noqa: E402
from hkidash.core.security import create_access_token, hash_password  # noqa: E402
from hkidash.db.base import Base  # noqa: E402
from hkidash.db.session import get_db  # noqa: E402
from hkidash.main import app  # noqa: E402
from hkidash.models import (  # noqa: E402
    Applicant,
    FilingRecord,
    FilingStatus,
    IPClass,
    IPType,
    ProposingAgency,
    UserProfile,
)
from hkidash.models.user import UserRole  # noqa: E402
from hkidash.services.storage_service import get_storage_service  # noqa: E402

API = settings.api_v1_prefix


class FakeStorage:
    """
    In-memory stand-in for StorageService.

    Records every call. ``fail_uploads`` makes uploads raise,
    ``fail_deletes`` lists keys whose removal fails.
    """

    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.calls: list[tuple[str, Any]] = []
        self.fail_uploads = False
        self.fail_deletes: set[str] = set()

    def upload_bytes(self, data: bytes, object_key: str, content_type: Optional[str] = None) -> str:
        self.calls.append(("upload", object_key))
        if self.fail_uploads:
            raise StorageError("Gagal mengunggah sertifikat.")
        self.objects[object_key] = data
        return object_key

    def delete_file(self, object_key: str) -> None:
        self.calls.append(("delete", object_key))
        if object_key in self.fail_deletes:
            raise StorageError(f"Gagal menghapus berkas {object_key}.")
        self.objects.pop(object_key, None)

    def delete_files(self, object_keys: list[str]) -> list[str]:
        self.calls.append(("delete_many", list(object_keys)))
        failed = [key for key in object_keys if key in self.fail_deletes]
        for key in object_keys:
            if key not in self.fail_deletes:
                self.objects.pop(key, None)
        return failed

    def generate_presigned_url(self, object_key: str, expiration_seconds: int = 60) -> str:
        self.calls.append(("sign", object_key))
        return f"https://storage.example.com/{object_key}?expires={expiration_seconds}"

    def ensure_bucket(self) -> None:
        pass


@dataclass
class ReferenceData:
    """Seeded lookup rows, keyed by name."""

    statuses: dict[str, FilingStatus] = field(default_factory=dict)
    types: dict[str, IPType] = field(default_factory=dict)
    agencies: dict[str, ProposingAgency] = field(default_factory=dict)
    classes: dict[int, IPClass] = field(default_factory=dict)


# =============================================================================
# Database
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """In-memory SQLite engine shared by every connection of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession, storage: FakeStorage) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for testing."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage_service] = lambda: storage

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# =============================================================================
# Users
# =============================================================================


async def _make_user(db: AsyncSession, email: str, role: UserRole, password: str) -> UserProfile:
    user = UserProfile(
        email=email,
        hashed_password=hash_password(password),
        full_name=email.split("@")[0].title(),
        role=role.value,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> UserProfile:
    return await _make_user(db_session, "staff@example.com", UserRole.USER, "staffpass123")


@pytest_asyncio.fixture
async def test_admin(db_session: AsyncSession) -> UserProfile:
    return await _make_user(db_session, "admin@example.com", UserRole.ADMIN, "adminpass123")


@pytest.fixture
def auth_headers(test_user: UserProfile) -> dict[str, str]:
    """Bearer headers for a regular staff account."""
    token = create_access_token(test_user.id, role=test_user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(test_admin: UserProfile) -> dict[str, str]:
    """Bearer headers for an admin account."""
    token = create_access_token(test_admin.id, role=test_admin.role)
    return {"Authorization": f"Bearer {token}"}


# =============================================================================
# Reference data and records
# =============================================================================


@pytest_asyncio.fixture
async def reference_data(db_session: AsyncSession) -> ReferenceData:
    """Statuses as the migration seeds them, plus a few types, agencies and classes."""
    data = ReferenceData()
    for name in ("Diterima", "Didaftar", "Dalam Proses", "Ditolak"):
        data.statuses[name] = FilingStatus(name=name)
    for name in ("Merek", "Hak Cipta"):
        data.types[name] = IPType(name=name)
    for name in ("Dinas Perdagangan", "Dinas Koperasi"):
        data.agencies[name] = ProposingAgency(name=name)
    data.classes[25] = IPClass(id=25, name="Pakaian, alas kaki", kind="Goods")
    data.classes[43] = IPClass(id=43, name="Jasa penyediaan makanan", kind="Services")

    db_session.add_all(
        [
            *data.statuses.values(),
            *data.types.values(),
            *data.agencies.values(),
            *data.classes.values(),
        ]
    )
    await db_session.commit()
    return data


@pytest_asyncio.fixture
async def make_record(db_session: AsyncSession, reference_data: ReferenceData):
    """
    Factory inserting a record straight through the ORM.

    Records created later get a later ``created_at`` so ordering is
    deterministic.
    """
    applicants: dict[str, Applicant] = {}
    base_time = datetime(2024, 1, 1, tzinfo=timezone.utc)
    counter = {"n": 0}

    async def _make(
        title: str,
        applicant: str = "Pemohon",
        year: Optional[int] = 2024,
        status: str = "Dalam Proses",
        ip_type: str = "Merek",
        agency: str = "Dinas Perdagangan",
        class_id: Optional[int] = None,
        certificate_path: Optional[str] = None,
        address: Optional[str] = None,
    ) -> FilingRecord:
        if applicant not in applicants:
            applicants[applicant] = Applicant(name=applicant, address=address)
            db_session.add(applicants[applicant])
            await db_session.flush()

        counter["n"] += 1
        record = FilingRecord(
            title=title,
            year=year,
            applicant_id=applicants[applicant].id,
            type_id=reference_data.types[ip_type].id,
            status_id=reference_data.statuses[status].id,
            agency_id=reference_data.agencies[agency].id,
            class_id=class_id,
            certificate_path=certificate_path,
            created_at=base_time + timedelta(minutes=counter["n"]),
        )
        db_session.add(record)
        await db_session.commit()
        return record

    return _make


@pytest_asyncio.fixture
async def seeded_records(make_record) -> list[FilingRecord]:
    """The two-record scenario: A by X in 2023 accepted, B by Y in 2024 rejected."""
    return [
        await make_record("A", applicant="X", year=2023, status="Diterima"),
        await make_record("B", applicant="Y", year=2024, status="Ditolak"),
    ]
