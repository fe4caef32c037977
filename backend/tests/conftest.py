"""
Pinboard Backend: Test Configuration (conftest.py)
===================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every test gets a fresh in-memory SQLite database (aiosqlite with a
       StaticPool, so all sessions share one connection), a fake geocoder
       and a temporary image directory. Nothing touches the network.

Fixture Hierarchy:
    engine → session_factory → db_session
                             → make_user
    fake_geocoder, file_service, position_service, user_service
    test_client: HTTPX AsyncClient on a fresh app with dependency overrides
"""

import os
import tempfile

# Settings are read at import time; these must be set before any
# `pinboard` import below.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_KEY"] = "test-signing-key-that-is-long-enough-for-hs256"
os.environ["GOOGLE_API_KEY"] = "test-key-not-real"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="pinboard_test_")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RETRY_MAX_ATTEMPTS"] = "1"
os.environ["BCRYPT_ROUNDS"] = "4"

from typing import Dict, List  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from pinboard.database import Base, dispose_engine, get_db_session  # noqa: E402
from pinboard.exceptions import AddressNotFoundError  # noqa: E402
from pinboard.models.user import User  # noqa: E402
from pinboard.services.auth_service import auth_service  # noqa: E402
from pinboard.services.file_service import FileService, get_file_service  # noqa: E402
from pinboard.services.geocoding_base import Coordinates, GeocodingService  # noqa: E402
from pinboard.services.geocoding_service import get_geocoding_service  # noqa: E402
from pinboard.services.position_service import (  # noqa: E402
    PositionService,
    get_position_service,
)
from pinboard.services.user_service import UserService, get_user_service  # noqa: E402


# ══════════════════════════════════════════════════════════════════════════
# Fakes
# ══════════════════════════════════════════════════════════════════════════

class FakeGeocoder(GeocodingService):
    """
    In-memory geocoder.

    Known addresses resolve to fixed coordinates; unknown ones raise
    AddressNotFoundError. Every lookup is recorded in `calls`.
    """

    def __init__(self):
        self.locations: Dict[str, Coordinates] = {
            "20 W 34th St, New York, NY 10001": Coordinates(lat=40.7484405, lng=-73.9878584),
            "Pariser Platz, 10117 Berlin": Coordinates(lat=52.5162746, lng=13.3777041),
        }
        self.calls: List[str] = []
        self.healthy = True

    async def get_coordinates(self, address: str) -> Coordinates:
        self.calls.append(address)
        if address not in self.locations:
            raise AddressNotFoundError(address)
        return self.locations[address]

    async def health_check(self) -> bool:
        return self.healthy


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    """A session for service-level tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(session_factory):
    """
    Insert a user directly and return it.

    Usage:
        alice = await make_user("alice@example.com")
    """

    async def _make_user(
        email: str = "alice@example.com",
        name: str = "Alice",
        password: str = "secret123",
    ) -> User:
        user = User(
            name=name,
            email=email,
            password=await auth_service.hash_password(password),
            image="uploads/images/avatar.png",
            positions=[],
        )
        async with session_factory() as session:
            session.add(user)
            await session.commit()
        return user

    return _make_user


# ══════════════════════════════════════════════════════════════════════════
# Services
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def fake_geocoder():
    return FakeGeocoder()


@pytest.fixture
def position_service(fake_geocoder):
    return PositionService(geocoder=fake_geocoder)


@pytest.fixture
def user_service():
    return UserService(auth=auth_service)


@pytest.fixture
def temp_storage(tmp_path):
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def file_service(temp_storage):
    return FileService(storage_root=temp_storage)


@pytest.fixture
def auth_header():
    """
    Build an Authorization header carrying a valid token for a user.

    Usage:
        headers = auth_header(alice)
    """

    def _auth_header(user: User) -> Dict[str, str]:
        token = auth_service.create_access_token(user.id, user.email)
        return {"Authorization": f"Bearer {token}"}

    return _auth_header


# ══════════════════════════════════════════════════════════════════════════
# Sample uploads
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def sample_image_bytes():
    """
    Minimal JPEG bytes: SOI marker + JFIF header + EOI marker.

    Not a decodable photograph, but it carries the JPEG signature that the
    upload header check looks for.
    """
    return (
        b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00"
        b"\xff\xd9"
    )


@pytest.fixture
def image_upload(sample_image_bytes):
    """The `files=` argument for a multipart request with one JPEG image."""
    return {"image": ("place.jpg", sample_image_bytes, "image/jpeg")}


# ══════════════════════════════════════════════════════════════════════════
# HTTP client
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(session_factory, position_service, user_service, file_service, fake_geocoder):
    """
    HTTPX AsyncClient talking to a fresh app through ASGITransport.

    The request session, services and file storage are replaced with the
    per-test instances above.
    """
    from pinboard.main import create_app

    app = create_app()

    async def override_get_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_get_db_session
    app.dependency_overrides[get_position_service] = lambda: position_service
    app.dependency_overrides[get_user_service] = lambda: user_service
    app.dependency_overrides[get_file_service] = lambda: file_service
    app.dependency_overrides[get_geocoding_service] = lambda: fake_geocoder

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    # /health queries the module-level engine; drop its pooled connection
    # before the next test runs on a new event loop.
    await dispose_engine()
