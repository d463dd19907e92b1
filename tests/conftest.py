import os
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import NullPool

# Set test settings BEFORE importing any app modules so nothing points at a real backend
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["PUBLIC_DATABASE_URL"] = ""
os.environ["ENVIRONMENT"] = "development"
os.environ["SESSION_SECRET_KEY"] = "test-session-secret"
os.environ["ADMIN_USERNAME"] = "admin"
os.environ["ADMIN_PASSWORD"] = "correct-horse"
os.environ["ADMIN_PASSWORD_HASH"] = ""
os.environ["CLOUDINARY_CLOUD_NAME"] = "demo"
os.environ["CLOUDINARY_API_KEY"] = "test-key"
os.environ["CLOUDINARY_API_SECRET"] = "test-secret"
os.environ["PHOTO_SOURCE_MODE"] = "upload"

from photoflow.main import app
from photoflow.backend import BackendClient
from photoflow.config import settings
from photoflow.database import Base
from photoflow.dependencies import get_admin_client, get_public_client
from photoflow.errors import BackendError
from photoflow.models import Photo
from photoflow.services.cloudinary_service import CloudinaryStorage
from photoflow.utils.jwt_auth import create_session_token
from photoflow.utils.rate_limit import limiter
from photoflow.utils.view_cache import view_cache


class FakeStorage(CloudinaryStorage):
    """Cloudinary storage with the network calls replaced by an in-memory bucket."""

    def __init__(self):
        super().__init__(
            cloud_name="demo",
            api_key="test-key",
            api_secret="test-secret",
            bucket="photoflow_photos",
        )
        self.objects = {}
        self.uploaded = []
        self.removed = []
        self.fail_upload = False
        self.fail_remove = False
        self.upload_url_override: Optional[str] = None

    def url_for(self, path: str) -> str:
        return f"{self.public_prefix}v1700000000/{self.bucket}/{path}"

    async def upload(self, data: bytes, path: str, content_type: Optional[str] = None) -> str:
        if self.fail_upload:
            raise BackendError("simulated upload failure")
        self.objects[path] = data
        self.uploaded.append(path)
        if self.upload_url_override is not None:
            return self.upload_url_override
        return self.url_for(path)

    async def remove(self, paths: Iterable[str]) -> None:
        paths = list(paths)
        if self.fail_remove:
            raise BackendError("simulated remove failure")
        for path in paths:
            self.objects.pop(path, None)
            self.removed.append(path)


@pytest.fixture()
def db_path(tmp_path):
    return tmp_path / "photoflow_test.db"


@pytest.fixture()
def sync_engine(db_path):
    engine = create_engine(f"sqlite:///{db_path}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def session_factory(db_path, sync_engine):
    # NullPool: every connection is opened on the event loop that uses it
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture()
def storage():
    return FakeStorage()


@pytest.fixture()
def seed_photos(sync_engine):
    """Insert photos directly; returns them with ids populated."""
    def _seed(*rows: dict):
        base_time = datetime(2024, 1, 1, tzinfo=timezone.utc)
        photos = []
        with Session(sync_engine) as session:
            for index, row in enumerate(rows):
                values = {
                    "src": f"https://example.com/{index}.jpg",
                    "display_order": index + 1,
                    "created_at": base_time + timedelta(minutes=index),
                    "updated_at": base_time + timedelta(minutes=index),
                }
                values.update(row)
                photo = Photo(**values)
                session.add(photo)
                photos.append(photo)
            session.commit()
            for photo in photos:
                session.refresh(photo)
            session.expunge_all()
        return photos
    return _seed


@pytest.fixture()
def fetch_photo(sync_engine):
    def _fetch(photo_id):
        with Session(sync_engine) as session:
            photo = session.get(Photo, photo_id)
            if photo is not None:
                session.expunge(photo)
            return photo
    return _fetch


@pytest.fixture()
def count_photos(sync_engine):
    def _count() -> int:
        with Session(sync_engine) as session:
            return session.query(Photo).count()
    return _count


@pytest_asyncio.fixture()
async def admin_client(session_factory, storage):
    async with session_factory() as session:
        yield BackendClient(session, storage=storage, privileged=True)


@pytest_asyncio.fixture()
async def public_client(session_factory):
    async with session_factory() as session:
        yield BackendClient(session, privileged=False)


@pytest.fixture(autouse=True)
def isolate_globals(monkeypatch):
    view_cache.clear()
    limiter.enabled = False
    monkeypatch.setattr(settings, "PHOTO_SOURCE_MODE", "upload")
    yield
    view_cache.clear()


@pytest.fixture()
def client(session_factory, storage):
    async def override_admin_client():
        async with session_factory() as session:
            yield BackendClient(session, storage=storage, privileged=True)

    async def override_public_client():
        async with session_factory() as session:
            yield BackendClient(session, privileged=False)

    app.dependency_overrides[get_admin_client] = override_admin_client
    app.dependency_overrides[get_public_client] = override_public_client
    try:
        with TestClient(app, follow_redirects=False) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.pop(get_admin_client, None)
        app.dependency_overrides.pop(get_public_client, None)


@pytest.fixture()
def auth_client(client):
    client.cookies.set(settings.SESSION_COOKIE_NAME, create_session_token())
    return client
