"""
Shared pytest fixtures — in‑memory SQLite, fake collaborators, FastAPI TestClient.
"""
import os
import tempfile

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("DATA_DIR", os.path.join(tempfile.gettempdir(), "promo_capture_test"))
os.environ.setdefault("API_KEY", "test-api-key")
os.environ.setdefault("LLM_API_KEY", "test-llm-key")
os.environ.setdefault("AZURE_STORAGE_CONNECTION_STRING", "UseDevelopmentStorage=true")
os.environ.setdefault("AZURE_CONTAINER_NAME", "test-container")
os.environ.setdefault("SMS_AUTH_KEY", "test-sms-key")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from promo_capture.config import settings  # noqa: E402
from promo_capture.database import Base, get_db  # noqa: E402
from promo_capture.main import app  # noqa: E402
from promo_capture.models import (  # noqa: E402
    ProjectModel,
    ProjectPromoterModel,
    PromoterModel,
)
from promo_capture.pipeline.extractor import get_extractor  # noqa: E402
from promo_capture.services.auth import create_session_token  # noqa: E402
from promo_capture.services.sms import get_sms_gateway  # noqa: E402
from promo_capture.services.storage import BlobStore, get_blob_store  # noqa: E402

# StaticPool ensures all connections share the same in-memory database
_ENGINE = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
_Session = sessionmaker(autocommit=False, autoflush=False, bind=_ENGINE)


class FakeExtractor:
    """Answers by image content; unknown images extract to nothing."""

    def __init__(self):
        self.results: dict[bytes, dict] = {}
        self.calls: list[tuple[bytes, str | None]] = []

    def extract(self, image, prompt=None, mime_type=None):
        self.calls.append((image, prompt))
        return dict(self.results.get(image, {}))


class FakeBlobStore(BlobStore):
    def __init__(self):
        self.blobs: dict[str, bytes] = {}
        self.deleted: list[str] = []

    def upload(self, name, data, content_type="image/png"):
        self.blobs[name] = data
        return f"https://blobs.test/{name}"

    def delete(self, name):
        self.deleted.append(name)
        self.blobs.pop(name, None)


class FakeSmsGateway:
    def __init__(self):
        self.sent: list[tuple[str, str]] = []

    def send(self, phone, message):
        self.sent.append((phone, message))
        return {"type": "success"}


@pytest.fixture(autouse=True)
def _reset_tables():
    Base.metadata.create_all(bind=_ENGINE)
    yield
    Base.metadata.drop_all(bind=_ENGINE)


@pytest.fixture()
def db():
    session = _Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def extractor():
    return FakeExtractor()


@pytest.fixture()
def blob_store():
    return FakeBlobStore()


@pytest.fixture()
def sms():
    return FakeSmsGateway()


@pytest.fixture()
def client(db, extractor, blob_store, sms):
    def _override():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = _override
    app.dependency_overrides[get_extractor] = lambda: extractor
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    app.dependency_overrides[get_sms_gateway] = lambda: sms
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def promoter(db):
    db.add(ProjectModel(id="p1", name="Launch week"))
    row = PromoterModel(id="promoter-1", name="Asha", phone="9000000001", status="ACTIVE")
    db.add(row)
    db.add(ProjectPromoterModel(id="pp-1", project_id="p1", promoter_id=row.id))
    db.commit()
    row.session_token = create_session_token(row)
    db.commit()
    return row


@pytest.fixture()
def auth_headers(promoter):
    return {
        "Authorization": f"Bearer {promoter.session_token}",
        "x-app-version": settings.MIN_APP_VERSION,
        "x-api-key": settings.API_KEY,
    }
