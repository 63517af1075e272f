"""
Fixtures compartidos para las pruebas.
Usan SQLite en memoria, sin requerir PostgreSQL.
"""
import os
import tempfile
from datetime import datetime, timedelta, timezone

# La configuración se lee al importar app.core.config
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["SQLALCHEMY_DATABASE_URI"] = "sqlite://"
os.environ["CONTENT_API_BASE_URL"] = ""
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="video-tracker-logs-"))

import pytest
from fastapi.testclient import TestClient

from app.core import security
from app.crud.crud_user import create_user
from app.db.models_registry import Base
from app.db.session import SessionLocal, engine
from app.main import app
from app.models.watch_record import WatchRecord
from app.services.content_service import get_content_service

NOW = datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc)


class FakeContentService:
    """Colaborador de contenido con fechas fijas por sesión."""

    def __init__(self, dates=None):
        self.dates = dates or {}
        self.calls = []

    def resolve_enrolment_date(self, session_id):
        self.calls.append(session_id)
        return self.dates.get(session_id)


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def content():
    return FakeContentService()


@pytest.fixture()
def client(db, content):
    app.dependency_overrides[get_content_service] = lambda: content
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def viewer(db):
    return create_user(db, username="viewer", email="viewer@example.com", password="viewer-pass")


@pytest.fixture()
def admin(db):
    return create_user(db, username="admin", email="admin@example.com", password="admin-pass", is_admin=True)


def auth_headers(user):
    return {"Authorization": f"Bearer {security.create_access_token(user.email)}"}


@pytest.fixture()
def viewer_headers(viewer):
    return auth_headers(viewer)


@pytest.fixture()
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture()
def make_record(db):
    """Inserta registros directamente para preparar escenarios."""
    def _make(user, **values):
        defaults = {
            "user_id": user.id,
            "video_id": "video-1",
            "session_id": "12",
            "session_name": "Inducción",
            "percent": 0,
            "status": 0,
            "current_duration": "00:00:00",
            "full_duration": "00:10:00",
            "assessment_taken": False,
            "last_watched": NOW,
        }
        defaults.update(values)
        record = WatchRecord(**defaults)
        db.add(record)
        db.commit()
        db.refresh(record)
        return record
    return _make
