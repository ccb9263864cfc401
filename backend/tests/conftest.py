from typing import Any, Optional

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from xo_finance.core.auth import CurrentUser, get_current_user, get_optional_user
from xo_finance.core.config import get_settings
from xo_finance.core.dependencies import get_db
from xo_finance.main import app
from xo_finance.models.documents import Base
from xo_finance.storage.document_store import SqlDocumentStore


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    # Some tests mutate env vars and clear the settings cache. Ensure we don't leak
    # a cached Settings instance (e.g. with a different JWT secret) across tests.
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine)
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def store(session_factory):
    db = session_factory()
    yield SqlDocumentStore(db)
    db.close()


class ApiHarness:
    """TestClient with an in-memory database and a switchable signed-in user."""

    def __init__(self, session_factory) -> None:
        self.session_factory = session_factory
        self.user: Optional[CurrentUser] = None

        def override_get_db():
            db = session_factory()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_current_user] = self._current_user
        app.dependency_overrides[get_optional_user] = self._optional_user
        self.client = TestClient(app)

    def _current_user(self) -> CurrentUser:
        if self.user is None:
            raise HTTPException(401, "Autenticação necessária")
        return self.user

    def _optional_user(self) -> Optional[CurrentUser]:
        return self.user

    def login(self, uid: str = "user-1", role: str = "user", email: Optional[str] = None, name: Optional[str] = None):
        self.user = CurrentUser(id=uid, role=role, email=email or f"{uid}@example.com", name=name)
        return self.user

    def logout(self) -> None:
        self.user = None

    def seed(self, collection: str, record: dict[str, Any], doc_id: Optional[str] = None) -> str:
        db = self.session_factory()
        try:
            record_id = SqlDocumentStore(db).write(collection, record, doc_id=doc_id)
            db.commit()
            return record_id
        finally:
            db.close()

    def fetch(self, collection: str, doc_id: str) -> Optional[dict]:
        db = self.session_factory()
        try:
            return SqlDocumentStore(db).get(collection, doc_id)
        finally:
            db.close()

    def fetch_all(self, collection: str) -> list[dict]:
        db = self.session_factory()
        try:
            return SqlDocumentStore(db).read(collection)
        finally:
            db.close()


@pytest.fixture
def api(session_factory):
    harness = ApiHarness(session_factory)
    yield harness
    harness.client.close()
    app.dependency_overrides.clear()
