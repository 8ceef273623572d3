import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from famledger.api.deps import get_db
from famledger.core.config import settings
from famledger.db.base import Base
from famledger.db.session import enable_sqlite_foreign_keys
from famledger.main import app
from famledger.models.family import Family
from famledger.models.member import MemberRole
from famledger.services.family_service import add_member, load_family, seed_if_empty


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch):
    monkeypatch.setattr(settings, "LEDGER_RETRY_BACKOFF", 0.0)


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    enable_sqlite_foreign_keys(eng)
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_family():
    def _make(session, family_id="F1", admin_name="Admin"):
        session.add(Family(id=family_id, name=family_id))
        session.commit()
        seed_if_empty(session, family_id=family_id, admin_name=admin_name)
        return load_family(session, family_id)
    return _make


@pytest.fixture
def family(db, make_family):
    return make_family(db)


@pytest.fixture
def admin(family):
    return family.members[0]


@pytest.fixture
def kid(db, family, admin):
    return add_member(db, family_id=family.id, actor_id=admin.id, name="Kid", role=MemberRole.STANDARD)


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(client):
    client.post("/auth/signup", json={"email": "parent@example.com", "password": "secret123", "display_name": "Admin"})
    resp = client.post("/auth/token", data={"username": "parent@example.com", "password": "secret123"})
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}
