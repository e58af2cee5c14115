from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from taskboard.core.config import Settings
from taskboard.db import Base
from taskboard.db.deps import get_sessionmaker
from taskboard.db.session import build_engine, build_session_factory
from taskboard.services import passwords
from taskboard.services.local_storage import LocalStorage
from taskboard.services.persistence.factory import build_backend


@pytest.fixture(autouse=True)
def fast_hashing(monkeypatch):
    monkeypatch.setattr(passwords.settings, "bcrypt_rounds", 4)


@pytest.fixture()
def session_factory(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'taskboard.db'}")
    Base.metadata.create_all(bind=engine)
    yield build_session_factory(engine)
    engine.dispose()


@pytest.fixture()
def storage(tmp_path):
    return LocalStorage(tmp_path / "storage.json")


@pytest.fixture(params=["local", "sql"])
def backend(request, storage, session_factory):
    """(session provider, persistence adapter) for each backend."""
    config = Settings(persistence_backend=request.param)
    return build_backend(config, session_factory=session_factory, storage=storage)


@pytest.fixture()
def client(session_factory):
    from taskboard.main import app

    app.dependency_overrides[get_sessionmaker] = lambda: session_factory
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def sign_up(client: TestClient, email: str = "ann@example.com", name: str = "Ann") -> dict:
    response = client.post("/auth/signup", json={"email": email, "password": "s3cret", "name": name})
    assert response.status_code == 201, response.text
    body = response.json()
    return {"Authorization": f"Bearer {body['access_token']}", "user_id": body["user"]["id"]}
