from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

import vigil.models  # noqa: F401
from vigil.db import session as session_mod
from vigil.db.session import get_session
from vigil.main import app
from vigil.store.graph import GraphStore

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def engine():
    # one shared in-memory connection so every session sees the same tables
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture()
def store(session):
    return GraphStore(session)


@pytest.fixture()
def clock():
    return lambda: NOW


@pytest.fixture()
def seed(engine):
    def _seed(*nodes):
        with Session(engine) as s:
            for n in nodes:
                s.add(n)
            s.commit()

    return _seed


@pytest.fixture()
def client(engine, monkeypatch):
    def override_get_session():
        with Session(engine) as s:
            yield s

    app.dependency_overrides[get_session] = override_get_session
    monkeypatch.setattr(session_mod, "engine", engine, raising=False)

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
