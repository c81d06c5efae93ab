import pytest
from fastapi.testclient import TestClient

from onyx_store.api.main import app
from onyx_store.db import build_session_factory, initialize


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "onyx.db"


@pytest.fixture
def engine(db_path):
    engine = initialize(db_path)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setenv("ONYX_DATA_DIR", str(tmp_path / "appdata"))
    with TestClient(app) as c:
        yield c
