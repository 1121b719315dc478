import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from nltm.core import rate_limit
from nltm.db.session import get_session, make_engine
from nltm.main import app
from nltm.services import provider

PASSWORD = "Str0ng!Pass"


class FakeLLM:
    """Stands in for the completion provider and records every prompt."""

    def __init__(self):
        self.reply = "[]"
        self.error = None
        self.prompts = []

    def __call__(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def engine():
    engine = make_engine("sqlite://")
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def client(engine):
    def _session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _session
    rate_limit.reset_all()
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def fake_llm(monkeypatch):
    fake = FakeLLM()
    monkeypatch.setattr(provider, "generate", fake)
    return fake


@pytest.fixture
def register_user(client):
    def _register(name="Sam Rivera", email="sam@acme.io", contacts=None):
        r = client.post("/api/v1/auth/register", json={
            "name": name,
            "email": email,
            "password": PASSWORD,
            "contacts": contacts or [],
        })
        assert r.status_code == 201, r.text
        return {"Authorization": f"Bearer {r.json()['token']}"}
    return _register


@pytest.fixture
def auth(register_user):
    return register_user(contacts=[{"shortName": "Ali", "fullName": "Ali Benali"}])
