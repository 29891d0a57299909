import os

os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite://")
os.environ.setdefault("GEMINI_API_KEY", "test-gemini-key")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from fastapi.testclient import TestClient

from fitcoach.auth import issue_owner_token
from fitcoach.config import settings
from fitcoach.database import Base, SessionLocal, engine
from fitcoach.deps import get_ai_client
from fitcoach.main import app


class FakeAIClient:
    """Stands in for GeminiClient; replies are consumed in order.

    A reply that is an exception instance is raised instead of returned.
    """

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = []

    async def generate_content(self, model, contents, system_instruction=None, generation_config=None):
        self.calls.append(
            {
                "model": model,
                "contents": contents,
                "system_instruction": system_instruction,
                "generation_config": generation_config,
            }
        )
        if not self.replies:
            raise AssertionError("FakeAIClient ran out of replies")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def list_models(self):
        return [{"name": "gemini-2.0-flash", "display_name": "Gemini 2.0 Flash", "methods": ["generateContent"]}]


@pytest.fixture(autouse=True)
def _fresh_database(monkeypatch):
    monkeypatch.setattr(settings, "chat_retry_initial_delay_ms", 0)
    monkeypatch.setattr(settings, "retry_initial_delay_ms", 0)
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def ai_client():
    return FakeAIClient


@pytest.fixture
def fake_ai():
    client = FakeAIClient()
    app.dependency_overrides[get_ai_client] = lambda: client
    return client


@pytest.fixture
def api():
    with TestClient(app) as client:
        yield client


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {issue_owner_token('owner-1')}"}
