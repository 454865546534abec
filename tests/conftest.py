"""
Pytest configuration and shared fixtures for Heritage AI tests.
"""

import shutil
import tempfile
from pathlib import Path
from typing import Generator, Optional

import pytest
from fastapi.testclient import TestClient

from heritage_ai.config import Config, GatewaySettings, ProviderSettings
from heritage_ai.db import Database
from heritage_ai.services.gateway import CurrentUser, Gateway
from heritage_ai.llm import GenerationResult, TextGenerationProvider, TokenUsage
from heritage_ai.store import SQLiteStore


class FakeProvider(TextGenerationProvider):
    """Provider that returns scripted replies and records every call."""

    name = "fake"

    def __init__(
        self,
        replies: Optional[list[str]] = None,
        error: Optional[Exception] = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ):
        super().__init__(ProviderSettings(
            provider="fake",
            model="fake-model",
            temperature=temperature,
            max_tokens=max_tokens,
        ))
        self.replies = list(replies or ["A generated answer."])
        self.error = error
        self.calls: list[dict] = []

    async def _complete(self, system_prompt, user_prompt, history, temperature, max_tokens):
        self.calls.append({
            "system_prompt": system_prompt,
            "user_prompt": user_prompt,
            "history": history,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        if self.error is not None:
            raise self.error
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        return GenerationResult(content=reply, usage=TokenUsage(prompt=10, completion=5, total=15))


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def temp_db(temp_dir: Path) -> Generator[Database, None, None]:
    """Create a temporary database for tests."""
    database = Database(temp_dir / "test.db")
    database.initialize()
    yield database
    database.close()


@pytest.fixture
def store(temp_db: Database) -> SQLiteStore:
    return SQLiteStore(temp_db)


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def gateway(fake_provider: FakeProvider, store: SQLiteStore) -> Gateway:
    return Gateway(fake_provider, store, GatewaySettings())


@pytest.fixture
def user_a() -> CurrentUser:
    return CurrentUser(user_id="user-a")


@pytest.fixture
def user_b() -> CurrentUser:
    return CurrentUser(user_id="user-b")


@pytest.fixture
def admin() -> CurrentUser:
    return CurrentUser(user_id="admin-1", role="admin")


def make_entry(**overrides) -> dict:
    """A published entry owned by user-a unless overridden."""
    entry = {
        "title": "Batik Weaving",
        "description": "Wax-resist dyeing technique applied to cloth.",
        "category": "Crafts",
        "cultural_context": "Practised across Java for centuries.",
        "historical_period": "17th century",
        "location_name": "Yogyakarta",
        "location_country": "Indonesia",
        "location_region": "Java",
        "tags": ["textile", "dyeing"],
        "author_id": "user-a",
        "status": "published",
        "is_public": True,
    }
    entry.update(overrides)
    return entry


@pytest.fixture
def sample_entry(temp_db: Database) -> str:
    """A published public entry owned by user-a."""
    return temp_db.upsert_entry(make_entry())


@pytest.fixture
def private_entry(temp_db: Database) -> str:
    """A private entry owned by user-a."""
    return temp_db.upsert_entry(make_entry(title="Family Recipe", is_public=False, category="Cuisine"))


def make_client(gateway: Gateway) -> TestClient:
    from heritage_ai.main import create_app
    return TestClient(create_app(gateway))


@pytest.fixture
def client(gateway: Gateway, monkeypatch) -> Generator[TestClient, None, None]:
    """Test client wired to the fake provider and temporary database."""
    monkeypatch.setattr(Config, "SERVICE_API_KEY", "")
    with make_client(gateway) as test_client:
        yield test_client


@pytest.fixture
def auth_headers() -> dict:
    return {"X-User-Id": "user-a"}
