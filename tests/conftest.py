from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient

from models.usage_models import UsageRecord
from server.main import create_app
from utils.errors import GenerationError, PersistenceError
from utils.settings import Settings


class FakeTutorAgent:
    def __init__(self, answer: str = "Las fracciones son..."):
        self.answer = answer
        self.error: Optional[Exception] = None
        self.calls: List[Tuple[str, str]] = []

    async def generate(self, grado: str, tema: str) -> str:
        self.calls.append((grado, tema))
        if self.error:
            raise self.error
        return self.answer


class FakeUsageRepository:
    """In-memory stand-in that keeps the ordering contract of the real one."""

    def __init__(self):
        self.records: List[UsageRecord] = []
        self.write_error: Optional[Exception] = None
        self.read_error: Optional[Exception] = None

    def seed(self, grado: str, tema: str, respuesta: str, fecha: datetime) -> UsageRecord:
        record = UsageRecord(grado=grado, tema=tema, respuesta=respuesta, fecha=fecha)
        self.records.append(record)
        return record

    async def create_record(self, grado: str, tema: str, respuesta: str) -> UsageRecord:
        if self.write_error:
            raise self.write_error
        return self.seed(grado, tema, respuesta, datetime.now(timezone.utc))

    async def find_by_grade(self, grado: str) -> List[UsageRecord]:
        if self.read_error:
            raise self.read_error
        matches = [(i, r) for i, r in enumerate(self.records) if r.grado == grado]
        # Later inserts win ties on fecha
        matches.sort(key=lambda pair: (pair[1].fecha, pair[0]), reverse=True)
        return [r for _, r in matches]


class SpyBroadcaster:
    def __init__(self):
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    async def broadcast(self, event: str, payload: Dict[str, Any]) -> int:
        self.events.append((event, payload))
        return 1


@pytest.fixture
def settings():
    return Settings(
        openai_api_key="sk-test-secret",
        database_url="postgresql://user:pw@localhost/profe",
        model="gpt-4o-mini",
        port=3000,
    )


@pytest.fixture
def agent():
    return FakeTutorAgent()


@pytest.fixture
def repo():
    return FakeUsageRepository()


@pytest.fixture
def broadcaster():
    return SpyBroadcaster()


@pytest.fixture
def app(settings, agent, repo, broadcaster):
    app = create_app(settings)
    # Handles normally built in the lifespan, which TestClient skips outside a with-block
    app.state.tutor_agent = agent
    app.state.usage_repo = repo
    app.state.broadcaster = broadcaster
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def generation_error():
    cause = ConnectionError("network down")
    return GenerationError("Completion request failed", cause=cause)


@pytest.fixture
def persistence_error():
    cause = OSError("connection refused")
    return PersistenceError("Failed to store usage", cause=cause)


@pytest.fixture
def at():
    """Fixed timestamps, ``at(n)`` is n minutes after a base instant."""
    def _at(minutes: int) -> datetime:
        return datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc) + timedelta(minutes=minutes)
    return _at


@pytest.fixture
def anyio_backend():
    return "asyncio"
