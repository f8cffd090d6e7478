import json
import os
from types import SimpleNamespace

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.session import init_db
from app.models.room_models import RoomCreateResponse
from app.storage.rooms import RoomStore
from app.utils.room_creation import RoomCreationDeps
from app.utils.room_routing import MigrationFlags


def completion(content):
    """Shape of an openai chat completion, as far as the generator reads it."""
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        if isinstance(self.content, (list, dict)):
            return completion(json.dumps(self.content))
        return completion(self.content)


class FakeOpenAI:
    def __init__(self, content=None, error=None):
        self.chat = SimpleNamespace(completions=FakeCompletions(content, error))

    @property
    def calls(self):
        return self.chat.completions.calls


class FakeBackend:
    def __init__(self, healthy=True, result=None, error=None):
        self.healthy = healthy
        self.result = result or RoomCreateResponse(roomId="remote-room", playerId="remote-player", aiGenerated=True)
        self.error = error
        self.health_checks = 0
        self.create_calls = []

    def is_healthy(self):
        self.health_checks += 1
        return self.healthy

    def create_room(self, payload):
        self.create_calls.append(payload)
        if self.error is not None:
            raise self.error
        return self.result


class SpyStore(RoomStore):
    def __init__(self, session_factory):
        super().__init__(session_factory)
        self.pushed = []

    def push(self, collection="rooms"):
        key = super().push(collection)
        self.pushed.append(key)
        return key


def candidate(text="Which planet is known as the Red Planet?",
              options=("Mars", "Venus", "Jupiter", "Saturn"),
              correct="Mars",
              time_limit=20):
    return {"text": text, "options": list(options), "correctOption": correct, "timeLimit": time_limit}


@pytest.fixture
def store():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    return SpyStore(sessionmaker(bind=engine, autocommit=False, autoflush=False))


@pytest.fixture
def no_openai(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)


@pytest.fixture
def make_deps(store):
    def _make(backend=None, generate=None, flags=None, **kwargs):
        deps = RoomCreationDeps(
            store=store,
            backend=backend or FakeBackend(healthy=False),
            session={},
            read_flags=lambda: flags or MigrationFlags(),
            **kwargs,
        )
        if generate is not None:
            deps.generate = generate
        return deps
    return _make
