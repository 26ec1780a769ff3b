import json

import pytest

from parley.sessions.manager import SessionManager
from parley.sessions.store import SESSIONS_KEY, MemoryKeyValueStore, SessionStore


class RecordingKeyValueStore(MemoryKeyValueStore):
    def __init__(self, initial=None):
        super().__init__(initial)
        self.writes: list[tuple[str, str]] = []

    def set(self, key: str, value: str) -> None:
        self.writes.append((key, value))
        super().set(key, value)

    def session_snapshots(self) -> list[list[dict]]:
        return [json.loads(value) for key, value in self.writes if key == SESSIONS_KEY]


@pytest.fixture
def backend():
    return RecordingKeyValueStore()


@pytest.fixture
def store(backend):
    return SessionStore(backend)


@pytest.fixture
def manager(store):
    manager = SessionManager(store)
    manager.open()
    return manager
