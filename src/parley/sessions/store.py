import json
import logging
from pathlib import Path
from typing import Protocol

from pydantic import TypeAdapter, ValidationError

from common.jsonio import atomic_write_json, load_json
from parley.config import DEFAULT_MODEL_ID, ModelId
from parley.sessions.schema import ChatSession

logger = logging.getLogger(__name__)

SESSIONS_KEY = "parley_sessions"
DEFAULT_MODEL_KEY = "parley_default_model"

_SESSION_LIST = TypeAdapter(list[ChatSession])


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryKeyValueStore:
    def __init__(self, initial: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value


class FileKeyValueStore:
    """String values kept in a single JSON object file, rewritten atomically on every set."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._data: dict[str, str] | None = None

    def _load(self) -> dict[str, str]:
        if self._data is None:
            raw = load_json(self.path) or {}
            self._data = {k: v for k, v in raw.items() if isinstance(v, str)}
        return self._data

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        atomic_write_json(self.path, data)


class SessionStore:
    def __init__(self, backend: KeyValueStore):
        self.backend = backend

    def has_sessions(self) -> bool:
        return self.backend.get(SESSIONS_KEY) is not None

    def load(self) -> list[ChatSession]:
        blob = self.backend.get(SESSIONS_KEY)
        if blob is None:
            return []
        try:
            sessions = _SESSION_LIST.validate_json(blob)
        except ValidationError as e:
            logger.error(f"Failed to load sessions, starting empty: {e}")
            return []
        logger.debug(f"Loaded {len(sessions)} sessions")
        return sessions

    def persist(self, sessions: list[ChatSession]) -> None:
        payload = [
            s.model_dump(mode="json", by_alias=True, exclude_none=True) for s in sessions
        ]
        self.backend.set(SESSIONS_KEY, json.dumps(payload, ensure_ascii=False))

    def load_default_model(self) -> ModelId:
        saved = self.backend.get(DEFAULT_MODEL_KEY)
        if not saved:
            return DEFAULT_MODEL_ID
        try:
            return ModelId(saved)
        except ValueError:
            logger.warning(f"Unknown default model '{saved}', using {DEFAULT_MODEL_ID.value}")
            return DEFAULT_MODEL_ID

    def persist_default_model(self, model_id: ModelId) -> None:
        self.backend.set(DEFAULT_MODEL_KEY, ModelId(model_id).value)
