import logging
from typing import Any

from common.events import EventEmitter, MessageAppendedEvent, SessionCreatedEvent
from parley.config import ModelId
from parley.sessions.schema import DEFAULT_TITLE, ChatSession, Message, derive_title
from parley.sessions.store import SessionStore

logger = logging.getLogger(__name__)


class SessionError(Exception):
    pass


class SessionManager:
    """Owns the ordered session list, the current selection and the process-wide flags.

    Every mutation is persisted through the store before the method returns.
    """

    def __init__(self, store: SessionStore, emitter: EventEmitter | None = None):
        self.store = store
        self.emitter = emitter
        self.sessions: list[ChatSession] = []
        self.current_session_id: str | None = None
        self.default_model_id: ModelId = store.load_default_model()
        self.is_generating = False

    def open(self) -> None:
        if not self.store.has_sessions():
            self.sessions = []
            self.create_session()
            return

        self.sessions = self.store.load()
        if self._seal_stale_placeholders():
            self._persist()
        selected = self._first_selectable()
        self.current_session_id = selected.id if selected else None
        logger.info(f"Opened {len(self.sessions)} sessions, current={self.current_session_id}")

    def _seal_stale_placeholders(self) -> bool:
        sealed = False
        for session in self.sessions:
            for message in session.streaming_messages():
                logger.warning(
                    f"Sealing interrupted response {message.id} in session {session.id}"
                )
                message.is_streaming = False
                sealed = True
        return sealed

    def _first_selectable(self) -> ChatSession | None:
        for session in self.sessions:
            if not session.is_archived:
                return session
        return self.sessions[0] if self.sessions else None

    def _persist(self) -> None:
        self.store.persist(self.sessions)

    def get_session(self, session_id: str | None) -> ChatSession | None:
        if session_id is None:
            return None
        for session in self.sessions:
            if session.id == session_id:
                return session
        return None

    @property
    def current_session(self) -> ChatSession | None:
        return self.get_session(self.current_session_id)

    def resolve_session_id(self, prefix: str) -> str:
        prefix = prefix.strip()
        if not prefix:
            raise SessionError("Session id is required")
        matches = [s.id for s in self.sessions if s.id.startswith(prefix)]
        if not matches:
            raise SessionError(f"No session matches '{prefix}'")
        if len(matches) > 1:
            raise SessionError(f"Session id '{prefix}' is ambiguous ({len(matches)} matches)")
        return matches[0]

    def list_active(self) -> list[ChatSession]:
        return [s for s in self.sessions if not s.is_archived]

    def list_archived(self) -> list[ChatSession]:
        return [s for s in self.sessions if s.is_archived]

    def create_session(self, model_id: ModelId | None = None) -> ChatSession:
        session = ChatSession(model_id=model_id or self.default_model_id)
        self.sessions.insert(0, session)
        self.current_session_id = session.id
        self._persist()
        logger.info(f"Created session {session.id} (model={session.model_id.value})")
        if self.emitter is not None:
            self.emitter.emit(
                SessionCreatedEvent(session_id=session.id, model_id=session.model_id.value)
            )
        return session

    def select_session(self, session_id: str) -> bool:
        if self.get_session(session_id) is None:
            return False
        self.current_session_id = session_id
        return True

    def delete_session(self, session_id: str) -> bool:
        remaining = [s for s in self.sessions if s.id != session_id]
        if len(remaining) == len(self.sessions):
            return False
        self.sessions = remaining
        if self.current_session_id == session_id:
            selected = self._first_selectable()
            self.current_session_id = selected.id if selected else None
        self._persist()
        logger.info(f"Deleted session {session_id}, current={self.current_session_id}")
        return True

    def _update_session(self, session_id: str, **fields: Any) -> bool:
        session = self.get_session(session_id)
        if session is None:
            return False
        for name, value in fields.items():
            setattr(session, name, value)
        self._persist()
        return True

    def rename_session(self, session_id: str, title: str) -> bool:
        title = title.strip()
        if not title:
            return False
        return self._update_session(session_id, title=title)

    def archive_session(self, session_id: str) -> bool:
        return self._update_session(session_id, is_archived=True)

    def unarchive_session(self, session_id: str) -> bool:
        return self._update_session(session_id, is_archived=False)

    def set_model(self, model_id: ModelId) -> None:
        model_id = ModelId(model_id)
        self.default_model_id = model_id
        self.store.persist_default_model(model_id)
        if self.current_session_id is not None:
            self._update_session(self.current_session_id, model_id=model_id)

    def append_message(self, session_id: str, message: Message) -> bool:
        session = self.get_session(session_id)
        if session is None:
            return False
        if not session.messages and session.title == DEFAULT_TITLE:
            title = derive_title(message)
            if title:
                session.title = title
        session.messages.append(message)
        self._persist()
        if self.emitter is not None:
            self.emitter.emit(
                MessageAppendedEvent(
                    session_id=session_id, message_id=message.id, role=message.role
                )
            )
        return True

    def replace_message(self, session_id: str, message_id: str, patch: dict[str, Any]) -> bool:
        session = self.get_session(session_id)
        if session is None:
            return False
        idx = session.find_message(message_id)
        if idx == -1:
            return False
        session.messages[idx] = session.messages[idx].model_copy(update=patch)
        self._persist()
        return True

    def delete_message(self, session_id: str, message_id: str) -> bool:
        session = self.get_session(session_id)
        if session is None:
            return False
        idx = session.find_message(message_id)
        if idx == -1:
            return False
        del session.messages[idx]
        self._persist()
        return True

    def clear_messages(self, session_id: str) -> bool:
        session = self.get_session(session_id)
        if session is None:
            return False
        session.messages = []
        self._persist()
        return True
