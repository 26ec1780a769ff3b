from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from common.events import (
    EventEmitter,
    MessageDeltaEvent,
    MessageSealedEvent,
    SendFailedEvent,
    SendRejectedEvent,
)
from parley.config import ImageGenConfig
from parley.inference import InferenceClient
from parley.prompts import ERROR_MESSAGE
from parley.sessions.manager import SessionManager
from parley.sessions.schema import Message

logger = logging.getLogger(__name__)


class SendState(str, Enum):
    IDLE = "idle"
    SENT = "sent"
    STREAMING = "streaming"
    SEALED = "sealed"
    FAILED = "failed"
    REJECTED = "rejected"
    SESSION_CREATED = "session_created"


@dataclass(frozen=True, slots=True)
class SendResult:
    state: SendState
    session_id: str | None = None
    message_id: str | None = None
    content: str = ""
    error: str = ""


class StreamingCoordinator:
    """Runs one send operation: user message, placeholder, fragment accumulation, seal or fail.

    Only one operation runs at a time process-wide; ``SessionManager.is_generating``
    is the guard and a send that finds it set is dropped.
    """

    def __init__(
        self,
        manager: SessionManager,
        client: InferenceClient,
        emitter: EventEmitter | None = None,
    ):
        self.manager = manager
        self.client = client
        self.emitter = emitter

    def _emit(self, event) -> None:
        if self.emitter is not None:
            self.emitter.emit(event)

    def _reject(self, reason: str) -> SendResult:
        logger.debug(f"Send rejected: {reason}")
        self._emit(SendRejectedEvent(reason=reason))
        return SendResult(state=SendState.REJECTED, error=reason)

    async def send(
        self,
        text: str,
        image: str | None = None,
        image_config: ImageGenConfig | None = None,
    ) -> SendResult:
        text = text or ""
        if self.manager.is_generating:
            return self._reject("a response is already being generated")
        if not text.strip() and not image:
            return self._reject("nothing to send")

        session = self.manager.current_session
        if session is None:
            created = self.manager.create_session()
            return SendResult(state=SendState.SESSION_CREATED, session_id=created.id)

        session_id = session.id
        if session.is_archived:
            self.manager.unarchive_session(session_id)

        history = list(session.messages)
        self.manager.append_message(
            session_id, Message(role="user", content=text, image=image)
        )
        self.manager.is_generating = True
        try:
            return await self._stream_reply(session_id, history, text, image, image_config)
        finally:
            self.manager.is_generating = False

    async def _stream_reply(
        self,
        session_id: str,
        history: list[Message],
        text: str,
        image: str | None,
        image_config: ImageGenConfig | None,
    ) -> SendResult:
        placeholder = Message(role="model", content="", is_streaming=True)
        message_id = placeholder.id
        self.manager.append_message(session_id, placeholder)
        state = SendState.SENT

        session = self.manager.get_session(session_id)
        model_id = session.model_id if session else self.manager.default_model_id

        accumulated = ""
        try:
            fragments = self.client.stream_chat(history, text, image, model_id, image_config)
            async for fragment in fragments:
                state = SendState.STREAMING
                accumulated += fragment
                self.manager.replace_message(session_id, message_id, {"content": accumulated})
                self._emit(
                    MessageDeltaEvent(
                        session_id=session_id,
                        message_id=message_id,
                        text=fragment,
                        content=accumulated,
                    )
                )
        except Exception as e:
            logger.error(f"Chat error in session {session_id} while {state.value}: {e}")
            self.manager.delete_message(session_id, message_id)
            error_message = Message(role="model", content=ERROR_MESSAGE, is_error=True)
            self.manager.append_message(session_id, error_message)
            self._emit(SendFailedEvent(session_id=session_id, message_id=error_message.id, error=str(e)))
            return SendResult(
                state=SendState.FAILED,
                session_id=session_id,
                message_id=error_message.id,
                error=str(e),
            )

        self.manager.replace_message(session_id, message_id, {"is_streaming": False})
        self._emit(MessageSealedEvent(session_id=session_id, message_id=message_id, content=accumulated))
        return SendResult(
            state=SendState.SEALED,
            session_id=session_id,
            message_id=message_id,
            content=accumulated,
        )
