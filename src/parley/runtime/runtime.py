from pathlib import Path

from common.events import (
    EventEmitter,
    MessageAppendedEvent,
    MessageDeltaEvent,
    MessageSealedEvent,
    SendFailedEvent,
    SendRejectedEvent,
    SessionCreatedEvent,
)
from parley.config import AppConfig, ImageGenConfig, ModelId
from parley.images import encode_image_file
from parley.inference import InferenceClient, LiteLLMInferenceClient
from parley.runtime.coordinator import SendResult, SendState, StreamingCoordinator
from parley.sessions.manager import SessionManager
from parley.sessions.store import FileKeyValueStore, KeyValueStore, SessionStore


class ChatRuntime:
    def __init__(
        self,
        config: AppConfig | None = None,
        backend: KeyValueStore | None = None,
        client: InferenceClient | None = None,
        echo: bool = True,
    ):
        self.config = config or AppConfig()
        self.echo = echo
        self.emitter = EventEmitter(self._on_event)

        self.store = SessionStore(backend or FileKeyValueStore(self.config.state_path))
        self.manager = SessionManager(self.store, emitter=self.emitter)
        self.coordinator = StreamingCoordinator(
            self.manager, client or LiteLLMInferenceClient(), emitter=self.emitter
        )

        self.pending_image: str | None = None
        self.image_config = ImageGenConfig()
        self.last_send_state = SendState.IDLE
        self._started_response = False

    def open(self) -> None:
        self.manager.open()
        if self.config.default_model is not None:
            self.manager.set_model(self.config.default_model)

    @property
    def current_model(self) -> ModelId:
        session = self.manager.current_session
        return session.model_id if session else self.manager.default_model_id

    def attach_image(self, path: str | Path) -> None:
        self.pending_image = encode_image_file(path)

    async def send(self, text: str) -> SendResult:
        image = self.pending_image
        image_config = self.image_config if self.current_model == ModelId.IMAGINE else None
        result = await self.coordinator.send(text, image=image, image_config=image_config)
        if result.state in (SendState.SEALED, SendState.FAILED):
            self.pending_image = None
        self.last_send_state = result.state
        return result

    def _on_event(self, event) -> None:
        if not self.echo:
            return

        if isinstance(event, SessionCreatedEvent):
            print(f"✨ New conversation {event.session_id[:8]} (model: {event.model_id})")
            return
        if isinstance(event, MessageAppendedEvent):
            self._started_response = False
            return
        if isinstance(event, MessageDeltaEvent):
            if not self._started_response:
                print("\n🤖 Assistant:", end=" ")
                self._started_response = True
            print(event.text, end="", flush=True)
            return
        if isinstance(event, MessageSealedEvent):
            if self._started_response:
                print()
            return
        if isinstance(event, SendFailedEvent):
            if self._started_response:
                print()
            print(f"\n❌ {self._error_text(self.manager.current_session, event.message_id)}")
            return
        if isinstance(event, SendRejectedEvent):
            print(f"⚠️  Not sent: {event.reason}")
            return

    @staticmethod
    def _error_text(session, message_id: str) -> str:
        if session is None:
            return "Request failed"
        idx = session.find_message(message_id)
        return session.messages[idx].content if idx != -1 else "Request failed"
