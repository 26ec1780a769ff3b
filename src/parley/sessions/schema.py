import logging
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from common.ids import generate_id, now_ms
from parley.config import DEFAULT_MODEL_ID, ModelId

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "New Conversation"
IMAGE_ONLY_TITLE = "Image Upload"
TITLE_MAX_CHARS = 30


class _Persisted(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, protected_namespaces=()
    )


class Message(_Persisted):
    id: str = Field(default_factory=generate_id)
    role: Literal["user", "model"]
    content: str = ""
    timestamp: int = Field(default_factory=now_ms)
    image: str | None = None
    is_streaming: bool | None = None
    is_error: bool | None = None


class ChatSession(_Persisted):
    id: str = Field(default_factory=generate_id)
    title: str = DEFAULT_TITLE
    messages: list[Message] = Field(default_factory=list)
    created_at: int = Field(default_factory=now_ms)
    is_archived: bool = False
    model_id: ModelId = DEFAULT_MODEL_ID

    @field_validator("model_id", mode="before")
    @classmethod
    def _known_model_id(cls, value):
        if value is None:
            return DEFAULT_MODEL_ID
        if isinstance(value, ModelId):
            return value
        try:
            return ModelId(value)
        except ValueError:
            logger.warning(f"Unknown model '{value}' in stored session, using {DEFAULT_MODEL_ID.value}")
            return DEFAULT_MODEL_ID

    def find_message(self, message_id: str) -> int:
        for idx, message in enumerate(self.messages):
            if message.id == message_id:
                return idx
        return -1

    def streaming_messages(self) -> list[Message]:
        return [m for m in self.messages if m.is_streaming]


def derive_title(message: Message) -> str | None:
    if message.role != "user":
        return None
    if message.content.strip():
        title = message.content[:TITLE_MAX_CHARS]
        if len(message.content) > TITLE_MAX_CHARS:
            title += "..."
        return title
    if message.image:
        return IMAGE_ONLY_TITLE
    return None
