from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, TypeAlias


@dataclass(frozen=True, slots=True)
class SessionCreatedEvent:
    session_id: str
    model_id: str


@dataclass(frozen=True, slots=True)
class MessageAppendedEvent:
    session_id: str
    message_id: str
    role: str


@dataclass(frozen=True, slots=True)
class MessageDeltaEvent:
    session_id: str
    message_id: str
    text: str
    content: str


@dataclass(frozen=True, slots=True)
class MessageSealedEvent:
    session_id: str
    message_id: str
    content: str


@dataclass(frozen=True, slots=True)
class SendFailedEvent:
    session_id: str
    message_id: str
    error: str


@dataclass(frozen=True, slots=True)
class SendRejectedEvent:
    reason: str


Event: TypeAlias = (
    SessionCreatedEvent
    | MessageAppendedEvent
    | MessageDeltaEvent
    | MessageSealedEvent
    | SendFailedEvent
    | SendRejectedEvent
)
EventCallback: TypeAlias = Callable[[Event], None] | None


class EventEmitter:
    def __init__(self, callback: EventCallback = None):
        self._callback = callback

    def emit(self, event: Event) -> None:
        if self._callback is not None:
            self._callback(event)
