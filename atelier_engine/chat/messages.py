"""Conversation messages and the ordered message log."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Callable, Literal, Union

from ..utils import new_id, serialize

Role = Literal["user", "assistant"]
STREAMING_SUFFIX = "-streaming"
LOADING_SUFFIX = "-loading"
TITLE_LIMIT = 50


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TextMessage:
    role: Role
    content: str
    message_id: str = field(default_factory=lambda: new_id("msg-"))
    timestamp: datetime = field(default_factory=_now)
    kind: Literal["text"] = "text"


@dataclass(frozen=True)
class ImageMessage:
    role: Role
    content: str
    image_ref: str
    message_id: str = field(default_factory=lambda: new_id("msg-"))
    timestamp: datetime = field(default_factory=_now)
    kind: Literal["image"] = "image"


@dataclass(frozen=True)
class VoiceMessage:
    role: Role
    content: str
    audio_ref: str | None = None
    message_id: str = field(default_factory=lambda: new_id("msg-"))
    timestamp: datetime = field(default_factory=_now)
    kind: Literal["voice"] = "voice"


Message = Union[TextMessage, ImageMessage, VoiceMessage]
MessageListener = Callable[[str, Message | None], None]


def streaming_message(content: str = "") -> TextMessage:
    return TextMessage(role="assistant", content=content, message_id=new_id("msg-") + STREAMING_SUFFIX)


def loading_message(content: str) -> TextMessage:
    return TextMessage(role="assistant", content=content, message_id=new_id("msg-") + LOADING_SUFFIX)


class Conversation:
    """Append-only message log owned by one conversation.

    Messages are immutable once appended. The one exception is the
    in-progress streaming slot, whose content grows via `update_content`
    until `finalize` gives it a permanent id. Loading placeholders are the
    only messages that may be removed.
    """

    def __init__(self, session_id: str | None = None) -> None:
        self.session_id = session_id or new_id("session-")
        self.created_at = _now()
        self.updated_at = self.created_at
        self._messages: list[Message] = []
        self._listeners: list[MessageListener] = []

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def subscribe(self, listener: MessageListener) -> None:
        self._listeners.append(listener)

    def append(self, message: Message) -> Message:
        self._messages.append(message)
        self._touch()
        self._notify("append", message)
        return message

    def find(self, message_id: str) -> Message | None:
        for message in self._messages:
            if message.message_id == message_id:
                return message
        return None

    def update_content(self, message_id: str, content: str) -> Message:
        idx = self._index(message_id)
        current = self._messages[idx]
        if not current.message_id.endswith(STREAMING_SUFFIX):
            raise ValueError(f"Message {message_id} is not an in-progress streaming message.")
        updated = replace(current, content=content)
        self._messages[idx] = updated
        self._touch()
        self._notify("update", updated)
        return updated

    def finalize(self, message_id: str) -> Message:
        idx = self._index(message_id)
        current = self._messages[idx]
        if not current.message_id.endswith(STREAMING_SUFFIX):
            return current
        final = replace(current, message_id=current.message_id[: -len(STREAMING_SUFFIX)])
        self._messages[idx] = final
        self._touch()
        self._notify("update", final)
        return final

    def remove(self, message_id: str) -> None:
        idx = self._index(message_id)
        current = self._messages[idx]
        if not current.message_id.endswith((LOADING_SUFFIX, STREAMING_SUFFIX)):
            raise ValueError(f"Message {message_id} is not a placeholder and cannot be removed.")
        del self._messages[idx]
        self._touch()
        self._notify("remove", current)

    def has_placeholders(self) -> bool:
        return any(message.message_id.endswith(LOADING_SUFFIX) for message in self._messages)

    def latest_image(self) -> ImageMessage | None:
        for message in reversed(self._messages):
            if isinstance(message, ImageMessage) and message.image_ref:
                return message
        return None

    def images(self) -> list[ImageMessage]:
        return [message for message in self._messages if isinstance(message, ImageMessage)]

    def reset(self, greeting: str | None = None) -> None:
        """Start a new session. Listeners get `("reset", None)` before the greeting is appended."""
        self._messages = []
        self.session_id = new_id("session-")
        self.created_at = _now()
        self._touch()
        self._notify("reset", None)
        if greeting:
            self.append(TextMessage(role="assistant", content=greeting))

    def session_title(self) -> str:
        for message in self._messages:
            if message.role == "user":
                return message.content[:TITLE_LIMIT]
        return "New Conversation"

    def snapshot(self, mode: str, model: str) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "title": self.session_title(),
            "mode": mode,
            "model": model,
            "messages": [serialize(message) for message in self._messages],
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    def _index(self, message_id: str) -> int:
        for idx, message in enumerate(self._messages):
            if message.message_id == message_id:
                return idx
        raise KeyError(message_id)

    def _touch(self) -> None:
        self.updated_at = _now()

    def _notify(self, action: str, message: Message | None) -> None:
        for listener in list(self._listeners):
            listener(action, message)
