"""Events pushed to connected clients and their server-sent-event framing."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from chatkit.core import Chat, Message

KEEP_ALIVE_TEXT = "keep-alive-text"
KEEP_ALIVE_INTERVAL = 1.0
KEEP_ALIVE_FRAME = f": {KEEP_ALIVE_TEXT}\n\n"

Payload = Union[Chat, Message]


class EventKind(str, Enum):
    """What happened; the value is the event name on the wire."""

    NEW_CHAT = "NewChat"
    ADD_TO_CHAT = "AddToChat"
    REMOVE_FROM_CHAT = "RemoveFromChat"
    NEW_MESSAGE = "NewMessage"
    CHAT_NAME_UPDATED = "ChatNameUpdated"

    @property
    def payload_type(self) -> type:
        return Message if self is EventKind.NEW_MESSAGE else Chat


@dataclass(frozen=True)
class AppEvent:
    """An event together with the chat or message it concerns."""

    kind: EventKind
    payload: Payload

    def __post_init__(self) -> None:
        expected = self.kind.payload_type
        if not isinstance(self.payload, expected):
            raise TypeError(
                f"{self.kind.value} carries a {expected.__name__}, "
                f"not a {type(self.payload).__name__}"
            )

    def to_dict(self) -> dict[str, Any]:
        return {"event": self.kind.value, **self.payload.to_dict()}

    def to_json(self) -> str:
        """The event as compact JSON, tagged by an ``event`` field."""
        return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False)

    @classmethod
    def from_json(cls, text: str | bytes) -> "AppEvent":
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("event must be an object")
        if "event" not in data:
            raise ValueError("missing field `event`")
        fields = dict(data)
        tag = fields.pop("event")
        try:
            kind = EventKind(tag)
        except ValueError:
            raise ValueError(f"unknown event: {tag!r}") from None
        return cls(kind, kind.payload_type.from_dict(fields))

    def to_sse(self) -> str:
        """The event as one server-sent-event frame."""
        data = "".join(f"data: {line}\n" for line in self.to_json().split("\n"))
        return f"{data}event: {self.kind.value}\n\n"