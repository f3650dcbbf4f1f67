"""Domain records shared by the chat and notification services."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping


class ChatType(str, Enum):
    """Kind of a chat; the value is its wire name."""

    SINGLE = "single"
    GROUP = "group"
    PRIVATE_CHANNEL = "privateChannel"
    PUBLIC_CHANNEL = "publicChannel"

    @classmethod
    def parse(cls, value: Any) -> "ChatType":
        """Return the chat type named by ``value``, accepting the known aliases."""
        if isinstance(value, cls):
            return value
        try:
            return _CHAT_TYPE_ALIASES[value]
        except (KeyError, TypeError):
            raise ValueError(f"unknown chat type: {value!r}") from None


_CHAT_TYPE_ALIASES: dict[str, ChatType] = {
    "single": ChatType.SINGLE,
    "Single": ChatType.SINGLE,
    "group": ChatType.GROUP,
    "Group": ChatType.GROUP,
    "privateChannel": ChatType.PRIVATE_CHANNEL,
    "private_channel": ChatType.PRIVATE_CHANNEL,
    "publicChannel": ChatType.PUBLIC_CHANNEL,
    "public_channel": ChatType.PUBLIC_CHANNEL,
}

_TIMESTAMP_RE = re.compile(
    r"(\d{4}-\d{2}-\d{2})[Tt ](\d{2}:\d{2}:\d{2})(?:\.(\d{1,9}))?([Zz]|[+-]\d{2}:?\d{2})"
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _format_timestamp(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    text = moment.strftime("%Y-%m-%dT%H:%M:%S")
    if moment.microsecond:
        if moment.microsecond % 1000 == 0:
            text += f".{moment.microsecond // 1000:03d}"
        else:
            text += f".{moment.microsecond:06d}"
    return text + "Z"


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if not isinstance(value, str):
        raise ValueError(f"invalid timestamp: {value!r}")
    match = _TIMESTAMP_RE.fullmatch(value)
    if match is None:
        raise ValueError(f"invalid timestamp: {value!r}")
    date, clock, fraction, offset = match.groups()
    micros = (fraction or "").ljust(6, "0")[:6]
    if offset.upper() == "Z":
        offset = "+00:00"
    elif len(offset) == 5:
        offset = f"{offset[:3]}:{offset[3:]}"
    moment = datetime.fromisoformat(f"{date}T{clock}.{micros}{offset}")
    return moment.astimezone(timezone.utc)


def _mapping(data: Any, kind: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"{kind} must be an object, got {type(data).__name__}")
    return data


def _pick(data: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        if name in data:
            return data[name]
    raise ValueError(f"missing field `{names[0]}`")


def _int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"field `{name}` must be an integer")
    return value


def _str(value: Any, name: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"field `{name}` must be a string")
    return value


def _int_list(value: Any, name: str) -> list[int]:
    if not isinstance(value, list):
        raise ValueError(f"field `{name}` must be a list")
    return [_int(item, name) for item in value]


def _str_list(value: Any, name: str) -> list[str]:
    if not isinstance(value, list):
        raise ValueError(f"field `{name}` must be a list")
    return [_str(item, name) for item in value]


@dataclass
class User:
    """A registered user; the password hash never leaves the server."""

    id: int
    username: str
    email: str
    ws_id: int = 0
    ws_name: str = ""
    password_hash: str | None = field(default=None, repr=False)
    created_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "wsId": self.ws_id,
            "wsName": self.ws_name,
            "email": self.email,
            "createdAt": _format_timestamp(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "User":
        data = _mapping(data, "user")
        return cls(
            id=_int(_pick(data, "id"), "id"),
            username=_str(_pick(data, "username"), "username"),
            email=_str(_pick(data, "email"), "email"),
            ws_id=_int(_pick(data, "wsId"), "wsId"),
            ws_name=_str(_pick(data, "wsName"), "wsName"),
            created_at=_parse_timestamp(_pick(data, "createdAt")),
        )


@dataclass
class ChatUser:
    """The public view of a workspace member."""

    id: int
    username: str
    email: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "username": self.username, "email": self.email}

    @classmethod
    def from_dict(cls, data: Any) -> "ChatUser":
        data = _mapping(data, "chat user")
        return cls(
            id=_int(_pick(data, "id"), "id"),
            username=_str(_pick(data, "username"), "username"),
            email=_str(_pick(data, "email"), "email"),
        )


@dataclass
class Workspace:
    """A workspace grouping users and chats."""

    id: int
    name: str
    owner_id: int
    created_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "ownerId": self.owner_id,
            "createdAt": _format_timestamp(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Workspace":
        data = _mapping(data, "workspace")
        return cls(
            id=_int(_pick(data, "id"), "id"),
            name=_str(_pick(data, "name"), "name"),
            owner_id=_int(_pick(data, "ownerId"), "ownerId"),
            created_at=_parse_timestamp(_pick(data, "createdAt")),
        )


@dataclass
class Chat:
    """A chat inside a workspace with its member ids."""

    id: int
    ws_id: int
    name: str | None
    chat_type: ChatType
    members: list[int]
    created_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "wsId": self.ws_id,
            "name": self.name,
            "chatType": self.chat_type.value,
            "members": list(self.members),
            "createdAt": _format_timestamp(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Chat":
        data = _mapping(data, "chat")
        name = data.get("name")
        if name is not None:
            name = _str(name, "name")
        return cls(
            id=_int(_pick(data, "id"), "id"),
            ws_id=_int(_pick(data, "wsId", "ws_id"), "wsId"),
            name=name,
            chat_type=ChatType.parse(_pick(data, "chatType", "chat_type")),
            members=_int_list(_pick(data, "members"), "members"),
            created_at=_parse_timestamp(_pick(data, "createdAt", "created_at")),
        )


@dataclass
class Message:
    """A message sent to a chat, with the URLs of attached files."""

    id: int
    chat_id: int
    sender_id: int
    content: str
    files: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "chatId": self.chat_id,
            "senderId": self.sender_id,
            "content": self.content,
            "files": list(self.files),
            "createdAt": _format_timestamp(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Message":
        data = _mapping(data, "message")
        return cls(
            id=_int(_pick(data, "id"), "id"),
            chat_id=_int(_pick(data, "chatId", "chat_id"), "chatId"),
            sender_id=_int(_pick(data, "senderId", "sender_id"), "senderId"),
            content=_str(_pick(data, "content"), "content"),
            files=_str_list(_pick(data, "files"), "files"),
            created_at=_parse_timestamp(_pick(data, "createdAt", "created_at")),
        )