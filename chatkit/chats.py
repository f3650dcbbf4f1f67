"""Chat creation and update requests and the rules they must satisfy."""

from __future__ import annotations

import dataclasses
from collections.abc import Collection, Mapping
from dataclasses import dataclass
from typing import Any

from chatkit.core import Chat, ChatType
from chatkit.errors import CreateChatError, UpdateChatError

_MIN_MEMBERS = 2
_MAX_UNNAMED_MEMBERS = 8
_MIN_NAME_LENGTH = 3


def _mapping(data: Any, kind: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"{kind} must be an object, got {type(data).__name__}")
    return data


def _optional_name(data: Mapping[str, Any]) -> str | None:
    name = data.get("name")
    if name is not None and not isinstance(name, str):
        raise ValueError("field `name` must be a string")
    return name


def _members(value: Any) -> list[int]:
    if not isinstance(value, list) or any(
        isinstance(item, bool) or not isinstance(item, int) for item in value
    ):
        raise ValueError("field `members` must be a list of integers")
    return list(value)


def _bool(value: Any, name: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"field `{name}` must be a boolean")
    return value


@dataclass
class CreateChat:
    """A request to create a chat."""

    name: str | None
    members: list[int]
    public: bool

    @classmethod
    def from_dict(cls, data: Any) -> "CreateChat":
        data = _mapping(data, "create chat request")
        for required in ("members", "public"):
            if required not in data:
                raise ValueError(f"missing field `{required}`")
        return cls(
            name=_optional_name(data),
            members=_members(data["members"]),
            public=_bool(data["public"], "public"),
        )


@dataclass
class UpdateChat:
    """A request to change a chat; absent fields stay as they are."""

    name: str | None = None
    members: list[int] | None = None
    public: bool | None = None

    @classmethod
    def from_dict(cls, data: Any) -> "UpdateChat":
        data = _mapping(data, "update chat request")
        members = data.get("members")
        public = data.get("public")
        return cls(
            name=_optional_name(data),
            members=None if members is None else _members(members),
            public=None if public is None else _bool(public, "public"),
        )


def chat_type_for(name: str | None, member_count: int, public: bool) -> ChatType:
    """The type a new chat gets from its name, size and visibility."""
    if name is None:
        return ChatType.SINGLE if member_count == 2 else ChatType.GROUP
    return ChatType.PUBLIC_CHANNEL if public else ChatType.PRIVATE_CHANNEL


def _all_exist(members: list[int], existing_ids: Collection[int]) -> bool:
    found = {member for member in members if member in existing_ids}
    return len(found) == len(members)


def validate_new_chat(
    chat_input: CreateChat, user_id: int, existing_ids: Collection[int]
) -> ChatType:
    """Check a creation request from ``user_id`` and return the chat's type.

    ``existing_ids`` holds the ids of the users that exist.
    """
    count = len(chat_input.members)
    if count < _MIN_MEMBERS:
        raise CreateChatError("Chat must have at least 2 members")
    if user_id not in chat_input.members:
        raise CreateChatError("You must be a member of the chat")
    name = chat_input.name
    if name is not None and len(name.encode("utf-8")) < _MIN_NAME_LENGTH:
        raise CreateChatError("Chat name must have at least 3 characters")
    if count > _MAX_UNNAMED_MEMBERS and name is None:
        raise CreateChatError("Group chat with more than 8 members must have a name")
    if not _all_exist(chat_input.members, existing_ids):
        raise CreateChatError("Some members do not exist")
    return chat_type_for(name, count, chat_input.public)


def apply_update(chat: Chat, update: UpdateChat, existing_ids: Collection[int]) -> Chat:
    """Return ``chat`` with ``update`` applied; ``chat`` itself is left untouched."""
    name = update.name if update.name is not None else chat.name
    members = list(chat.members)
    if update.members is not None:
        count = len(update.members)
        if count < _MIN_MEMBERS:
            raise UpdateChatError("Chat must have at least 2 members")
        if count > _MAX_UNNAMED_MEMBERS and name is None:
            raise UpdateChatError("Group chat with more than 8 members must have a name")
        if not _all_exist(update.members, existing_ids):
            raise UpdateChatError("Some members do not exist")
        members = list(update.members)
    if update.public is not None:
        chat_type = ChatType.PUBLIC_CHANNEL if update.public else ChatType.PRIVATE_CHANNEL
    elif name is None:
        chat_type = ChatType.SINGLE if len(members) == 2 else ChatType.GROUP
    else:
        chat_type = chat.chat_type
    return dataclasses.replace(chat, name=name, members=members, chat_type=chat_type)