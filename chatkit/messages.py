"""Message requests: sending a message and paging through a chat's history."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from os import PathLike
from typing import Any, Union

from chatkit.errors import CreateMessageError
from chatkit.files import ChatFile

I64_MAX = 2**63 - 1
_U64_MAX = 2**64 - 1
_MAX_PAGE = 100

PathArg = Union[str, "PathLike[str]"]


def _mapping(data: Any, kind: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"{kind} must be an object, got {type(data).__name__}")
    return data


def _unsigned(value: Any, name: str) -> int:
    if isinstance(value, str) and value.isascii() and value.isdigit():
        value = int(value)
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= _U64_MAX:
        raise ValueError(f"field `{name}` must be an unsigned integer")
    return value


@dataclass
class CreateMessage:
    """A message to send, with URLs of files uploaded beforehand."""

    content: str
    files: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "CreateMessage":
        data = _mapping(data, "create message request")
        if "content" not in data:
            raise ValueError("missing field `content`")
        content = data["content"]
        if not isinstance(content, str):
            raise ValueError("field `content` must be a string")
        files = data.get("files", [])
        if not isinstance(files, list) or not all(isinstance(item, str) for item in files):
            raise ValueError("field `files` must be a list of strings")
        return cls(content=content, files=list(files))


@dataclass
class ListMessages:
    """A page request: messages older than ``last_id``, at most ``limit`` of them."""

    last_id: int | None = None
    limit: int = 0

    @classmethod
    def from_dict(cls, data: Any) -> "ListMessages":
        data = _mapping(data, "list messages request")
        last_id = data.get("last_id")
        limit = data.get("limit")
        return cls(
            last_id=None if last_id is None else _unsigned(last_id, "last_id"),
            limit=0 if limit is None else _unsigned(limit, "limit"),
        )

    def effective_last_id(self) -> int:
        """The id below which messages are listed; no bound when none was given."""
        return I64_MAX if self.last_id is None else self.last_id

    def effective_limit(self) -> int:
        """Page size: unbounded for 0, otherwise capped at 100."""
        if self.limit == 0:
            return I64_MAX
        return min(self.limit, _MAX_PAGE)


def validate_new_message(message_input: CreateMessage, base_dir: PathArg) -> list[ChatFile]:
    """Check a message before it is stored and return its attached files.

    Every attached file must already be stored below ``base_dir``.
    """
    if not message_input.content:
        raise CreateMessageError("Content cannot be empty")
    attached = []
    for url in message_input.files:
        chat_file = ChatFile.parse(url)
        if not chat_file.path(base_dir).exists():
            raise CreateMessageError(f"File {url} doesn't exist")
        attached.append(chat_file)
    return attached