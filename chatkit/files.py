"""Content-addressed storage locations for files uploaded to a workspace."""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from os import PathLike
from pathlib import Path
from typing import Union

from chatkit.errors import ChatFileError

_URL_PREFIX = "/files/"
_UNSIGNED_RE = re.compile(r"\+?[0-9]+")
_U64_MAX = 2**64 - 1

PathArg = Union[str, "PathLike[str]"]


def _parse_u64(text: str) -> int | None:
    if not _UNSIGNED_RE.fullmatch(text):
        return None
    value = int(text)
    return value if value <= _U64_MAX else None


@dataclass(frozen=True)
class ChatFile:
    """A stored file, identified by its workspace, SHA-1 digest and extension."""

    ws_id: int
    ext: str
    hash: str

    @classmethod
    def from_data(cls, ws_id: int, filename: str, data: bytes) -> "ChatFile":
        """Describe ``data`` uploaded under ``filename`` to workspace ``ws_id``."""
        return cls(
            ws_id=ws_id,
            ext=filename.split(".")[-1],
            hash=hashlib.sha1(data).hexdigest(),
        )

    def url(self) -> str:
        """The URL the file is served under."""
        return f"{_URL_PREFIX}{self._relative_path()}"

    def path(self, base_dir: PathArg) -> Path:
        """Where the file is stored below ``base_dir``."""
        return Path(base_dir) / self._relative_path()

    def _relative_path(self) -> str:
        first, second, rest = self.hash[:3], self.hash[3:6], self.hash[6:]
        return f"{self.ws_id}/{first}/{second}/{rest}.{self.ext}"

    @classmethod
    def parse(cls, s: str) -> "ChatFile":
        """Read a file URL such as ``/files/1/339/807/e635...b156.png``."""
        if not s.startswith(_URL_PREFIX):
            raise ChatFileError(f"Invalid file path: {s}")
        parts = s[len(_URL_PREFIX):].split("/")
        if len(parts) != 4:
            raise ChatFileError("File path does not valid")
        ws_id = _parse_u64(parts[0])
        if ws_id is None:
            raise ChatFileError(f"Invalid workspace id: {parts[1]}")
        rest, dot, ext = parts[3].partition(".")
        if not dot:
            raise ChatFileError(f"Invalid file name: {parts[3]}")
        return cls(ws_id=ws_id, ext=ext, hash=f"{parts[1]}{parts[2]}{rest}")