"""ASGI middleware: request ids, server timing, compression and access logs."""

from __future__ import annotations

import logging
import os
import time
import uuid
import zlib
from collections.abc import Awaitable, Callable, MutableMapping
from typing import Any, Iterable

logger = logging.getLogger(__name__)

SERVER_TIME_HEADER = "x-server-time"
REQUEST_ID_HEADER = "x-request-id"

Scope = MutableMapping[str, Any]
Message = MutableMapping[str, Any]
Receive = Callable[[], Awaitable[Message]]
Send = Callable[[Message], Awaitable[None]]
ASGIApp = Callable[[Scope, Receive, Send], Awaitable[None]]

Headers = list[tuple[bytes, bytes]]

_MIN_COMPRESS_SIZE = 32
_ENCODINGS = {"gzip": 31, "deflate": 15}
_ENCODING_PREFERENCE = ("gzip", "deflate")


def _get_header(headers: Iterable[tuple[bytes, bytes]], name: bytes) -> bytes | None:
    for key, value in headers:
        if key.lower() == name:
            return value
    return None


def _set_header(headers: Iterable[tuple[bytes, bytes]], name: bytes, value: bytes) -> Headers:
    kept = [(k, v) for k, v in headers if k.lower() != name]
    kept.append((name, value))
    return kept


def _uuid7() -> uuid.UUID:
    millis = time.time_ns() // 1_000_000
    value = (millis & ((1 << 48) - 1)) << 80 | int.from_bytes(os.urandom(10), "big")
    value = (value & ~(0xF << 76)) | (0x7 << 76)
    value = (value & ~(0x3 << 62)) | (0x2 << 62)
    return uuid.UUID(int=value)


class RequestIdMiddleware:
    """Keep a request's ``x-request-id`` or give it a fresh one, and echo it back."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return
        name = REQUEST_ID_HEADER.encode("ascii")
        headers = list(scope.get("headers", []))
        request_id = _get_header(headers, name)
        if request_id is None:
            request_id = str(_uuid7()).encode("ascii")
            scope = {**scope, "headers": _set_header(headers, name, request_id)}

        async def send_with_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                message = {
                    **message,
                    "headers": _set_header(message.get("headers", []), name, request_id),
                }
            await send(message)

        await self.app(scope, receive, send_with_id)


class ServerTimeMiddleware:
    """Report in ``x-server-time`` how long the response took, in microseconds."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return
        start = time.perf_counter_ns()
        name = SERVER_TIME_HEADER.encode("ascii")

        async def send_with_time(message: Message) -> None:
            if message["type"] == "http.response.start":
                elapsed = f"{(time.perf_counter_ns() - start) // 1000}us".encode("ascii")
                message = {
                    **message,
                    "headers": _set_header(message.get("headers", []), name, elapsed),
                }
            await send(message)

        await self.app(scope, receive, send_with_time)


def _choose_encoding(accept: bytes | None) -> str | None:
    if not accept:
        return None
    weights: dict[str, float] = {}
    for item in accept.decode("latin-1").split(","):
        coding, *params = (part.strip() for part in item.split(";"))
        coding = coding.lower()
        if coding not in _ENCODINGS:
            continue
        quality = 1.0
        for param in params:
            key, _, value = param.partition("=")
            if key.strip().lower() == "q":
                try:
                    quality = float(value)
                except ValueError:
                    quality = 0.0
        weights[coding] = quality
    candidates = [c for c in _ENCODING_PREFERENCE if weights.get(c, 0.0) > 0.0]
    if not candidates:
        return None
    return max(candidates, key=lambda c: weights[c])


def _should_compress(status: int, headers: Headers) -> bool:
    if status < 200 or status in (204, 304):
        return False
    if _get_header(headers, b"content-encoding") is not None:
        return False
    content_type = (_get_header(headers, b"content-type") or b"").decode("latin-1").lower()
    if content_type.startswith("text/event-stream") or content_type.startswith("application/grpc"):
        return False
    if content_type.startswith("image/") and not content_type.startswith("image/svg+xml"):
        return False
    length = _get_header(headers, b"content-length")
    if length is not None:
        try:
            if int(length) < _MIN_COMPRESS_SIZE:
                return False
        except ValueError:
            return False
    return True


class _CompressionMiddleware:
    """Compress response bodies with gzip or deflate as the client accepts."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return
        encoding = _choose_encoding(_get_header(scope.get("headers", []), b"accept-encoding"))
        if encoding is None:
            await self.app(scope, receive, send)
            return
        compressor: Any = None

        async def send_compressed(message: Message) -> None:
            nonlocal compressor
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", []))
                if _should_compress(message.get("status", 200), headers):
                    compressor = zlib.compressobj(wbits=_ENCODINGS[encoding])
                    headers = [(k, v) for k, v in headers if k.lower() != b"content-length"]
                    headers = _set_header(headers, b"content-encoding", encoding.encode("ascii"))
                    headers = _set_header(headers, b"vary", b"accept-encoding")
                    message = {**message, "headers": headers}
            elif message["type"] == "http.response.body" and compressor is not None:
                more = message.get("more_body", False)
                body = compressor.compress(message.get("body", b""))
                if not more:
                    body += compressor.flush()
                message = {**message, "body": body}
            await send(message)

        await self.app(scope, receive, send_compressed)


class _AccessLogMiddleware:
    """Log each request and its response status and latency."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return
        start = time.perf_counter_ns()
        method, path = scope.get("method", ""), scope.get("path", "")
        headers = {k.decode("latin-1"): v.decode("latin-1") for k, v in scope.get("headers", [])}
        logger.info("started processing request %s %s headers=%s", method, path, headers)

        async def send_logged(message: Message) -> None:
            if message["type"] == "http.response.start":
                latency = (time.perf_counter_ns() - start) // 1000
                logger.info(
                    "finished processing request %s %s status=%s latency=%d us",
                    method,
                    path,
                    message.get("status"),
                    latency,
                )
            await send(message)

        await self.app(scope, receive, send_logged)


def apply_layers(app: ASGIApp) -> ASGIApp:
    """Wrap ``app`` with access logs, compression, request ids and server timing."""
    inner = ServerTimeMiddleware(app)
    inner = RequestIdMiddleware(inner)
    inner = _CompressionMiddleware(inner)
    return _AccessLogMiddleware(inner)