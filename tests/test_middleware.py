import gzip
import uuid
import zlib

import pytest

from chatkit.middleware import (
    REQUEST_ID_HEADER,
    SERVER_TIME_HEADER,
    RequestIdMiddleware,
    ServerTimeMiddleware,
    apply_layers,
)

LARGE_BODY = b"chat message body " * 20


def make_app(body=b"ok", content_type=b"text/plain", seen=None):
    async def app(scope, receive, send):
        if seen is not None:
            seen.append(scope)
        await send(
            {
                "type": "http.response.start",
                "status": 200,
                "headers": [
                    (b"content-type", content_type),
                    (b"content-length", str(len(body)).encode()),
                ],
            }
        )
        await send({"type": "http.response.body", "body": body})

    return app


async def call(app, headers=(), scope_type="http"):
    scope = {"type": scope_type, "method": "GET", "path": "/", "headers": list(headers)}
    messages = []

    async def receive():
        return {"type": "http.request", "body": b"", "more_body": False}

    async def send(message):
        messages.append(message)

    await app(scope, receive, send)
    return messages


def response_headers(messages):
    start = next(m for m in messages if m["type"] == "http.response.start")
    return {k.decode(): v.decode() for k, v in start["headers"]}


def response_body(messages):
    return b"".join(m.get("body", b"") for m in messages if m["type"] == "http.response.body")


@pytest.mark.asyncio
async def test_request_id_generated_and_echoed():
    seen = []
    messages = await call(RequestIdMiddleware(make_app(seen=seen)))
    generated = response_headers(messages)[REQUEST_ID_HEADER]
    assert uuid.UUID(generated).version == 7
    request_headers = dict(seen[0]["headers"])
    assert request_headers[REQUEST_ID_HEADER.encode()].decode() == generated


@pytest.mark.asyncio
async def test_request_id_kept_when_present():
    seen = []
    given = b"req-42"
    messages = await call(
        RequestIdMiddleware(make_app(seen=seen)), headers=[(b"x-request-id", given)]
    )
    assert response_headers(messages)[REQUEST_ID_HEADER] == given.decode()
    assert dict(seen[0]["headers"])[b"x-request-id"] == given


@pytest.mark.asyncio
async def test_generated_ids_differ():
    first = response_headers(await call(RequestIdMiddleware(make_app())))
    second = response_headers(await call(RequestIdMiddleware(make_app())))
    assert first[REQUEST_ID_HEADER] != second[REQUEST_ID_HEADER]
    assert uuid.UUID(second[REQUEST_ID_HEADER]).version == 7


@pytest.mark.asyncio
async def test_server_time_header():
    messages = await call(ServerTimeMiddleware(make_app()))
    value = response_headers(messages)[SERVER_TIME_HEADER]
    assert value.endswith("us")
    assert value[:-2].isdigit()
    assert response_body(messages) == b"ok"


@pytest.mark.asyncio
async def test_non_http_scope_passes_through():
    seen = []
    messages = await call(RequestIdMiddleware(make_app(seen=seen)), scope_type="websocket")
    assert REQUEST_ID_HEADER not in response_headers(messages)
    assert seen[0]["headers"] == []


@pytest.mark.asyncio
async def test_layers_compress_with_gzip():
    app = apply_layers(make_app(body=LARGE_BODY))
    messages = await call(app, headers=[(b"accept-encoding", b"gzip, deflate")])
    headers = response_headers(messages)
    assert headers["content-encoding"] == "gzip"
    assert "content-length" not in headers
    assert gzip.decompress(response_body(messages)) == LARGE_BODY
    assert REQUEST_ID_HEADER in headers
    assert SERVER_TIME_HEADER in headers


@pytest.mark.asyncio
async def test_layers_compress_with_deflate():
    app = apply_layers(make_app(body=LARGE_BODY))
    messages = await call(app, headers=[(b"accept-encoding", b"deflate")])
    assert response_headers(messages)["content-encoding"] == "deflate"
    assert zlib.decompress(response_body(messages)) == LARGE_BODY


@pytest.mark.asyncio
async def test_layers_skip_small_bodies_and_event_streams():
    small = await call(apply_layers(make_app()), headers=[(b"accept-encoding", b"gzip")])
    assert "content-encoding" not in response_headers(small)
    assert response_body(small) == b"ok"
    stream = await call(
        apply_layers(make_app(body=LARGE_BODY, content_type=b"text/event-stream")),
        headers=[(b"accept-encoding", b"gzip")],
    )
    assert "content-encoding" not in response_headers(stream)
    assert response_body(stream) == LARGE_BODY


@pytest.mark.asyncio
async def test_layers_without_accept_encoding_leave_body():
    messages = await call(apply_layers(make_app(body=LARGE_BODY)))
    assert "content-encoding" not in response_headers(messages)
    assert response_body(messages) == LARGE_BODY