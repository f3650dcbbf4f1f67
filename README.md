# chatkit

Building blocks for a workspace chat service: the domain models, request
validation, signed session tokens, uploaded-file addressing, ASGI middleware,
and fan-out of database change notifications to connected users as
server-sent events.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Modules

- `chatkit.core`: `User`, `ChatUser`, `Workspace`, `Chat`, `Message` and the
  `ChatType` enumeration (`single`, `group`, `privateChannel`,
  `publicChannel`). Each model converts to and from camelCase JSON
  dictionaries with `to_dict()` and `from_dict()`; `Chat` and `Message` also
  accept snake_case keys on input. `ChatType.parse()` accepts the camelCase,
  snake_case and capitalised spellings. A user's password hash is never
  written out.
- `chatkit.tokens`: `EncodingKey.load(pem)` and `DecodingKey.load(pem)` read
  Ed25519 PEM keys. `sign(user)` issues a token carrying the user, valid for
  seven days, with issuer `chat_server` and audience `chat_web`;
  `verify(token)` checks signature, issuer, audience and times and returns the
  `User`. Failures raise `TokenError`.
- `chatkit.errors`: the `AppError` hierarchy (`EmailAlreadyExistsError`,
  `DatabaseError`, `PasswordHashError`, `GeneralError`, `HeaderError`,
  `CreateChatError`, `NotFoundError`, `StorageError`, `UnauthorizedError`,
  `UpdateChatError`, `ChatFileError`, `CreateMessageError`,
  `TokenRejectedError`). Each kind carries its HTTP status, and `response()`
  returns the status with an `{"error": ...}` body built by `ErrorOutput`.
- `chatkit.config`: `AppConfig` and `NotifyConfig`, parsed from YAML with
  `from_yaml(text)`. `load_app_config()` reads `app.yml`, else
  `/etc/config/app.yml`, else the file named by `CHAT_CONFIG`;
  `load_notify_config()` does the same with `notify.yml`,
  `/etc/config/notify.yml` and `NOTIFY_CONFIG`. With none present they raise
  `FileNotFoundError`; malformed settings raise `ValueError`.
- `chatkit.files`: `ChatFile.from_data(ws_id, filename, data)` names an upload
  by the SHA-1 of its content; `url()` gives its `/files/...` URL,
  `path(base_dir)` its storage location, and `ChatFile.parse(url)` reads a URL
  back (raising `ChatFileError` on a bad one).
- `chatkit.chats`: `CreateChat`, `UpdateChat`, `chat_type_for()`,
  `validate_new_chat()` (at least 2 members, the creator among them, a name of
  at least 3 bytes, a name required above 8 members, every member existing)
  and `apply_update()`, which returns an updated copy of a chat.
- `chatkit.messages`: `CreateMessage`, `ListMessages` (page size 0 means no
  limit, otherwise capped at 100) and `validate_new_message()`, which requires
  non-empty content and that every attached file is already stored.
- `chatkit.events`: `EventKind` and `AppEvent`, with JSON (`to_json`,
  `from_json`) tagged by an `event` field, and server-sent-event framing
  (`to_sse`).
- `chatkit.notify`: `Notification.load(channel, payload)` turns
  `chat_updated` and `chat_message_created` payloads into an event and the
  users it concerns (`affected_user_ids()`). `NotificationHub` keeps a
  bounded queue per subscription; `subscribe(user_id)` returns a
  `Subscription` that is an async iterator of events, offers `frames()` for
  SSE output with keep-alive comments, and removes the user when closed.
  `dispatch()` delivers a notification, `handle()` loads and dispatches one
  and logs and skips bad payloads.
- `chatkit.middleware`: `RequestIdMiddleware` keeps or generates an
  `x-request-id` and echoes it on the response; `ServerTimeMiddleware` adds
  `x-server-time` in microseconds. `apply_layers(app)` wraps an ASGI app with
  both, plus gzip/deflate response compression and access logging.

## Example

```python
from chatkit.chats import CreateChat, validate_new_chat
from chatkit.errors import CreateChatError

request = CreateChat.from_dict({"name": "general", "members": [1, 2, 3], "public": True})
chat_type = validate_new_chat(request, user_id=1, existing_ids={1, 2, 3})
print(chat_type.value)  # publicChannel

try:
    lone = CreateChat.from_dict({"members": [1], "public": False})
    validate_new_chat(lone, user_id=1, existing_ids={1})
except CreateChatError as exc:
    status, body = exc.response()
    print(int(status), body)  # 400 {'error': 'create chat error: Chat must have at least 2 members'}
```

Notifications:

```python
import asyncio
import json

from chatkit.notify import Notification, NotificationHub

payload = json.dumps({
    "message": {
        "id": 1, "chatId": 1, "senderId": 1, "content": "hello",
        "files": [], "createdAt": "2024-01-01T00:00:00Z",
    },
    "members": [1, 2],
})

async def main():
    hub = NotificationHub()
    async with hub.subscribe(1) as subscription:
        hub.dispatch(Notification.load("chat_message_created", payload))
        event = await subscription.__anext__()
        print(event.to_sse())

asyncio.run(main())
```

## What is not included

This package provides no HTTP server, routes or command to start one, and no
database access: it does not store users, workspaces, chats or messages, hash
passwords, or listen on database channels itself. Storage lookups are left to
the caller, who passes in, for example, the set of existing user ids to
`validate_new_chat()` and feeds channel payloads to `NotificationHub.handle()`.