import json
from datetime import datetime, timezone

import pytest

from chatkit.core import Chat, ChatType, ChatUser, Message, User, Workspace

CREATED = datetime(2024, 5, 1, 10, 30, 15, 123456, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("single", ChatType.SINGLE),
        ("Single", ChatType.SINGLE),
        ("group", ChatType.GROUP),
        ("Group", ChatType.GROUP),
        ("privateChannel", ChatType.PRIVATE_CHANNEL),
        ("private_channel", ChatType.PRIVATE_CHANNEL),
        ("publicChannel", ChatType.PUBLIC_CHANNEL),
        ("public_channel", ChatType.PUBLIC_CHANNEL),
    ],
)
def test_chat_type_aliases(raw, expected):
    assert ChatType.parse(raw) is expected


@pytest.mark.parametrize("raw", ["PrivateChannel", "channel", "", None, 3])
def test_chat_type_rejects_unknown(raw):
    with pytest.raises(ValueError):
        ChatType.parse(raw)


def test_chat_from_server_response():
    payload = json.loads(
        '{"id": 1, "wsId": 1, "name": "test", "chatType": "privateChannel",'
        ' "members": [1, 2], "createdAt": "2024-05-01T10:30:15Z"}'
    )
    chat = Chat.from_dict(payload)
    assert chat.name == "test"
    assert chat.members == [1, 2]
    assert chat.chat_type == ChatType.PRIVATE_CHANNEL


def test_chat_accepts_snake_case_aliases():
    chat = Chat.from_dict(
        {
            "id": 7,
            "ws_id": 3,
            "name": None,
            "chat_type": "single",
            "members": [1, 2],
            "created_at": "2024-05-01T10:30:15Z",
        }
    )
    assert chat.ws_id == 3
    assert chat.name is None
    assert chat.chat_type is ChatType.SINGLE


def test_chat_missing_name_is_none():
    chat = Chat.from_dict(
        {
            "id": 1,
            "wsId": 1,
            "chatType": "group",
            "members": [1, 2, 3],
            "createdAt": "2024-05-01T10:30:15Z",
        }
    )
    assert chat.name is None


def test_chat_to_dict_uses_camel_case():
    chat = Chat(1, 2, "test", ChatType.PRIVATE_CHANNEL, [1, 2], CREATED)
    data = chat.to_dict()
    assert set(data) == {"id", "wsId", "name", "chatType", "members", "createdAt"}
    assert data["chatType"] == "privateChannel"
    assert data["createdAt"].endswith("Z")


def test_chat_round_trip_through_json():
    chat = Chat(1, 2, None, ChatType.GROUP, [1, 2, 3], CREATED)
    assert Chat.from_dict(json.loads(json.dumps(chat.to_dict()))) == chat


def test_message_from_payload():
    message = Message.from_dict(
        {
            "id": 9,
            "chatId": 1,
            "senderId": 1,
            "content": "hello",
            "files": ["/files/1/abc/def/0123.toml"],
            "createdAt": "2024-05-01T10:30:15.5Z",
        }
    )
    assert message.content == "hello"
    assert len(message.files) == 1
    assert message.sender_id == 1
    assert message.created_at.microsecond == 500000


def test_message_round_trip():
    message = Message(3, 1, 2, "hello", ["/files/1/a/b/c.txt"], CREATED)
    assert Message.from_dict(message.to_dict()) == message


def test_message_snake_case_aliases():
    message = Message.from_dict(
        {
            "id": 1,
            "chat_id": 4,
            "sender_id": 5,
            "content": "hello",
            "files": [],
            "created_at": "2024-05-01T10:30:15Z",
        }
    )
    assert (message.chat_id, message.sender_id) == (4, 5)


def test_user_serialization_skips_password_hash():
    user = User(1, "test", "test@example.com", password_hash="placeholder", created_at=CREATED)
    data = user.to_dict()
    assert "passwordHash" not in data
    assert "password_hash" not in data
    restored = User.from_dict(data)
    assert restored.password_hash is None
    assert restored.email == "test@example.com"


def test_user_round_trip():
    user = User(1, "test", "test@example.com", ws_id=2, ws_name="acme", created_at=CREATED)
    assert User.from_dict(json.loads(json.dumps(user.to_dict()))) == user


def test_user_missing_field_is_error():
    data = User(1, "test", "test@example.com", created_at=CREATED).to_dict()
    del data["wsId"]
    with pytest.raises(ValueError, match="wsId"):
        User.from_dict(data)


def test_workspace_and_chat_user_round_trip():
    ws = Workspace(1, "acme", 1, CREATED)
    assert Workspace.from_dict(ws.to_dict()) == ws
    member = ChatUser(2, "alice", "alice@example.com")
    assert ChatUser.from_dict(member.to_dict()) == member


def test_timestamp_offset_is_normalised_to_utc():
    ws = Workspace.from_dict(
        {"id": 1, "name": "acme", "ownerId": 1, "createdAt": "2024-05-01T12:00:00+02:00"}
    )
    assert ws.created_at == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("stamp", ["yesterday", "2024-13-01T00:00:00Z", 12])
def test_invalid_timestamp_rejected(stamp):
    with pytest.raises(ValueError):
        Workspace.from_dict({"id": 1, "name": "acme", "ownerId": 1, "createdAt": stamp})


def test_wrong_field_type_rejected():
    with pytest.raises(ValueError):
        ChatUser.from_dict({"id": "1", "username": "alice", "email": "alice@example.com"})
    with pytest.raises(ValueError):
        ChatUser.from_dict(["not", "a", "mapping"])