import pytest

from chatkit.errors import ChatFileError, CreateMessageError
from chatkit.files import ChatFile
from chatkit.messages import CreateMessage, ListMessages, validate_new_message

I64_MAX = 9223372036854775807


def upload_dummy_file(base_dir):
    file = ChatFile.from_data(1, "test.txt", b"test")
    path = file.path(base_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("test")
    return file.url()


def test_create_message_should_work(tmp_path):
    assert validate_new_message(CreateMessage(content="hello world", files=[]), tmp_path) == []

    with pytest.raises(ChatFileError) as info:
        validate_new_message(CreateMessage(content="test", files=["1"]), tmp_path)
    assert str(info.value) == "Invalid file path: 1"

    url = upload_dummy_file(tmp_path)
    attached = validate_new_message(CreateMessage(content="test", files=[url]), tmp_path)
    assert [item.url() for item in attached] == [url]


def test_empty_content_is_rejected(tmp_path):
    with pytest.raises(CreateMessageError) as info:
        validate_new_message(CreateMessage(content=""), tmp_path)
    assert str(info.value) == "create message error: Content cannot be empty"
    assert int(info.value.response()[0]) == 400


def test_missing_file_is_rejected(tmp_path):
    url = ChatFile.from_data(1, "test.txt", b"test").url()
    with pytest.raises(CreateMessageError) as info:
        validate_new_message(CreateMessage(content="hello", files=[url]), tmp_path)
    assert str(info.value) == f"create message error: File {url} doesn't exist"


def test_create_message_from_dict():
    message = CreateMessage.from_dict({"content": "hello", "files": ["/files/1/a/b/c.txt"]})
    assert message == CreateMessage(content="hello", files=["/files/1/a/b/c.txt"])
    assert CreateMessage.from_dict({"content": "hi"}).files == []


@pytest.mark.parametrize("data", [{}, {"content": 1}, {"content": "x", "files": "a"}, "x"])
def test_create_message_from_dict_rejects_bad_input(data):
    with pytest.raises(ValueError):
        CreateMessage.from_dict(data)


def test_list_messages_defaults():
    query = ListMessages.from_dict({})
    assert query == ListMessages(last_id=None, limit=0)
    assert query.effective_last_id() == I64_MAX
    assert query.effective_limit() == I64_MAX


@pytest.mark.parametrize("limit, expected", [(1, 1), (6, 6), (100, 100), (101, 100), (5000, 100)])
def test_list_messages_limit_is_capped(limit, expected):
    assert ListMessages(limit=limit).effective_limit() == expected


def test_list_messages_last_id_is_used():
    assert ListMessages(last_id=4, limit=6).effective_last_id() == 4


def test_list_messages_from_query_strings():
    query = ListMessages.from_dict({"last_id": "12", "limit": "6"})
    assert query == ListMessages(last_id=12, limit=6)


@pytest.mark.parametrize("data", [{"limit": -1}, {"last_id": "abc"}, {"limit": True}])
def test_list_messages_rejects_bad_input(data):
    with pytest.raises(ValueError):
        ListMessages.from_dict(data)