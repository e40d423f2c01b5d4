import json
from pathlib import Path

import httpx
import pytest

from mail_receiver.exceptions import InvalidPost
from mail_receiver.services.forum import Category, User
from mail_receiver.services.forum_client import ForumClient


def _client(handler) -> ForumClient:
    return ForumClient(
        "https://forum.example",
        "secret-key",
        retry_max_attempts=3,
        retry_base_delay_seconds=0.0,
        retry_max_delay_seconds=0.0,
        transport=httpx.MockTransport(handler),
    )


def test_find_category_by_email() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == "/inbound-mail/categories/help@example.com.json":
            return httpx.Response(200, json={"id": 5, "email_in_allow_strangers": True})
        return httpx.Response(404, json={"errors": ["not found"]})

    client = _client(handler)

    assert client.find_category_by_email("help@example.com") == Category(id=5, email_in_allow_strangers=True)
    assert client.find_category_by_email("other@example.com") is None
    assert seen[0].headers["Api-Key"] == "secret-key"


def test_find_email_log_parses_user() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "reply_key": "abc123",
                "topic_id": 42,
                "post_number": 3,
                "user": {"id": 7, "username": "bob", "trust_level": 2},
            },
        )

    email_log = _client(handler).find_email_log("abc123")

    assert email_log is not None
    assert email_log.topic_id == 42
    assert email_log.user == User(id=7, username="bob", trust_level=2)


def test_create_post_retries_transient_failures() -> None:
    calls: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(json.loads(request.content))
        if len(calls) == 1:
            return httpx.Response(503)
        return httpx.Response(200, json={"id": 11, "topic_id": 42, "post_number": 4})

    post = _client(handler).create_post(User(id=7, username="bob"), {"raw": "Hi", "topic_id": 42})

    assert post.id == 11
    assert len(calls) == 2
    assert calls[1]["raw"] == "Hi"


def test_create_post_validation_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Api-Username"] == "bob"
        return httpx.Response(422, json={"errors": ["Body is too short", "Title is missing"]})

    with pytest.raises(InvalidPost) as excinfo:
        _client(handler).create_post(User(id=7, username="bob"), {"raw": "Hi"})
    assert str(excinfo.value) == "Body is too short\nTitle is missing"


def test_create_upload(tmp_path: Path) -> None:
    payload_file = tmp_path / "payload"
    payload_file.write_bytes(b"12345")

    def handler(request: httpx.Request) -> httpx.Response:
        assert b'filename="notes.txt"' in request.content
        return httpx.Response(200, json={"url": "/uploads/notes.txt", "original_filename": "notes.txt", "filesize": 5})

    upload = _client(handler).create_upload(User(id=7, username="bob"), payload_file, "notes.txt")

    assert upload is not None
    assert upload.url == "/uploads/notes.txt"
    assert upload.filesize == 5


def test_has_trust_level() -> None:
    client = _client(lambda request: httpx.Response(404))
    assert client.has_trust_level(User(id=1, username="a", trust_level=2), 2)
    assert not client.has_trust_level(User(id=1, username="a", trust_level=1), 2)
