from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest

from mail_receiver.exceptions import InvalidPost
from mail_receiver.services.forum import Category, EmailLog, Post, Topic, Upload, User


@dataclass
class _SettingsStub:
    site_title: str = "Forum"
    reply_by_email_address: str = "support+%{reply_key}@example.com"
    previous_discussion_marker: str = "Previous Replies"
    email_in: bool = True
    email_in_min_trust: int = 2


class _FakeForum:
    def __init__(self) -> None:
        self.categories: dict[str, Category] = {}
        self.email_logs: dict[str, EmailLog] = {}
        self.users: dict[str, User] = {}
        self.topics: dict[int, Topic] = {}
        self.failing_uploads: set[str] = set()
        self.rejected_reasons: list[str] = []
        self.uploaded_paths: list[Path] = []
        self.posts: list[tuple[User, dict[str, Any]]] = []
        self.recorded_logs: list[dict[str, Any]] = []
        self.category_lookups: list[str] = []

    def find_category_by_email(self, address: str) -> Category | None:
        self.category_lookups.append(address)
        return self.categories.get(address)

    def find_email_log(self, reply_key: str) -> EmailLog | None:
        return self.email_logs.get(reply_key)

    def find_user_by_email(self, address: str) -> User | None:
        return self.users.get(address)

    def system_user(self) -> User:
        return User(id=-1, username="system", trust_level=4)

    def has_trust_level(self, user: User, level: int) -> bool:
        return user.trust_level >= level

    def find_topic(self, topic_id: int) -> Topic | None:
        return self.topics.get(topic_id)

    def create_upload(self, user: User, path: Path, filename: str) -> Upload | None:
        self.uploaded_paths.append(path)
        if filename in self.failing_uploads:
            raise RuntimeError("simulated upload failure")
        size = len(path.read_bytes())
        return Upload(
            url=f"/uploads/{filename}",
            original_filename=filename,
            filesize=size,
            width=10,
            height=20,
        )

    def create_post(self, user: User, options: dict[str, Any]) -> Post:
        if self.rejected_reasons:
            raise InvalidPost("\n".join(self.rejected_reasons))
        self.posts.append((user, options))
        topic_id = options.get("topic_id", 500)
        return Post(id=len(self.posts), topic_id=topic_id, post_number=len(self.posts) + 1)

    def record_email_log(self, *, email_type: str, to_address: str, topic_id: int, user_id: int) -> None:
        self.recorded_logs.append(
            {"email_type": email_type, "to_address": to_address, "topic_id": topic_id, "user_id": user_id}
        )


@pytest.fixture
def settings() -> _SettingsStub:
    return _SettingsStub()


@pytest.fixture
def forum() -> _FakeForum:
    return _FakeForum()


@pytest.fixture
def bob() -> User:
    return User(id=7, username="bob", trust_level=2)


@pytest.fixture
def reply_log(bob: User) -> EmailLog:
    return EmailLog(reply_key="abc123", topic_id=42, post_number=3, user=bob)
