"""Records exchanged with the forum and the interface the receiver calls."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Protocol


@dataclass(frozen=True)
class User:
    id: int
    username: str
    trust_level: int = 0


@dataclass(frozen=True)
class Category:
    id: int
    email_in_allow_strangers: bool = False


@dataclass(frozen=True)
class EmailLog:
    reply_key: str
    topic_id: int
    post_number: int
    user: User


@dataclass(frozen=True)
class Topic:
    id: int
    closed: bool = False


@dataclass(frozen=True)
class Upload:
    url: str
    original_filename: str
    filesize: int
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass(frozen=True)
class Post:
    id: int
    topic_id: int
    post_number: int


class Forum(Protocol):
    def find_category_by_email(self, address: str) -> Optional[Category]: ...

    def find_email_log(self, reply_key: str) -> Optional[EmailLog]: ...

    def find_user_by_email(self, address: str) -> Optional[User]: ...

    def system_user(self) -> User: ...

    def has_trust_level(self, user: User, level: int) -> bool: ...

    def find_topic(self, topic_id: int) -> Optional[Topic]: ...

    def create_upload(self, user: User, path: Path, filename: str) -> Optional[Upload]: ...

    def create_post(self, user: User, options: dict[str, Any]) -> Post: ...

    def record_email_log(self, *, email_type: str, to_address: str, topic_id: int, user_id: int) -> None: ...
