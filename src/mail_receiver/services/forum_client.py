import logging
from pathlib import Path
from typing import Any, Callable, Optional
from urllib.parse import quote

import httpx

from mail_receiver.exceptions import InvalidPost
from mail_receiver.services.forum import Category, EmailLog, Post, Topic, Upload, User
from mail_receiver.services.retry import with_retry

logger = logging.getLogger(__name__)


def _user_from(data: dict[str, Any]) -> User:
    return User(
        id=int(data["id"]),
        username=str(data["username"]),
        trust_level=int(data.get("trust_level") or 0),
    )


def _error_messages(response: httpx.Response) -> list[str]:
    try:
        payload = response.json()
    except ValueError:
        return [response.text or f"HTTP {response.status_code}"]
    errors = payload.get("errors") if isinstance(payload, dict) else None
    if isinstance(errors, list) and errors:
        return [str(error) for error in errors]
    return [f"HTTP {response.status_code}"]


class ForumClient:
    """Forum HTTP API adapter for the receiver's lookups and writes."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        api_username: str = "system",
        system_username: str = "system",
        timeout_seconds: float = 20.0,
        retry_max_attempts: int = 3,
        retry_base_delay_seconds: float = 1.0,
        retry_max_delay_seconds: float = 8.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.api_username = api_username
        self.system_username = system_username
        self.timeout_seconds = timeout_seconds
        self.retry_max_attempts = max(1, retry_max_attempts)
        self.retry_base_delay_seconds = max(0.0, retry_base_delay_seconds)
        self.retry_max_delay_seconds = max(self.retry_base_delay_seconds, retry_max_delay_seconds)
        self.transport = transport

    def _headers(self, username: Optional[str] = None) -> dict[str, str]:
        return {
            "Api-Key": self.api_key,
            "Api-Username": username or self.api_username,
            "Accept": "application/json",
            "User-Agent": "forum-mail-receiver",
        }

    def _request(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        username: Optional[str] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        url = f"{self.base_url}{path}"

        def _call() -> httpx.Response:
            with httpx.Client(timeout=self.timeout_seconds, transport=self.transport) as client:
                return client.request(method, url, headers=self._headers(username), **kwargs)

        return with_retry(
            operation=operation,
            call=_call,
            max_attempts=self.retry_max_attempts,
            base_delay_seconds=self.retry_base_delay_seconds,
            max_delay_seconds=self.retry_max_delay_seconds,
            logger=logger,
        )

    def _get_optional(self, operation: str, path: str, parse: Callable[[dict[str, Any]], Any]) -> Any:
        response = self._request(operation, "GET", path)
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return parse(response.json())

    def find_category_by_email(self, address: str) -> Optional[Category]:
        return self._get_optional(
            "forum_find_category",
            f"/inbound-mail/categories/{quote(address)}.json",
            lambda data: Category(
                id=int(data["id"]),
                email_in_allow_strangers=bool(data.get("email_in_allow_strangers")),
            ),
        )

    def find_email_log(self, reply_key: str) -> Optional[EmailLog]:
        return self._get_optional(
            "forum_find_email_log",
            f"/inbound-mail/email-logs/{quote(reply_key)}.json",
            lambda data: EmailLog(
                reply_key=str(data["reply_key"]),
                topic_id=int(data["topic_id"]),
                post_number=int(data["post_number"]),
                user=_user_from(data["user"]),
            ),
        )

    def find_user_by_email(self, address: str) -> Optional[User]:
        return self._get_optional(
            "forum_find_user",
            f"/inbound-mail/users/{quote(address)}.json",
            _user_from,
        )

    def system_user(self) -> User:
        user = self._get_optional(
            "forum_system_user",
            f"/u/{quote(self.system_username)}.json",
            lambda data: _user_from(data["user"]),
        )
        if user is None:
            raise RuntimeError(f"system user {self.system_username!r} does not exist")
        return user

    def has_trust_level(self, user: User, level: int) -> bool:
        return user.trust_level >= int(level)

    def find_topic(self, topic_id: int) -> Optional[Topic]:
        return self._get_optional(
            "forum_find_topic",
            f"/t/{int(topic_id)}.json",
            lambda data: Topic(id=int(data["id"]), closed=bool(data.get("closed"))),
        )

    def create_upload(self, user: User, path: Path, filename: str) -> Optional[Upload]:
        with path.open("rb") as handle:
            content = handle.read()
        response = self._request(
            "forum_create_upload",
            "POST",
            "/uploads.json",
            username=user.username,
            data={"type": "composer", "synchronous": "true"},
            files={"file": (filename, content)},
        )
        if response.status_code == 422:
            logger.warning(
                "Forum rejected upload",
                extra={"event": "forum_upload_rejected", "errors": _error_messages(response)},
            )
            return None
        response.raise_for_status()
        data = response.json()
        return Upload(
            url=str(data["url"]),
            original_filename=str(data.get("original_filename") or filename),
            filesize=int(data.get("filesize") or len(content)),
            width=data.get("width"),
            height=data.get("height"),
        )

    def create_post(self, user: User, options: dict[str, Any]) -> Post:
        response = self._request(
            "forum_create_post",
            "POST",
            "/posts.json",
            username=user.username,
            json=options,
        )
        if response.status_code == 422:
            raise InvalidPost("\n".join(_error_messages(response)))
        response.raise_for_status()
        data = response.json()
        logger.info(
            "Created forum post from email",
            extra={
                "event": "forum_post_created",
                "post_id": data.get("id"),
                "topic_id": data.get("topic_id"),
                "username": user.username,
            },
        )
        return Post(id=int(data["id"]), topic_id=int(data["topic_id"]), post_number=int(data["post_number"]))

    def record_email_log(self, *, email_type: str, to_address: str, topic_id: int, user_id: int) -> None:
        response = self._request(
            "forum_record_email_log",
            "POST",
            "/inbound-mail/email-logs.json",
            json={
                "email_type": email_type,
                "to_address": to_address,
                "topic_id": topic_id,
                "user_id": user_id,
            },
        )
        response.raise_for_status()
