"""Turn one raw inbound email into a new topic or a reply."""
from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Optional, Union

from mail_receiver.exceptions import (
    BadDestinationAddress,
    EmailLogNotFound,
    EmailUnparsableError,
    EmptyEmailError,
    ProcessingError,
    TopicClosedError,
    TopicNotFoundError,
    UserNotFoundError,
    UserNotSufficientTrustLevelError,
)
from mail_receiver.services.address_router import (
    CategoryDestination,
    InvalidDestination,
    RoutingDecision,
    route,
)
from mail_receiver.services.attachments import append_attachments
from mail_receiver.services.body_selector import select_body_part
from mail_receiver.services.charset import CANONICAL_ENCODING, EncodingError
from mail_receiver.services.email_parser import extract_reply_text
from mail_receiver.services.email_trimmer import trim_quoted_history
from mail_receiver.services.html_cleaner import html_to_text
from mail_receiver.services.message import InboundMessage, parse_message

if TYPE_CHECKING:
    from mail_receiver.config import Settings
    from mail_receiver.services.forum import Category, EmailLog, Forum, Post, User

logger = logging.getLogger(__name__)

AUTO_GENERATED_HEADER = re.compile(r"auto-generated|auto-replied")


class ReceiverState(enum.Enum):
    START = "start"
    BODY_EXTRACTED = "body_extracted"
    ROUTED = "routed"
    TOPIC_CREATED = "topic_created"
    REPLY_CREATED = "reply_created"
    REJECTED = "rejected"


@dataclass(frozen=True)
class ExtractedBody:
    text: str
    source_charset: Optional[str] = None

    @property
    def encoding(self) -> str:
        return CANONICAL_ENCODING


@dataclass(frozen=True)
class NewTopic:
    body: str
    subject: str
    category_id: int
    author: "User"
    post: Optional["Post"] = None


@dataclass(frozen=True)
class ReplyOutcome:
    body: str
    email_log: "EmailLog"
    post: Optional["Post"] = None


@dataclass(frozen=True)
class ProcessingFailure:
    kind: str
    message: str = ""


ProcessingOutcome = Union[NewTopic, ReplyOutcome, ProcessingFailure]


def _require_text(text: str, stage: str) -> str:
    if not text.strip():
        raise EmptyEmailError(f"no text left after {stage}")
    return text


def wrap_body_in_quote(body: str, sender: str) -> str:
    return f'[quote="{sender}"]\n{body}\n[/quote]'


class Receiver:
    def __init__(
        self,
        raw: bytes | str,
        *,
        settings: "Settings",
        forum: "Forum",
        html_cleaner: Callable[[str], str] = html_to_text,
    ) -> None:
        self.raw = raw
        self.settings = settings
        self.forum = forum
        self.html_cleaner = html_cleaner
        self.state = ReceiverState.START
        self.message: Optional[InboundMessage] = None
        self.body: Optional[ExtractedBody] = None
        self.destination: Optional[RoutingDecision] = None

    def _transition(self, state: ReceiverState, **context: Any) -> None:
        self.state = state
        logger.info(
            "Inbound email state changed",
            extra={"event": "receiver_state", "state": state.value, **context},
        )

    def process(self) -> ProcessingOutcome:
        try:
            return self._process()
        except (EncodingError, UnicodeError) as exc:
            self.state = ReceiverState.REJECTED
            raise EmailUnparsableError(str(exc)) from exc
        except ProcessingError:
            self.state = ReceiverState.REJECTED
            raise

    def _process(self) -> ProcessingOutcome:
        if not self.raw or not self.raw.strip():
            raise EmptyEmailError("raw message is empty")

        message = parse_message(self.raw)
        self.message = message

        self.body = self.extract_body(message)
        self._transition(ReceiverState.BODY_EXTRACTED, sender=message.sender)

        destination = route(
            message.recipients,
            reply_address_template=self.settings.reply_by_email_address,
            find_category=self.forum.find_category_by_email,
            find_email_log=self.forum.find_email_log,
        )
        if isinstance(destination, InvalidDestination):
            raise BadDestinationAddress(f"no route for recipients {list(message.recipients)}")
        if AUTO_GENERATED_HEADER.search(message.headers):
            raise TopicNotFoundError("message was generated automatically")
        self.destination = destination
        self._transition(ReceiverState.ROUTED, destination=type(destination).__name__)

        if isinstance(destination, CategoryDestination):
            return self.create_new_topic(destination.category)
        return self.create_reply(destination.email_log)

    def extract_body(self, message: InboundMessage) -> ExtractedBody:
        selected = select_body_part(message.root, self.html_cleaner)
        text = _require_text(selected.text, "body selection")
        text = _require_text(
            trim_quoted_history(
                text,
                site_title=self.settings.site_title,
                previous_discussion=self.settings.previous_discussion_marker,
            ),
            "quote trimming",
        )
        text = _require_text(extract_reply_text(text), "reply parsing")
        return ExtractedBody(text=text, source_charset=selected.charset)

    def anonymized_author_fallback(self, sender: str) -> "User":
        # TODO: register an account for the sender and mail them activation
        # details instead of posting as the system user.
        self.body = ExtractedBody(
            text=wrap_body_in_quote(self.body.text, sender),
            source_charset=self.body.source_charset,
        )
        return self.forum.system_user()

    def create_new_topic(self, category: "Category") -> NewTopic:
        if not self.settings.email_in:
            raise BadDestinationAddress("email to categories is disabled")

        sender = self.message.sender
        allow_strangers = category.email_in_allow_strangers
        user = self.forum.find_user_by_email(sender)
        if user is None and allow_strangers:
            user = self.anonymized_author_fallback(sender)
        if user is None:
            raise UserNotFoundError(f"no user for {sender!r}")
        if not allow_strangers and not self.forum.has_trust_level(user, self.settings.email_in_min_trust):
            raise UserNotSufficientTrustLevelError(user)

        post = self._create_post_with_attachments(
            user,
            raw=self.body.text,
            title=self.message.subject,
            category=category.id,
        )
        self.forum.record_email_log(
            email_type="topic_via_incoming_email",
            to_address=sender,
            topic_id=post.topic_id,
            user_id=user.id,
        )
        self._transition(ReceiverState.TOPIC_CREATED, topic_id=post.topic_id, category_id=category.id)
        return NewTopic(
            body=self.body.text,
            subject=self.message.subject,
            category_id=category.id,
            author=user,
            post=post,
        )

    def create_reply(self, email_log: Optional["EmailLog"]) -> ReplyOutcome:
        if email_log is None:
            raise EmailLogNotFound("reply key did not resolve")
        topic = self.forum.find_topic(email_log.topic_id)
        if topic is None:
            raise TopicNotFoundError(f"topic {email_log.topic_id} not found")
        if topic.closed:
            raise TopicClosedError(f"topic {email_log.topic_id} is closed")

        post = self._create_post_with_attachments(
            email_log.user,
            raw=self.body.text,
            topic_id=email_log.topic_id,
            reply_to_post_number=email_log.post_number,
        )
        self._transition(ReceiverState.REPLY_CREATED, topic_id=email_log.topic_id, post_id=post.id)
        return ReplyOutcome(body=self.body.text, email_log=email_log, post=post)

    def _create_post_with_attachments(self, user: "User", **post_opts: Any) -> "Post":
        options: dict[str, Any] = {"cooking_options": {"traditional_markdown_linebreaks": True}}
        options.update(post_opts)
        options["raw"] = append_attachments(options["raw"], self.message.attachments, user, self.forum)
        options["via_email"] = True
        options["raw_email"] = self.raw.decode("utf-8", errors="replace") if isinstance(self.raw, bytes) else self.raw
        return self.forum.create_post(user, options)


def receive_email(
    raw: bytes | str,
    *,
    settings: "Settings",
    forum: "Forum",
    html_cleaner: Callable[[str], str] = html_to_text,
) -> ProcessingOutcome:
    """Process one message and report failures as a ProcessingFailure."""
    receiver = Receiver(raw, settings=settings, forum=forum, html_cleaner=html_cleaner)
    try:
        return receiver.process()
    except ProcessingError as exc:
        logger.warning(
            "Rejected inbound email",
            extra={"event": "email_rejected", "kind": exc.kind, "error": str(exc)},
        )
        return ProcessingFailure(kind=exc.kind, message=str(exc))
