"""Typed failures raised while processing an inbound email.

Every failure is terminal for the message being processed.
"""
from __future__ import annotations

from typing import Any


class ProcessingError(Exception):
    """Base exception for all inbound email processing failures."""

    @property
    def kind(self) -> str:
        return type(self).__name__


class EmailUnparsableError(ProcessingError):
    """The message or one of its parts could not be decoded."""


class EmptyEmailError(ProcessingError):
    """No usable body text remained after extraction."""


class UserNotFoundError(ProcessingError):
    """The sender is unknown and the destination does not accept strangers."""


class UserNotSufficientTrustLevelError(ProcessingError):
    def __init__(self, user: Any = None) -> None:
        super().__init__(f"user {getattr(user, 'username', user)!r} lacks the required trust level")
        self.user = user


class BadDestinationAddress(ProcessingError):
    """No recipient address routes anywhere, or category routing is disabled."""


class TopicNotFoundError(ProcessingError):
    """Reply target is missing, or the message was generated automatically."""


class TopicClosedError(ProcessingError):
    """Reply target topic no longer accepts replies."""


class EmailLogNotFound(ProcessingError):
    """The reply key does not point at an outbound notification."""


class InvalidPost(ProcessingError):
    """The forum rejected the post."""
