from __future__ import annotations

from dataclasses import dataclass
from functools import reduce
from typing import Callable, Iterable, Optional, Union

from mail_receiver.services.forum import Category, EmailLog
from mail_receiver.services.token_codec import extract_reply_key


@dataclass(frozen=True)
class CategoryDestination:
    category: Category


@dataclass(frozen=True)
class ReplyDestination:
    email_log: Optional[EmailLog]


@dataclass(frozen=True)
class InvalidDestination:
    pass


RoutingDecision = Union[CategoryDestination, ReplyDestination, InvalidDestination]
INVALID = InvalidDestination()


def check_address(
    address: str,
    *,
    reply_address_template: str,
    find_category: Callable[[str], Optional[Category]],
    find_email_log: Callable[[str], Optional[EmailLog]],
) -> RoutingDecision:
    category = find_category(address)
    if category:
        return CategoryDestination(category)

    reply_key = extract_reply_key(address, reply_address_template)
    if reply_key:
        email_log = find_email_log(reply_key)
        if email_log:
            return ReplyDestination(email_log)

    return INVALID


def route(
    recipients: Iterable[str],
    *,
    reply_address_template: str,
    find_category: Callable[[str], Optional[Category]],
    find_email_log: Callable[[str], Optional[EmailLog]],
) -> RoutingDecision:
    """Route by the first recipient that resolves; later ones are never looked up."""

    def step(decision: RoutingDecision, address: str) -> RoutingDecision:
        if not isinstance(decision, InvalidDestination):
            return decision
        return check_address(
            address,
            reply_address_template=reply_address_template,
            find_category=find_category,
            find_email_log=find_email_log,
        )

    return reduce(step, recipients, INVALID)
