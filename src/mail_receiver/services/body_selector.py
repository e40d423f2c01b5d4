from __future__ import annotations

import re
from dataclasses import dataclass
from email.message import Message
from typing import Callable, Optional

from mail_receiver.exceptions import EmptyEmailError
from mail_receiver.services.charset import normalize
from mail_receiver.services.html_cleaner import html_to_text
from mail_receiver.services.message import is_attachment

# Any of these in the chosen body means the MIME structure was not parsed
# and we are looking at envelope material.
_MIME_ARTIFACTS = (
    re.compile(r"Content-Type:"),
    re.compile(r"multipart/alternative"),
    re.compile(r"text/plain"),
)


def _find_part(root: Message, content_type: str) -> Optional[Message]:
    for part in root.walk():
        if part.is_multipart() or is_attachment(part):
            continue
        if part.get_content_type() == content_type:
            return part
    return None


@dataclass(frozen=True)
class SelectedBody:
    text: str
    charset: Optional[str] = None


def _decoded_text(part: Optional[Message]) -> Optional[SelectedBody]:
    if part is None:
        return None
    if part.is_multipart():
        return SelectedBody("\n".join(sub.as_string() for sub in part.get_payload()))
    charset = part.get_content_charset()
    return SelectedBody(normalize(part.get_payload(decode=True), charset), charset)


def select_body_part(root: Message, html_cleaner: Callable[[str], str] = html_to_text) -> SelectedBody:
    """Pick the authored body and remember which charset it was decoded from."""
    html: Optional[SelectedBody] = None

    if root.is_multipart():
        html = _decoded_text(_find_part(root, "text/html"))
        text = _decoded_text(_find_part(root, "text/plain"))
        if text is not None:
            return text
    elif root.get_content_type() == "text/html":
        html = _decoded_text(root)

    if html is not None:
        body = SelectedBody(html_cleaner(html.text), html.charset)
    else:
        body = _decoded_text(root) or SelectedBody("")

    if any(pattern.search(body.text) for pattern in _MIME_ARTIFACTS):
        raise EmptyEmailError("body still contains MIME structure")

    return body


def select_body(root: Message, html_cleaner: Callable[[str], str] = html_to_text) -> str:
    return select_body_part(root, html_cleaner).text
