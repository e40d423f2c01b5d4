from __future__ import annotations

import email
from dataclasses import dataclass
from email import policy
from email.message import EmailMessage, Message
from email.utils import getaddresses, parseaddr


@dataclass(frozen=True)
class Attachment:
    filename: str
    payload: bytes
    content_type: str


@dataclass(frozen=True)
class InboundMessage:
    sender: str
    recipients: tuple[str, ...]
    subject: str
    headers: str
    root: EmailMessage
    attachments: tuple[Attachment, ...] = ()


def is_attachment(part: Message) -> bool:
    if part.is_multipart():
        return False
    disposition = (part.get_content_disposition() or "").lower()
    return disposition == "attachment" or bool(part.get_filename())


def _collect_attachments(root: Message) -> tuple[Attachment, ...]:
    attachments: list[Attachment] = []
    for part in root.walk():
        if part is root or not is_attachment(part):
            continue
        attachments.append(
            Attachment(
                filename=part.get_filename() or "attachment",
                payload=part.get_payload(decode=True) or b"",
                content_type=part.get_content_type(),
            )
        )
    return tuple(attachments)


def _header_blob(root: Message) -> str:
    return "\n".join(f"{name}: {value}" for name, value in root.items())


def parse_message(raw: bytes | str) -> InboundMessage:
    if isinstance(raw, str):
        root = email.message_from_string(raw, policy=policy.default)
    else:
        root = email.message_from_bytes(raw, policy=policy.default)

    recipients = tuple(
        address.strip()
        for _, address in getaddresses([str(value) for value in root.get_all("to", [])])
        if address.strip()
    )
    _, sender = parseaddr(str(root.get("from", "")))

    return InboundMessage(
        sender=sender.strip().lower(),
        recipients=recipients,
        subject=str(root.get("subject", "") or ""),
        headers=_header_blob(root),
        root=root,
        attachments=_collect_attachments(root),
    )
