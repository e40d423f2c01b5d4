import logging
import re
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from mail_receiver.services.forum import Forum, Upload, User
    from mail_receiver.services.message import Attachment

logger = logging.getLogger(__name__)

IMAGE_FILENAME = re.compile(r"\.(jpg|jpeg|gif|png|tiff|tif|bmp)$", re.IGNORECASE)
_SIZE_UNITS = ("KB", "MB", "GB", "TB")


def is_image(filename: str) -> bool:
    return bool(IMAGE_FILENAME.search(filename or ""))


def human_size(num_bytes: int) -> str:
    if num_bytes < 1024:
        return "1 Byte" if num_bytes == 1 else f"{num_bytes} Bytes"

    value = float(num_bytes)
    unit = _SIZE_UNITS[0]
    for unit in _SIZE_UNITS:
        value /= 1024
        if value < 1024:
            break

    # three significant digits, trailing zeros dropped
    decimals = max(0, 3 - len(str(int(value))))
    formatted = f"{value:.{decimals}f}"
    if "." in formatted:
        formatted = formatted.rstrip("0").rstrip(".")
    return f"{formatted} {unit}"


def attachment_markdown(upload: "Upload") -> str:
    if is_image(upload.original_filename):
        return f"<img src='{upload.url}' width='{upload.width}' height='{upload.height}'>"
    return (
        f"<a class='attachment' href='{upload.url}'>{upload.original_filename}</a> "
        f"({human_size(upload.filesize)})"
    )


def append_attachments(raw: str, attachments: Iterable["Attachment"], user: "User", forum: "Forum") -> str:
    """Upload each attachment and append a reference to it on success.

    Failed uploads are logged and skipped.
    """
    for attachment in attachments:
        with tempfile.TemporaryDirectory(prefix="email-attachment-") as tmp_dir:
            path = Path(tmp_dir) / "payload"
            try:
                path.write_bytes(attachment.payload)
                upload = forum.create_upload(user, path, attachment.filename)
            except Exception as exc:
                logger.warning(
                    "Skipping attachment after upload failure",
                    extra={
                        "event": "attachment_upload_failed",
                        "attachment_filename": attachment.filename,
                        "error": repr(exc),
                    },
                )
                continue

        if upload is None:
            logger.warning(
                "Skipping attachment rejected by the forum",
                extra={"event": "attachment_upload_rejected", "attachment_filename": attachment.filename},
            )
            continue
        raw += f"\n{attachment_markdown(upload)}\n"
    return raw
