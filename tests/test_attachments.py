from pathlib import Path

from mail_receiver.services.attachments import (
    append_attachments,
    attachment_markdown,
    human_size,
    is_image,
)
from mail_receiver.services.forum import Upload
from mail_receiver.services.message import Attachment


def test_human_size() -> None:
    assert human_size(1) == "1 Byte"
    assert human_size(123) == "123 Bytes"
    assert human_size(1024) == "1 KB"
    assert human_size(1234) == "1.21 KB"
    assert human_size(12345678) == "11.8 MB"


def test_is_image_by_extension() -> None:
    assert is_image("photo.JPG")
    assert is_image("scan.tiff")
    assert not is_image("report.pdf")


def test_attachment_markdown_for_image_and_file() -> None:
    image = Upload(url="/u/a.png", original_filename="a.png", filesize=10, width=4, height=3)
    document = Upload(url="/u/b.pdf", original_filename="b.pdf", filesize=2048)

    assert attachment_markdown(image) == "<img src='/u/a.png' width='4' height='3'>"
    assert attachment_markdown(document) == "<a class='attachment' href='/u/b.pdf'>b.pdf</a> (2 KB)"


def test_append_attachments_skips_failed_uploads(forum, bob) -> None:
    forum.failing_uploads.add("broken.pdf")
    attachments = [
        Attachment(filename="broken.pdf", payload=b"%PDF", content_type="application/pdf"),
        Attachment(filename="notes.txt", payload=b"hello", content_type="text/plain"),
    ]

    raw = append_attachments("Body", attachments, bob, forum)

    assert raw == "Body\n<a class='attachment' href='/uploads/notes.txt'>notes.txt</a> (5 Bytes)\n"
    assert len(forum.uploaded_paths) == 2
    assert not any(path.exists() for path in forum.uploaded_paths)


def test_append_attachments_skips_unwritable_temp_file(forum, bob, monkeypatch) -> None:
    real_write_bytes = Path.write_bytes

    def write_bytes(self: Path, data: bytes) -> int:
        if data == b"disk full":
            raise OSError("No space left on device")
        return real_write_bytes(self, data)

    monkeypatch.setattr(Path, "write_bytes", write_bytes)
    attachments = [
        Attachment(filename="big.bin", payload=b"disk full", content_type="application/octet-stream"),
        Attachment(filename="notes.txt", payload=b"hello", content_type="text/plain"),
    ]

    raw = append_attachments("Body", attachments, bob, forum)

    assert raw == "Body\n<a class='attachment' href='/uploads/notes.txt'>notes.txt</a> (5 Bytes)\n"
    assert len(forum.uploaded_paths) == 1
