from typing import Optional

CANONICAL_ENCODING = "utf-8"


class EncodingError(ValueError):
    def __init__(self, charset: str, reason: str) -> None:
        super().__init__(f"cannot convert body from {charset!r}: {reason}")
        self.charset = charset
        self.reason = reason


def normalize(payload: bytes | None, charset: Optional[str]) -> str:
    """Decode a part payload into canonical text.

    With a declared charset the bytes must be valid in it; there is no
    best-effort fallback. Without one the bytes are taken as UTF-8 already.
    """
    if not payload:
        return ""

    if not charset:
        return payload.decode(CANONICAL_ENCODING, errors="replace")

    try:
        text = payload.decode(charset)
    except LookupError as exc:
        raise EncodingError(charset, "unknown charset") from exc
    except UnicodeDecodeError as exc:
        raise EncodingError(charset, exc.reason) from exc

    try:
        text.encode(CANONICAL_ENCODING)
    except UnicodeEncodeError as exc:
        raise EncodingError(charset, exc.reason) from exc
    return text
