import re
import secrets
from functools import lru_cache
from typing import Optional

REPLY_KEY_PLACEHOLDER = "%{reply_key}"


def generate_reply_key() -> str:
    return secrets.token_hex(16)


def build_reply_address(template: str, reply_key: str) -> str:
    if REPLY_KEY_PLACEHOLDER not in template:
        raise ValueError(f"reply address template must contain {REPLY_KEY_PLACEHOLDER}")
    return template.replace(REPLY_KEY_PLACEHOLDER, reply_key)


@lru_cache(maxsize=32)
def reply_address_pattern(template: str) -> re.Pattern[str]:
    escaped = re.escape(template)
    return re.compile(escaped.replace(re.escape(REPLY_KEY_PLACEHOLDER), "(.*)"), re.IGNORECASE)


def extract_reply_key(address: str, template: str) -> Optional[str]:
    if not template or REPLY_KEY_PLACEHOLDER not in template:
        return None
    match = reply_address_pattern(template).search(address or "")
    if not match or not match.group(1).strip():
        return None
    return match.group(1)
