from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict
from pathlib import Path

from mail_receiver.config import get_settings
from mail_receiver.receiver import ProcessingFailure, receive_email
from mail_receiver.services.forum_client import ForumClient
from mail_receiver.services.logging_config import configure_logging


def _run(raw: bytes) -> tuple[int, dict]:
    settings = get_settings()
    configure_logging(settings.log_level)

    forum_client = ForumClient(
        settings.forum_base_url,
        settings.forum_api_key,
        api_username=settings.forum_api_username,
        system_username=settings.system_username,
        timeout_seconds=settings.api_timeout_seconds,
        retry_max_attempts=settings.api_retry_max_attempts,
        retry_base_delay_seconds=settings.api_retry_base_delay_seconds,
        retry_max_delay_seconds=settings.api_retry_max_delay_seconds,
    )
    outcome = receive_email(raw, settings=settings, forum=forum_client)
    payload = {"outcome": type(outcome).__name__, **asdict(outcome)}
    if isinstance(outcome, ProcessingFailure):
        return 1, payload
    return 0, payload


def main() -> int:
    parser = argparse.ArgumentParser(description="Turn one raw email into a forum topic or reply.")
    parser.add_argument("path", nargs="?", help="File holding the raw message; stdin when omitted.")
    args = parser.parse_args()

    raw = Path(args.path).read_bytes() if args.path else sys.stdin.buffer.read()
    code, payload = _run(raw)
    print(json.dumps(payload, indent=2, sort_keys=True, default=str))
    return code


if __name__ == "__main__":
    raise SystemExit(main())
