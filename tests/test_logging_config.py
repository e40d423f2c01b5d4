import json
import logging

from pythonjsonlogger.json import JsonFormatter

from mail_receiver.services.logging_config import configure_logging, create_json_formatter


def test_json_formatter_emits_extra_fields() -> None:
    record = logging.LogRecord("mail_receiver.receiver", logging.INFO, __file__, 1, "Rejected inbound email", (), None)
    record.event = "email_rejected"
    record.kind = "EmptyEmailError"

    payload = json.loads(create_json_formatter().format(record))

    assert payload["message"] == "Rejected inbound email"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "mail_receiver.receiver"
    assert payload["event"] == "email_rejected"
    assert payload["kind"] == "EmptyEmailError"


def test_configure_logging_installs_json_handler() -> None:
    root = logging.getLogger()
    previous_handlers, previous_level = root.handlers[:], root.level
    try:
        configure_logging("debug")

        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
    finally:
        root.handlers = previous_handlers
        root.setLevel(previous_level)
