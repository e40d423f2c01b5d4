import logging

from pythonjsonlogger.json import JsonFormatter

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
FIELD_RENAME_MAP = {
    "asctime": "ts",
    "levelname": "level",
    "name": "logger",
}


def create_json_formatter() -> JsonFormatter:
    return JsonFormatter(LOG_FORMAT, rename_fields=FIELD_RENAME_MAP)


def configure_logging(level: str = "INFO") -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(create_json_formatter())

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level.upper())
