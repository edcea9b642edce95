from __future__ import annotations

import logging
import sys
from typing import IO, Any, Dict, Optional

from pythonjsonlogger import jsonlogger

SERVICE_NAME = "blissmixer"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
# third-party loggers kept at WARNING whatever the service level is
QUIET_LOGGERS = ("uvicorn.access", "faiss", "aiosqlite", "sqlalchemy.engine")


class MixerJsonFormatter(jsonlogger.JsonFormatter):
    """One JSON object per line, tagged with the service name."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("rename_fields", {"levelname": "level", "name": "logger"})
        super().__init__(*args, **kwargs)

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record.setdefault("service", SERVICE_NAME)
        if record.exc_info and "exc_info" not in log_record:
            log_record["exc_info"] = self.formatException(record.exc_info)


def setup_logging(level: str = "WARNING", stream: Optional[IO[str]] = None) -> logging.Handler:
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(MixerJsonFormatter(LOG_FORMAT))

    root = logging.getLogger()
    root.setLevel(level.upper())
    root.handlers.clear()
    root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return handler
