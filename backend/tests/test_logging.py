import io
import json
import logging

from blissmixer.core.logging import setup_logging


def test_json_lines_carry_level_logger_and_service():
    stream = io.StringIO()
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    try:
        setup_logging("info", stream)
        logging.getLogger("mixer").info("picked %d track(s)", 3)
        logging.getLogger("sqlalchemy.engine").info("SELECT 1")
    finally:
        root.handlers[:] = handlers
        root.setLevel(level)

    lines = [json.loads(line) for line in stream.getvalue().splitlines()]
    assert len(lines) == 1
    assert lines[0]["message"] == "picked 3 track(s)"
    assert lines[0]["level"] == "INFO"
    assert lines[0]["logger"] == "mixer"
    assert lines[0]["service"] == "blissmixer"


def test_exceptions_are_serialised():
    stream = io.StringIO()
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    try:
        setup_logging("warning", stream)
        try:
            raise ValueError("bad weights")
        except ValueError:
            logging.getLogger("index").exception("load failed")
    finally:
        root.handlers[:] = handlers
        root.setLevel(level)

    record = json.loads(stream.getvalue())
    assert record["level"] == "ERROR"
    assert "ValueError: bad weights" in record["exc_info"]
