from __future__ import annotations

import json
import logging

from audioctl.services.logging import setup_logging


def test_setup_is_idempotent(tmp_path):
    logfile = tmp_path / "logs" / "audioctl.log"
    setup_logging("DEBUG", logfile=logfile)
    logger = setup_logging("DEBUG", logfile=logfile)

    assert len(logger.handlers) == 2
    assert logger.level == logging.DEBUG
    assert logger.propagate is False


def test_file_handler_writes_json_lines(tmp_path):
    logfile = tmp_path / "audioctl.log"
    logger = setup_logging("INFO", logfile=logfile)

    logging.getLogger("audioctl.pairing").info("pairing complete session=%s", "s-1")
    logging.getLogger("audioctl.pairing").debug("filtered out")
    for handler in logger.handlers:
        handler.flush()

    lines = [json.loads(line) for line in logfile.read_text(encoding="utf-8").splitlines()]
    assert len(lines) == 1
    assert lines[0]["logger"] == "audioctl.pairing"
    assert lines[0]["level"] == "INFO"
    assert lines[0]["msg"] == "pairing complete session=s-1"
    assert "time" in lines[0]


def test_console_only_without_logfile():
    logger = setup_logging("WARNING")
    assert len(logger.handlers) == 1
