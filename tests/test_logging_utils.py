from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from select_menu_bot.config import LogConfig
from select_menu_bot.logging_utils import log_event, setup_rotating_logger


def test_log_event_emits_json_with_error_fields(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("test.log_event")
    with caplog.at_level(logging.INFO, logger="test.log_event"):
        log_event(
            logger,
            logging.INFO,
            "select_menu.example",
            channel_id="C1",
            guild_ids=("1", "2"),
            exc=RuntimeError("boom"),
        )
    payload = json.loads(caplog.records[-1].getMessage())
    assert payload == {
        "event": "select_menu.example",
        "channel_id": "C1",
        "guild_ids": ["1", "2"],
        "error": "boom",
        "error_type": "RuntimeError",
    }


def test_log_event_skips_disabled_levels(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("test.log_event.disabled")
    with caplog.at_level(logging.WARNING, logger="test.log_event.disabled"):
        log_event(logger, logging.DEBUG, "select_menu.quiet")
    assert caplog.records == []


def test_setup_rotating_logger_writes_file(tmp_path: Path) -> None:
    log_path = tmp_path / "logs" / "bot.log"
    logger = setup_rotating_logger(
        "test.rotating", LogConfig(path=log_path, level=logging.DEBUG)
    )
    try:
        log_event(logger, logging.INFO, "select_menu.written")
        for handler in logger.handlers:
            handler.flush()
        assert "select_menu.written" in log_path.read_text(encoding="utf-8")
        assert len(logger.handlers) == 2

        setup_rotating_logger("test.rotating", LogConfig(path=log_path))
        assert len(logger.handlers) == 2
    finally:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
