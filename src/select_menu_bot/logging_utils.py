from __future__ import annotations

import json
import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Any

from .config import LogConfig

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _coerce(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_coerce(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _coerce(item) for key, item in value.items()}
    return str(value)


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """Emit one structured log line: ``{"event": ..., <fields>}``."""
    if not logger.isEnabledFor(level):
        return
    payload: dict[str, Any] = {"event": event}
    exc = fields.pop("exc", None)
    for key, value in fields.items():
        payload[key] = _coerce(value)
    if isinstance(exc, BaseException):
        payload["error"] = str(exc)
        payload["error_type"] = type(exc).__name__
    logger.log(level, json.dumps(payload, ensure_ascii=False))


def setup_rotating_logger(name: str, log_config: LogConfig) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(log_config.level)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(_FORMAT)
    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if log_config.path is not None:
        log_config.path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_config.path,
            maxBytes=log_config.max_bytes,
            backupCount=log_config.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    return logger
