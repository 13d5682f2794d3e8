from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from .constants import (
    DEFAULT_MAX_RESOLVED_CHARS,
    DISCORD_API_BASE_URL,
    DISCORD_INTENT_GUILD_MESSAGES,
    DISCORD_INTENT_MESSAGE_CONTENT,
    MAX_RESOLVED_CHARS_LIMIT,
)
from .errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "select-menu-bot.yml"
DEFAULT_BOT_TOKEN_ENV = "DISCORD_TOKEN"
DEFAULT_COMMAND_SCOPE = "global"
# Message intents only matter for the legacy ``!select`` trigger; interactions
# are delivered regardless.
DEFAULT_INTENTS = DISCORD_INTENT_GUILD_MESSAGES | DISCORD_INTENT_MESSAGE_CONTENT
DEFAULT_LOG_MAX_BYTES = 5 * 1024 * 1024
DEFAULT_LOG_BACKUP_COUNT = 3


@dataclass(frozen=True)
class LogConfig:
    path: Optional[Path] = None
    max_bytes: int = DEFAULT_LOG_MAX_BYTES
    backup_count: int = DEFAULT_LOG_BACKUP_COUNT
    level: int = logging.INFO


@dataclass(frozen=True)
class CommandRegistration:
    scope: str = DEFAULT_COMMAND_SCOPE
    guild_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class BotConfig:
    root: Path
    bot_token_env: str
    bot_token: str
    intents: int = DEFAULT_INTENTS
    command_registration: CommandRegistration = field(
        default_factory=CommandRegistration
    )
    max_resolved_chars: int = DEFAULT_MAX_RESOLVED_CHARS
    legacy_text_trigger: bool = False
    timeout_seconds: Optional[float] = None
    gateway_url: Optional[str] = None
    api_base_url: str = DISCORD_API_BASE_URL
    log: LogConfig = field(default_factory=LogConfig)

    @classmethod
    def from_raw(cls, *, root: Path, raw: dict[str, Any]) -> "BotConfig":
        cfg: dict[str, Any] = raw if isinstance(raw, dict) else {}
        bot_token_env = str(cfg.get("bot_token_env", DEFAULT_BOT_TOKEN_ENV)).strip()
        if not bot_token_env:
            raise ConfigError("bot_token_env must be non-empty")
        bot_token = (os.environ.get(bot_token_env) or "").strip()
        if not bot_token:
            raise ConfigError(f"env var {bot_token_env} is unset")

        intents = cfg.get("intents", DEFAULT_INTENTS)
        if not isinstance(intents, int) or isinstance(intents, bool):
            raise ConfigError("intents must be an integer")
        if intents < 0:
            raise ConfigError("intents must be >= 0")

        registration_raw = cfg.get("command_registration")
        registration_cfg = (
            registration_raw if isinstance(registration_raw, dict) else {}
        )
        scope = (
            str(registration_cfg.get("scope", DEFAULT_COMMAND_SCOPE)).strip().lower()
        )
        if scope not in {"global", "guild"}:
            raise ConfigError("command_registration.scope must be 'global' or 'guild'")
        guild_ids = tuple(
            dict.fromkeys(_parse_string_ids(registration_cfg.get("guild_ids")))
        )
        if scope == "guild" and not guild_ids:
            raise ConfigError(
                "command_registration.guild_ids is required for guild scope"
            )

        max_resolved_chars = _parse_positive_int_or_default(
            cfg.get("max_resolved_chars"),
            default=DEFAULT_MAX_RESOLVED_CHARS,
            key="max_resolved_chars",
        )

        timeout_raw = cfg.get("timeout_seconds")
        timeout_seconds: Optional[float] = None
        if timeout_raw is not None:
            try:
                timeout_seconds = float(timeout_raw)
            except (TypeError, ValueError) as exc:
                raise ConfigError("timeout_seconds must be a number") from exc
            if timeout_seconds <= 0:
                raise ConfigError("timeout_seconds must be > 0")

        gateway_url = cfg.get("gateway_url")
        if gateway_url is not None and not isinstance(gateway_url, str):
            raise ConfigError("gateway_url must be a string")
        api_base_url = cfg.get("api_base_url", DISCORD_API_BASE_URL)
        if not isinstance(api_base_url, str) or not api_base_url.strip():
            raise ConfigError("api_base_url must be a non-empty string")

        return cls(
            root=root,
            bot_token_env=bot_token_env,
            bot_token=bot_token,
            intents=intents,
            command_registration=CommandRegistration(scope=scope, guild_ids=guild_ids),
            max_resolved_chars=min(max_resolved_chars, MAX_RESOLVED_CHARS_LIMIT),
            legacy_text_trigger=_parse_bool_or_default(
                cfg.get("legacy_text_trigger"),
                default=False,
                key="legacy_text_trigger",
            ),
            timeout_seconds=timeout_seconds,
            gateway_url=gateway_url or None,
            api_base_url=api_base_url.strip(),
            log=_parse_log_config(cfg.get("log"), root=root),
        )


def load_bot_config(path: Optional[Path] = None) -> BotConfig:
    """Load config from ``path`` (a YAML file or a directory holding one).

    Environment variables from ``.env`` in the config root take precedence over
    inherited ones so a stale exported token does not win.
    """
    start = (path or Path.cwd()).resolve()
    if start.is_dir():
        root = start
        config_path = start / CONFIG_FILENAME
    else:
        root = start.parent
        config_path = start
    dotenv_path = root / ".env"
    if dotenv_path.exists():
        load_dotenv(dotenv_path=dotenv_path, override=True)
    return BotConfig.from_raw(root=root, raw=_load_yaml_dict(config_path))


def _load_yaml_dict(path: Path) -> dict[str, Any]:
    if not path.exists():
        logger.debug("Config file %s not found; using defaults", path)
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Failed to read config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config file must be a mapping: {path}")
    return data


def _parse_log_config(value: Any, *, root: Path) -> LogConfig:
    log_cfg = value if isinstance(value, dict) else {}
    path_raw = log_cfg.get("path")
    if path_raw is not None and (not isinstance(path_raw, str) or not path_raw):
        raise ConfigError("log.path must be a string path")
    level_raw = str(log_cfg.get("level", "INFO")).strip().upper()
    level = logging.getLevelName(level_raw)
    if not isinstance(level, int):
        raise ConfigError(f"log.level is not a logging level: {level_raw}")
    return LogConfig(
        path=(root / path_raw).resolve() if path_raw else None,
        max_bytes=_parse_positive_int_or_default(
            log_cfg.get("max_bytes"), default=DEFAULT_LOG_MAX_BYTES, key="log.max_bytes"
        ),
        backup_count=_parse_positive_int_or_default(
            log_cfg.get("backup_count"),
            default=DEFAULT_LOG_BACKUP_COUNT,
            key="log.backup_count",
        ),
        level=level,
    )


def _parse_string_ids(value: Any) -> list[str]:
    if value is None:
        return []
    items = value if isinstance(value, (list, tuple, set, frozenset)) else [value]
    parsed: list[str] = []
    for item in items:
        token = str(item).strip()
        if token:
            parsed.append(token)
    return parsed


def _parse_positive_int_or_default(value: Any, *, default: int, key: str) -> int:
    if value is None:
        return default
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{key} must be an integer") from exc
    if parsed <= 0:
        return default
    return parsed


def _parse_bool_or_default(value: Any, *, default: bool, key: str) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    raise ConfigError(f"{key} must be a boolean")
