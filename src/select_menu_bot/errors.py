from __future__ import annotations

from typing import Optional


class SelectMenuBotError(Exception):
    """Base error for the select menu bot."""


class ConfigError(SelectMenuBotError):
    """Bot configuration is missing or invalid."""


class DiscordAPIError(SelectMenuBotError):
    """Discord HTTP API request error."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DiscordPermanentError(DiscordAPIError):
    """Non-retryable Discord API error (bad token, missing access)."""


class GatewayError(SelectMenuBotError):
    """Failure while reading the next event from the gateway.

    ``fatal`` is set when the session can never recover (rejected
    credentials, disallowed intents); otherwise the event is lost and the
    next read reconnects.
    """

    def __init__(
        self,
        message: str,
        *,
        fatal: bool = False,
        close_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.fatal = fatal
        self.close_code = close_code
