"""Discord select menu demo bot."""

from .components import (
    SelectDefaultValue,
    SelectMenuChoice,
    SelectMenuDefinition,
    SelectMenuKind,
    build_select_menus,
)
from .config import BotConfig, load_bot_config
from .errors import (
    ConfigError,
    DiscordAPIError,
    DiscordPermanentError,
    GatewayError,
    SelectMenuBotError,
)
from .gateway import DiscordGatewaySession, GatewayEvent
from .rest import DiscordRestClient
from .service import (
    ApplicationIdentity,
    InteractionContext,
    SelectMenuBot,
    create_select_menu_bot,
)

__all__ = [
    "ApplicationIdentity",
    "BotConfig",
    "ConfigError",
    "DiscordAPIError",
    "DiscordGatewaySession",
    "DiscordPermanentError",
    "DiscordRestClient",
    "GatewayError",
    "GatewayEvent",
    "InteractionContext",
    "SelectDefaultValue",
    "SelectMenuBot",
    "SelectMenuBotError",
    "SelectMenuChoice",
    "SelectMenuDefinition",
    "SelectMenuKind",
    "build_select_menus",
    "create_select_menu_bot",
    "load_bot_config",
]
