from __future__ import annotations

DISCORD_API_BASE_URL = "https://discord.com/api/v10"
DISCORD_GATEWAY_URL = "wss://gateway.discord.gg/?v=10&encoding=json"

# Gateway intents bitflags (https://discord.com/developers/docs/topics/gateway#gateway-intents).
DISCORD_INTENT_GUILD_MESSAGES = 1 << 9
DISCORD_INTENT_MESSAGE_CONTENT = 1 << 15

DISCORD_EPHEMERAL_FLAG = 64

# Interaction types.
INTERACTION_TYPE_APPLICATION_COMMAND = 2
INTERACTION_TYPE_MESSAGE_COMPONENT = 3

# Interaction callback types.
CHANNEL_MESSAGE_WITH_SOURCE = 4

# Channel types accepted by the channel select menu and channel options.
CHANNEL_TYPE_GUILD_TEXT = 0
CHANNEL_TYPE_GUILD_CATEGORY = 4
CHANNEL_TYPE_PUBLIC_THREAD = 11
CHANNEL_TYPE_PRIVATE_THREAD = 12
SELECTABLE_CHANNEL_TYPES = (
    CHANNEL_TYPE_GUILD_TEXT,
    CHANNEL_TYPE_PUBLIC_THREAD,
    CHANNEL_TYPE_PRIVATE_THREAD,
    CHANNEL_TYPE_GUILD_CATEGORY,
)

SELECT_MENU_COMMAND_NAME = "select-menu"
LEGACY_TEXT_TRIGGER = "!select"

# Keeps the embed description well under Discord's 4096 character limit.
DEFAULT_MAX_RESOLVED_CHARS = 1000
MAX_RESOLVED_CHARS_LIMIT = 4000
