from __future__ import annotations

from typing import Any

from .constants import SELECT_MENU_COMMAND_NAME, SELECTABLE_CHANNEL_TYPES

# Discord application command types.
CHAT_INPUT = 1

# Discord application command option types.
USER = 6
CHANNEL = 7
ROLE = 8

USER_OPTION_DESCRIPTION = "A default value for the user and mentionable select menus"
ROLE_OPTION_DESCRIPTION = "A default value for the role and mentionable select menus"
CHANNEL_OPTION_DESCRIPTION = "A default value for the channel select menu"


def _option(option_type: int, name: str, description: str) -> dict[str, Any]:
    option: dict[str, Any] = {
        "type": option_type,
        "name": name,
        "description": description,
        "required": False,
    }
    if option_type == CHANNEL:
        option["channel_types"] = list(SELECTABLE_CHANNEL_TYPES)
    return option


def build_application_commands() -> list[dict[str, Any]]:
    return [
        {
            "type": CHAT_INPUT,
            "name": SELECT_MENU_COMMAND_NAME,
            "description": "Send a list of test select menus",
            "dm_permission": False,
            "options": [
                _option(USER, "user-1", USER_OPTION_DESCRIPTION),
                _option(USER, "user-2", USER_OPTION_DESCRIPTION),
                _option(ROLE, "role-1", ROLE_OPTION_DESCRIPTION),
                _option(ROLE, "role-2", ROLE_OPTION_DESCRIPTION),
                _option(CHANNEL, "channel-1", CHANNEL_OPTION_DESCRIPTION),
                _option(CHANNEL, "channel-2", CHANNEL_OPTION_DESCRIPTION),
            ],
        }
    ]
