from __future__ import annotations

import json
from typing import Any, Final, Iterable

from .components import SelectMenuDefinition, build_select_menu_rows
from .constants import (
    CHANNEL_MESSAGE_WITH_SOURCE,
    DEFAULT_MAX_RESOLVED_CHARS,
    DISCORD_EPHEMERAL_FLAG,
)

SELECTION_EMBED_TITLE: Final[str] = "Selection information"
SELECTION_EMBED_COLOR: Final[int] = 0x2CCB87
SELECT_MENU_MESSAGE_CONTENT: Final[str] = "Try using the select menus below"
PROVISIONAL_REPLY_CONTENT: Final[str] = "Sending a message with select menus..."
INTERACTION_FAILED_CONTENT: Final[str] = "This interaction failed"


def build_ephemeral_response(content: str) -> dict[str, Any]:
    return {
        "type": CHANNEL_MESSAGE_WITH_SOURCE,
        "data": {
            "content": content,
            "flags": DISCORD_EPHEMERAL_FLAG,
        },
    }


# Shared by every failure reply; treat as read-only.
INTERACTION_FAILED_RESPONSE: Final[dict[str, Any]] = build_ephemeral_response(
    INTERACTION_FAILED_CONTENT
)


def truncate_text(text: str, max_len: int) -> str:
    if max_len <= 0:
        return ""
    return text[:max_len]


def dump_resolved_data(
    resolved: Any, *, max_chars: int = DEFAULT_MAX_RESOLVED_CHARS
) -> str:
    dumped = json.dumps(
        resolved,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )
    return truncate_text(dumped, max_chars)


def format_selection_description(
    custom_id: str,
    values: Iterable[str],
    resolved: Any,
    *,
    max_resolved_chars: int = DEFAULT_MAX_RESOLVED_CHARS,
) -> str:
    return (
        "You interacted with a select menu!\n"
        f"- Select menu ID: {custom_id}\n"
        f"- Selected Values: `{json.dumps(list(values), ensure_ascii=False)}`\n"
        f"- Resolved data: `{dump_resolved_data(resolved, max_chars=max_resolved_chars)}`"
    )


def build_selection_summary_response(
    custom_id: str,
    values: Iterable[str],
    resolved: Any,
    *,
    max_resolved_chars: int = DEFAULT_MAX_RESOLVED_CHARS,
) -> dict[str, Any]:
    return {
        "type": CHANNEL_MESSAGE_WITH_SOURCE,
        "data": {
            "flags": DISCORD_EPHEMERAL_FLAG,
            "allowed_mentions": {"parse": []},
            "tts": False,
            "embeds": [
                {
                    "title": SELECTION_EMBED_TITLE,
                    "color": SELECTION_EMBED_COLOR,
                    "description": format_selection_description(
                        custom_id,
                        values,
                        resolved,
                        max_resolved_chars=max_resolved_chars,
                    ),
                }
            ],
        },
    }


def build_select_menu_message(
    menus: Iterable[SelectMenuDefinition],
) -> dict[str, Any]:
    return {
        "content": SELECT_MENU_MESSAGE_CONTENT,
        "components": build_select_menu_rows(menus),
    }
