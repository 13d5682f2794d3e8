from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .commands import CHANNEL, ROLE, USER
from .constants import (
    INTERACTION_TYPE_APPLICATION_COMMAND,
    INTERACTION_TYPE_MESSAGE_COMPONENT,
)

# Option-name prefix -> option type the value must carry.
SEED_OPTION_PREFIXES = (
    ("user-", USER),
    ("role-", ROLE),
    ("channel-", CHANNEL),
)


class OptionKindMismatch(ValueError):
    """A command option did not carry the value type its name promises."""

    def __init__(self, name: str, *, expected: int, actual: object) -> None:
        super().__init__(
            f"option {name!r} expected type {expected}, got {actual!r}"
        )
        self.name = name
        self.expected = expected
        self.actual = actual


@dataclass(frozen=True)
class CommandOptionValue:
    name: str
    kind: object
    value: object

    @classmethod
    def from_payload(cls, option: dict[str, Any]) -> "CommandOptionValue":
        return cls(
            name=str(option.get("name") or ""),
            kind=option.get("type"),
            value=option.get("value"),
        )


@dataclass(frozen=True)
class SelectMenuSeeds:
    """Deduplicated default values, in first-seen order."""

    users: tuple[str, ...] = ()
    roles: tuple[str, ...] = ()
    channels: tuple[str, ...] = ()


def _as_id(value: object) -> str | None:
    if value is None or isinstance(value, bool):
        return None
    token = str(value).strip()
    return token or None


def narrow_option(option: CommandOptionValue, expected: int) -> str:
    if option.kind != expected:
        raise OptionKindMismatch(option.name, expected=expected, actual=option.kind)
    entity_id = _as_id(option.value)
    if entity_id is None:
        raise OptionKindMismatch(option.name, expected=expected, actual=option.value)
    return entity_id


def parse_select_menu_seeds(options: object) -> SelectMenuSeeds:
    """Collect ``user-*``/``role-*``/``channel-*`` option values.

    Raises ``OptionKindMismatch`` on the first option whose type does not match
    its prefix; nothing collected so far is returned in that case.
    """
    # dicts keep insertion order, which keeps the rendered defaults stable.
    seeds: dict[int, dict[str, None]] = {USER: {}, ROLE: {}, CHANNEL: {}}
    for raw_option in options if isinstance(options, list) else []:
        if not isinstance(raw_option, dict):
            continue
        option = CommandOptionValue.from_payload(raw_option)
        for prefix, expected in SEED_OPTION_PREFIXES:
            if option.name.startswith(prefix):
                seeds[expected][narrow_option(option, expected)] = None
                break
    return SelectMenuSeeds(
        users=tuple(seeds[USER]),
        roles=tuple(seeds[ROLE]),
        channels=tuple(seeds[CHANNEL]),
    )


def extract_interaction_id(interaction_payload: dict[str, Any]) -> Optional[str]:
    return _as_id(interaction_payload.get("id"))


def extract_interaction_token(interaction_payload: dict[str, Any]) -> Optional[str]:
    return _as_id(interaction_payload.get("token"))


def extract_channel_id(interaction_payload: dict[str, Any]) -> Optional[str]:
    channel = interaction_payload.get("channel")
    if isinstance(channel, dict):
        channel_id = _as_id(channel.get("id"))
        if channel_id:
            return channel_id
    return _as_id(interaction_payload.get("channel_id"))


def extract_guild_id(interaction_payload: dict[str, Any]) -> Optional[str]:
    return _as_id(interaction_payload.get("guild_id"))


def extract_user_id(interaction_payload: dict[str, Any]) -> Optional[str]:
    member = interaction_payload.get("member")
    if isinstance(member, dict):
        member_user = member.get("user")
        if isinstance(member_user, dict):
            user_id = _as_id(member_user.get("id"))
            if user_id:
                return user_id
    user = interaction_payload.get("user")
    if isinstance(user, dict):
        return _as_id(user.get("id"))
    return None


def is_application_command(interaction_payload: dict[str, Any]) -> bool:
    return interaction_payload.get("type") == INTERACTION_TYPE_APPLICATION_COMMAND


def is_component_interaction(interaction_payload: dict[str, Any]) -> bool:
    return interaction_payload.get("type") == INTERACTION_TYPE_MESSAGE_COMPONENT


def extract_command_name(interaction_payload: dict[str, Any]) -> Optional[str]:
    data = interaction_payload.get("data")
    if not isinstance(data, dict):
        return None
    name = data.get("name")
    return name if isinstance(name, str) and name else None


def extract_command_options(interaction_payload: dict[str, Any]) -> list[Any]:
    data = interaction_payload.get("data")
    if not isinstance(data, dict):
        return []
    options = data.get("options")
    return options if isinstance(options, list) else []


def extract_component_custom_id(interaction_payload: dict[str, Any]) -> Optional[str]:
    data = interaction_payload.get("data")
    if not isinstance(data, dict):
        return None
    custom_id = data.get("custom_id")
    # Echoed back verbatim in the selection summary.
    return custom_id if isinstance(custom_id, str) and custom_id else None


def extract_component_values(interaction_payload: dict[str, Any]) -> list[str]:
    data = interaction_payload.get("data")
    if not isinstance(data, dict):
        return []
    values = data.get("values")
    if not isinstance(values, list):
        return []
    return [str(v) for v in values if isinstance(v, (str, int, float))]


def extract_component_resolved(interaction_payload: dict[str, Any]) -> Any:
    data = interaction_payload.get("data")
    if not isinstance(data, dict):
        return None
    return data.get("resolved")
