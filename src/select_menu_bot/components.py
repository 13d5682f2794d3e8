from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Iterable, Optional

from .constants import SELECTABLE_CHANNEL_TYPES

COMPONENT_TYPE_ACTION_ROW = 1
DISCORD_SELECT_OPTION_MAX_OPTIONS = 25
DEFAULT_MAX_SELECTED_VALUES = 5


class SelectMenuKind(IntEnum):
    TEXT = 3
    USER = 5
    ROLE = 6
    MENTIONABLE = 7
    CHANNEL = 8


@dataclass(frozen=True)
class SelectMenuChoice:
    label: str
    value: str
    description: Optional[str] = None
    emoji: Optional[str] = None
    default: bool = False

    def to_payload(self) -> dict[str, Any]:
        option: dict[str, Any] = {
            "label": self.label[:100],
            "value": self.value[:100],
            "default": self.default,
        }
        if self.description:
            option["description"] = self.description[:100]
        if self.emoji:
            option["emoji"] = {"name": self.emoji}
        return option


@dataclass(frozen=True)
class SelectDefaultValue:
    id: str
    type: str  # "user", "role" or "channel"

    def to_payload(self) -> dict[str, str]:
        return {"id": self.id, "type": self.type}


@dataclass(frozen=True)
class SelectMenuDefinition:
    custom_id: str
    kind: SelectMenuKind
    placeholder: str
    options: tuple[SelectMenuChoice, ...] = ()
    default_values: tuple[SelectDefaultValue, ...] = ()
    channel_types: tuple[int, ...] = ()
    max_values: Optional[int] = None
    disabled: bool = False

    def to_component(self) -> dict[str, Any]:
        select: dict[str, Any] = {
            "type": int(self.kind),
            "custom_id": self.custom_id,
            "placeholder": self.placeholder[:150],
            "disabled": self.disabled,
        }
        if self.options:
            select["options"] = [
                option.to_payload()
                for option in self.options[:DISCORD_SELECT_OPTION_MAX_OPTIONS]
            ]
        if self.default_values:
            select["default_values"] = [
                value.to_payload() for value in self.default_values
            ]
        if self.channel_types:
            select["channel_types"] = list(self.channel_types)
        if self.max_values is not None:
            select["max_values"] = min(
                self.max_values, DISCORD_SELECT_OPTION_MAX_OPTIONS
            )
        return select


TEXT_SELECT_CHOICES = (
    SelectMenuChoice("Foo", "foo", description="The foo", emoji="\N{DOG}"),
    SelectMenuChoice("Bar", "bar", description="The bar", emoji="\N{FOX FACE}"),
    SelectMenuChoice("Baz", "baz", description="The baz", emoji="\N{CAT}"),
)


def build_action_row(components: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "type": COMPONENT_TYPE_ACTION_ROW,
        "components": components,
    }


def _defaults(ids: Iterable[str], value_type: str) -> tuple[SelectDefaultValue, ...]:
    return tuple(SelectDefaultValue(id=entity_id, type=value_type) for entity_id in ids)


def build_select_menus(
    *,
    users: Iterable[str] = (),
    roles: Iterable[str] = (),
    channels: Iterable[str] = (),
) -> list[SelectMenuDefinition]:
    """Build the five demo select menus, one per select menu kind.

    ``users``/``roles``/``channels`` become pre-selected defaults; the
    mentionable menu gets users followed by roles.
    """
    user_defaults = _defaults(users, "user")
    role_defaults = _defaults(roles, "role")
    channel_defaults = _defaults(channels, "channel")
    return [
        SelectMenuDefinition(
            custom_id="text-select",
            kind=SelectMenuKind.TEXT,
            placeholder="Text select menu",
            options=TEXT_SELECT_CHOICES,
        ),
        SelectMenuDefinition(
            custom_id="user-select",
            kind=SelectMenuKind.USER,
            placeholder="User select menu",
            default_values=user_defaults,
            max_values=DEFAULT_MAX_SELECTED_VALUES,
        ),
        SelectMenuDefinition(
            custom_id="role-select",
            kind=SelectMenuKind.ROLE,
            placeholder="Role select menu",
            default_values=role_defaults,
            max_values=DEFAULT_MAX_SELECTED_VALUES,
        ),
        SelectMenuDefinition(
            custom_id="mentionable-select",
            kind=SelectMenuKind.MENTIONABLE,
            placeholder="Mentionable select menu",
            default_values=user_defaults + role_defaults,
            max_values=DEFAULT_MAX_SELECTED_VALUES,
        ),
        SelectMenuDefinition(
            custom_id="channel-select",
            kind=SelectMenuKind.CHANNEL,
            placeholder="Channel select menu",
            default_values=channel_defaults,
            channel_types=SELECTABLE_CHANNEL_TYPES,
            max_values=DEFAULT_MAX_SELECTED_VALUES,
        ),
    ]


def build_select_menu_rows(menus: Iterable[SelectMenuDefinition]) -> list[dict[str, Any]]:
    # A message holds at most five action rows, one select menu each.
    return [build_action_row([menu.to_component()]) for menu in menus]
