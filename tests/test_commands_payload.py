from __future__ import annotations

from select_menu_bot.commands import CHANNEL, ROLE, USER, build_application_commands


def test_select_menu_command_schema() -> None:
    commands = build_application_commands()
    assert len(commands) == 1
    command = commands[0]
    assert command["name"] == "select-menu"
    assert command["type"] == 1
    assert command["dm_permission"] is False
    assert [(o["name"], o["type"]) for o in command["options"]] == [
        ("user-1", USER),
        ("user-2", USER),
        ("role-1", ROLE),
        ("role-2", ROLE),
        ("channel-1", CHANNEL),
        ("channel-2", CHANNEL),
    ]
    assert all(option["required"] is False for option in command["options"])


def test_channel_options_are_restricted() -> None:
    options = build_application_commands()[0]["options"]
    for option in options:
        if option["type"] == CHANNEL:
            assert option["channel_types"] == [0, 11, 12, 4]
        else:
            assert "channel_types" not in option
