from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

import pytest
from typer.testing import CliRunner

from select_menu_bot.cli import _register_application_commands, app

runner = CliRunner()


def test_show_commands_prints_schema() -> None:
    result = runner.invoke(app, ["show-commands"])
    assert result.exit_code == 0
    commands = json.loads(result.stdout)
    assert commands[0]["name"] == "select-menu"


def test_start_without_token_exits_with_error(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("DISCORD_TOKEN", raising=False)
    result = runner.invoke(app, ["start", "--config", str(tmp_path)])
    assert result.exit_code == 1


def test_register_commands_without_token_exits_with_error(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("DISCORD_TOKEN", raising=False)
    result = runner.invoke(app, ["register-commands", "--config", str(tmp_path)])
    assert result.exit_code == 1


class _FakeRestClient:
    def __init__(self) -> None:
        self.registrations: list[dict[str, Any]] = []
        self.closed = False

    async def get_current_application(self) -> dict[str, Any]:
        return {"id": 42, "name": "demo"}

    async def bulk_overwrite_application_commands(
        self,
        *,
        application_id: str,
        commands: list[dict[str, Any]],
        guild_id: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        self.registrations.append(
            {
                "application_id": application_id,
                "guild_id": guild_id,
                "commands": commands,
            }
        )
        return [{"id": "cmd-1", **commands[0]}]

    async def close(self) -> None:
        self.closed = True


@pytest.mark.anyio
async def test_register_application_commands_uses_configured_scope(
    bot_config_factory,
) -> None:
    config = bot_config_factory(
        command_registration={"scope": "guild", "guild_ids": ["9"]},
    )
    rest = _FakeRestClient()

    application_id = await _register_application_commands(
        config,
        logger=logging.getLogger("test"),
        rest_client=rest,
    )

    assert application_id == "42"
    assert [(r["application_id"], r["guild_id"]) for r in rest.registrations] == [
        ("42", "9")
    ]
    assert rest.registrations[0]["commands"][0]["name"] == "select-menu"
    assert rest.closed is False
