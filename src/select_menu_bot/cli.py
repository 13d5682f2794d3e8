from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import NoReturn, Optional

import typer

from .commands import build_application_commands
from .config import BotConfig, load_bot_config
from .errors import ConfigError, DiscordAPIError
from .logging_utils import setup_rotating_logger
from .rest import DiscordRestClient
from .service import SelectMenuBot, create_select_menu_bot

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Discord select menu demo bot.",
)

_CONFIG_OPTION_HELP = "Config file or directory holding select-menu-bot.yml"


def raise_exit(message: str, *, cause: Optional[BaseException] = None) -> NoReturn:
    typer.echo(message, err=True)
    if cause is not None:
        raise typer.Exit(code=1) from cause
    raise typer.Exit(code=1)


def _load_config(path: Optional[Path]) -> BotConfig:
    try:
        return load_bot_config(path)
    except ConfigError as exc:
        raise_exit(str(exc), cause=exc)


async def _register_application_commands(
    config: BotConfig,
    *,
    logger: logging.Logger,
    rest_client: Optional[DiscordRestClient] = None,
) -> str:
    bot = SelectMenuBot(config, logger=logger, rest_client=rest_client)
    try:
        await bot.start()
    finally:
        await bot.close()
    return bot.identity.application_id


@app.command("start")
def start(
    config_path: Optional[Path] = typer.Option(
        None, "--config", help=_CONFIG_OPTION_HELP
    ),
) -> None:
    """Register the command and serve interactions until the gateway closes."""
    config = _load_config(config_path)
    logger = setup_rotating_logger("select-menu-bot", config.log)
    bot = create_select_menu_bot(config, logger=logger)
    try:
        asyncio.run(bot.run_forever())
    except (DiscordAPIError, ValueError) as exc:
        raise_exit(f"Startup failed: {exc}", cause=exc)
    except KeyboardInterrupt:
        typer.echo("Select menu bot stopped.")


@app.command("register-commands")
def register_commands(
    config_path: Optional[Path] = typer.Option(
        None, "--config", help=_CONFIG_OPTION_HELP
    ),
) -> None:
    """Overwrite the registered application commands and exit."""
    config = _load_config(config_path)
    try:
        application_id = asyncio.run(
            _register_application_commands(
                config,
                logger=logging.getLogger("select_menu_bot.commands"),
            )
        )
    except (DiscordAPIError, ValueError) as exc:
        raise_exit(str(exc), cause=exc)
    typer.echo(f"Application commands synchronized for {application_id}.")


@app.command("show-commands")
def show_commands() -> None:
    """Print the application command schema as JSON."""
    typer.echo(json.dumps(build_application_commands(), indent=2))


def main() -> None:
    app()
