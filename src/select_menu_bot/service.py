from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import Any, Coroutine, Optional

from .commands import build_application_commands
from .components import build_select_menus
from .config import BotConfig
from .constants import LEGACY_TEXT_TRIGGER, SELECT_MENU_COMMAND_NAME
from .errors import DiscordAPIError, GatewayError
from .gateway import DiscordGatewaySession, GatewayEvent
from .interactions import (
    OptionKindMismatch,
    SelectMenuSeeds,
    extract_channel_id,
    extract_command_name,
    extract_command_options,
    extract_component_custom_id,
    extract_component_resolved,
    extract_component_values,
    extract_guild_id,
    extract_interaction_id,
    extract_interaction_token,
    extract_user_id,
    is_application_command,
    is_component_interaction,
    parse_select_menu_seeds,
)
from .logging_utils import log_event
from .rendering import (
    INTERACTION_FAILED_RESPONSE,
    PROVISIONAL_REPLY_CONTENT,
    build_ephemeral_response,
    build_select_menu_message,
    build_selection_summary_response,
)
from .rest import DiscordRestClient


@dataclass(frozen=True)
class ApplicationIdentity:
    application_id: str
    name: Optional[str] = None


@dataclass(frozen=True)
class InteractionContext:
    identity: ApplicationIdentity
    interaction_id: str
    interaction_token: str


class SelectMenuBot:
    def __init__(
        self,
        config: BotConfig,
        *,
        logger: logging.Logger,
        rest_client: Optional[DiscordRestClient] = None,
        gateway: Optional[DiscordGatewaySession] = None,
    ) -> None:
        self._config = config
        self._logger = logger

        self._rest = (
            rest_client
            if rest_client is not None
            else DiscordRestClient(
                bot_token=config.bot_token,
                timeout_seconds=config.timeout_seconds,
                base_url=config.api_base_url,
            )
        )
        self._owns_rest = rest_client is None

        self._gateway = (
            gateway
            if gateway is not None
            else DiscordGatewaySession(
                bot_token=config.bot_token,
                intents=config.intents,
                logger=logger,
                gateway_url=config.gateway_url,
                rest_client=self._rest,
            )
        )
        self._owns_gateway = gateway is None

        self._identity: Optional[ApplicationIdentity] = None
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def identity(self) -> ApplicationIdentity:
        if self._identity is None:
            raise RuntimeError("application identity is not resolved yet")
        return self._identity

    def _set_identity(self, identity: ApplicationIdentity) -> None:
        if self._identity is not None:
            raise RuntimeError("application identity is already set")
        self._identity = identity

    async def run_forever(self) -> None:
        """Resolve identity, register the command, then dispatch until the
        gateway reports a fatal error. Startup failures propagate."""
        try:
            await self.start()
            await self._run_dispatch_loop()
        finally:
            await self.close()

    async def start(self) -> None:
        identity = await self._resolve_identity()
        self._set_identity(identity)
        log_event(
            self._logger,
            logging.INFO,
            "select_menu.identity.resolved",
            application_id=identity.application_id,
            name=identity.name,
        )
        await self._register_commands(identity)

    async def _register_commands(self, identity: ApplicationIdentity) -> None:
        registration = self._config.command_registration
        guild_ids: tuple[Optional[str], ...] = (
            registration.guild_ids if registration.scope == "guild" else (None,)
        )
        commands = build_application_commands()
        for guild_id in guild_ids:
            registered = await self._rest.bulk_overwrite_application_commands(
                application_id=identity.application_id,
                commands=commands,
                guild_id=guild_id,
            )
            log_event(
                self._logger,
                logging.INFO,
                "select_menu.command.registered",
                application_id=identity.application_id,
                guild_id=guild_id,
                command_ids=[command.get("id") for command in registered],
            )

    async def _resolve_identity(self) -> ApplicationIdentity:
        payload = await self._rest.get_current_application()
        application_id = payload.get("id")
        if not isinstance(application_id, (str, int)) or not str(application_id):
            raise DiscordAPIError("Discord application payload is missing an id")
        name = payload.get("name")
        return ApplicationIdentity(
            application_id=str(application_id),
            name=name if isinstance(name, str) else None,
        )

    async def _run_dispatch_loop(self) -> None:
        log_event(self._logger, logging.INFO, "select_menu.dispatch.starting")
        while True:
            try:
                event = await self._gateway.next_event()
            except GatewayError as exc:
                if exc.fatal:
                    log_event(
                        self._logger,
                        logging.ERROR,
                        "select_menu.gateway.fatal",
                        close_code=exc.close_code,
                        exc=exc,
                    )
                    return
                log_event(
                    self._logger,
                    logging.INFO,
                    "select_menu.gateway.read_failed",
                    close_code=exc.close_code,
                    exc=exc,
                )
                continue
            self.dispatch_event(event)

    def dispatch_event(self, event: GatewayEvent) -> None:
        if event.kind == "INTERACTION_CREATE":
            self._dispatch_interaction(event.payload)
        elif event.kind == "MESSAGE_CREATE" and self._config.legacy_text_trigger:
            self._dispatch_message(event.payload)

    def _dispatch_interaction(self, payload: dict[str, Any]) -> None:
        if is_component_interaction(payload):
            self._spawn(
                self._handle_component_interaction(payload),
                name="select-menu-component",
            )
            return
        if not is_application_command(payload):
            return
        if extract_command_name(payload) != SELECT_MENU_COMMAND_NAME:
            return

        interaction_id = extract_interaction_id(payload)
        interaction_token = extract_interaction_token(payload)
        if not interaction_id or not interaction_token:
            self._logger.warning(
                "dispatch_interaction: missing required fields (interaction_id=%s, token=%s)",
                bool(interaction_id),
                bool(interaction_token),
            )
            return
        context = InteractionContext(
            identity=self.identity,
            interaction_id=interaction_id,
            interaction_token=interaction_token,
        )

        try:
            seeds = parse_select_menu_seeds(extract_command_options(payload))
        except OptionKindMismatch as exc:
            log_event(
                self._logger,
                logging.WARNING,
                "select_menu.command.invalid_option",
                interaction_id=interaction_id,
                application_id=context.identity.application_id,
                user_id=extract_user_id(payload),
                option=exc.name,
                expected_type=exc.expected,
                actual_type=exc.actual,
            )
            self._spawn(
                self.report_interaction_failure(context), name="select-menu-failure"
            )
            return

        channel_id = extract_channel_id(payload)
        if channel_id is None:
            log_event(
                self._logger,
                logging.WARNING,
                "select_menu.command.missing_channel",
                interaction_id=interaction_id,
            )
            self._spawn(
                self.report_interaction_failure(context), name="select-menu-failure"
            )
            return

        self._spawn(
            self._handle_select_menu_command(context, channel_id, seeds),
            name="select-menu-command",
        )

    def _dispatch_message(self, payload: dict[str, Any]) -> None:
        author = payload.get("author")
        if isinstance(author, dict) and author.get("bot"):
            return
        content = payload.get("content")
        if not isinstance(content, str) or content.strip() != LEGACY_TEXT_TRIGGER:
            return
        # Guild messages only, matching the command's dm_permission.
        channel_id = extract_channel_id(payload)
        if channel_id is None or extract_guild_id(payload) is None:
            return
        self._spawn(
            self._send_select_menus(channel_id, SelectMenuSeeds()),
            name="select-menu-legacy",
        )

    def _spawn(self, coro: Coroutine[Any, Any, None], *, name: str) -> None:
        task = asyncio.create_task(coro, name=name)
        # The loop only holds weak references to tasks.
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log_event(
                self._logger,
                logging.ERROR,
                "select_menu.task.unhandled_error",
                task=task.get_name(),
                exc=exc,
            )

    async def wait_idle(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _handle_select_menu_command(
        self,
        context: InteractionContext,
        channel_id: str,
        seeds: SelectMenuSeeds,
    ) -> None:
        try:
            await self._rest.create_interaction_response(
                interaction_id=context.interaction_id,
                interaction_token=context.interaction_token,
                payload=build_ephemeral_response(PROVISIONAL_REPLY_CONTENT),
            )
        except Exception as exc:
            # The menus are still sent when the acknowledgement fails.
            log_event(
                self._logger,
                logging.DEBUG,
                "select_menu.provisional_reply.failed",
                interaction_id=context.interaction_id,
                application_id=context.identity.application_id,
                exc=exc,
            )
        await self._send_select_menus(channel_id, seeds)

    async def _send_select_menus(self, channel_id: str, seeds: SelectMenuSeeds) -> None:
        menus = build_select_menus(
            users=seeds.users, roles=seeds.roles, channels=seeds.channels
        )
        try:
            await self._rest.create_channel_message(
                channel_id=channel_id,
                payload=build_select_menu_message(menus),
            )
        except DiscordAPIError as exc:
            log_event(
                self._logger,
                logging.ERROR,
                "select_menu.channel_message.failed",
                channel_id=channel_id,
                exc=exc,
            )

    async def _handle_component_interaction(self, payload: dict[str, Any]) -> None:
        custom_id = extract_component_custom_id(payload)
        if custom_id is None:
            return
        interaction_id = extract_interaction_id(payload)
        interaction_token = extract_interaction_token(payload)
        if not interaction_id or not interaction_token:
            self._logger.warning(
                "handle_component_interaction: missing required fields (interaction_id=%s, token=%s)",
                bool(interaction_id),
                bool(interaction_token),
            )
            return
        response = build_selection_summary_response(
            custom_id,
            extract_component_values(payload),
            extract_component_resolved(payload),
            max_resolved_chars=self._config.max_resolved_chars,
        )
        try:
            await self._rest.create_interaction_response(
                interaction_id=interaction_id,
                interaction_token=interaction_token,
                payload=response,
            )
        except DiscordAPIError as exc:
            log_event(
                self._logger,
                logging.ERROR,
                "select_menu.component_reply.failed",
                interaction_id=interaction_id,
                custom_id=custom_id,
                exc=exc,
            )

    async def report_interaction_failure(self, context: InteractionContext) -> None:
        try:
            await self._rest.create_interaction_response(
                interaction_id=context.interaction_id,
                interaction_token=context.interaction_token,
                payload=INTERACTION_FAILED_RESPONSE,
            )
        except DiscordAPIError as exc:
            # Already the terminal error path.
            self._logger.debug(
                "Failed to send interaction failure reply: %s (interaction_id=%s)",
                exc,
                context.interaction_id,
            )

    async def close(self) -> None:
        """Close the gateway and HTTP clients this bot created itself."""
        if self._owns_gateway:
            with contextlib.suppress(Exception):
                await self._gateway.close()
        if self._owns_rest:
            with contextlib.suppress(Exception):
                await self._rest.close()


def create_select_menu_bot(
    config: BotConfig,
    *,
    logger: logging.Logger,
) -> SelectMenuBot:
    return SelectMenuBot(config, logger=logger)
