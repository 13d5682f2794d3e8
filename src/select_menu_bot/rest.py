from __future__ import annotations

from typing import Any, Optional

import httpx

from .constants import DISCORD_API_BASE_URL
from .errors import DiscordAPIError, DiscordPermanentError


class DiscordRestClient:
    """Thin request/response wrapper over the Discord HTTP API.

    Calls are made once: failures surface as ``DiscordAPIError`` and the caller
    decides whether to log or propagate them.
    """

    def __init__(
        self,
        *,
        bot_token: str,
        timeout_seconds: Optional[float] = None,
        base_url: str = DISCORD_API_BASE_URL,
    ) -> None:
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout_seconds)
        self._authorization_header = f"Bot {bot_token}"

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "DiscordRestClient":
        return self

    async def __aexit__(self, *_exc_info: object) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        payload: dict[str, Any] | list[dict[str, Any]] | None = None,
        expect_json: bool = True,
    ) -> Any:
        try:
            response = await self._client.request(
                method,
                path,
                json=payload,
                headers={"Authorization": self._authorization_header},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            body_preview = (exc.response.text or "").strip().replace("\n", " ")[:200]
            if status_code in {401, 403}:
                raise DiscordPermanentError(
                    f"Discord API authentication failure for {method} {path}: "
                    f"status={status_code} body={body_preview!r}",
                    status_code=status_code,
                ) from exc
            raise DiscordAPIError(
                f"Discord API request failed for {method} {path}: "
                f"status={status_code} body={body_preview!r}",
                status_code=status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise DiscordAPIError(
                f"Discord API network error for {method} {path}: {exc}"
            ) from exc

        if not expect_json:
            return None
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise DiscordAPIError(
                f"Discord API returned non-JSON success response for {method} {path}"
            ) from exc

    async def get_gateway_bot(self) -> dict[str, Any]:
        payload = await self._request("GET", "/gateway/bot")
        return payload if isinstance(payload, dict) else {}

    async def get_current_application(self) -> dict[str, Any]:
        payload = await self._request("GET", "/oauth2/applications/@me")
        return payload if isinstance(payload, dict) else {}

    async def bulk_overwrite_application_commands(
        self,
        *,
        application_id: str,
        commands: list[dict[str, Any]],
        guild_id: str | None = None,
    ) -> list[dict[str, Any]]:
        path = (
            f"/applications/{application_id}/commands"
            if guild_id is None
            else f"/applications/{application_id}/guilds/{guild_id}/commands"
        )
        payload = await self._request("PUT", path, payload=commands)
        if not isinstance(payload, list):
            return []
        return [item for item in payload if isinstance(item, dict)]

    async def create_interaction_response(
        self,
        *,
        interaction_id: str,
        interaction_token: str,
        payload: dict[str, Any],
    ) -> None:
        await self._request(
            "POST",
            f"/interactions/{interaction_id}/{interaction_token}/callback",
            payload=payload,
            expect_json=False,
        )

    async def create_channel_message(
        self,
        *,
        channel_id: str,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        response = await self._request(
            "POST",
            f"/channels/{channel_id}/messages",
            payload=payload,
        )
        return response if isinstance(response, dict) else {}
