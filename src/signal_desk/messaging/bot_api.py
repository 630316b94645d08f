"""Discord bot API client — forum threads, their starter message and tags."""

from __future__ import annotations

from typing import Any

import httpx

from signal_desk.errors import MessagingPlatformError


class BotApiClient:
    """Async client for the companion bot's HTTP API.

    Every call carries the caller's bearer credential; the bot checks it
    against Discord before touching the guild.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:3001",
        timeout_s: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self._transport = transport
        self._http: httpx.AsyncClient | None = None

    async def _get_http(self) -> httpx.AsyncClient:
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport)
        return self._http

    async def close(self) -> None:
        if self._http and not self._http.is_closed:
            await self._http.aclose()

    async def _request(self, method: str, path: str, token: str, json: Any = None) -> Any:
        http = await self._get_http()
        try:
            resp = await http.request(
                method,
                f"{self.base_url}{path}",
                headers={"Authorization": f"Bearer {token}"},
                json=json,
            )
        except httpx.HTTPError as exc:
            raise MessagingPlatformError(f"bot API unreachable: {exc}") from exc

        if resp.is_error:
            raise MessagingPlatformError(
                f"bot API {method} {path} returned {resp.status_code}: {_error_detail(resp)}",
                status_code=resp.status_code,
            )
        if not resp.content:
            return {}
        return resp.json()

    # --- threads ---

    async def create_thread(self, token: str, channel_id: str, title: str, embed: dict) -> str:
        """Open a forum thread whose starter message is *embed*; return its id."""
        data = await self._request(
            "POST",
            "/api/send-forum-message",
            token,
            json={"channelId": channel_id, "title": title, "embed": embed},
        )
        thread_id = data.get("threadId") if isinstance(data, dict) else None
        if not thread_id:
            raise MessagingPlatformError("bot API did not return a threadId")
        return str(thread_id)

    async def update_thread_message(
        self,
        token: str,
        thread_id: str,
        embed: dict | None = None,
        tag_ids: list[str] | None = None,
    ) -> None:
        body: dict[str, Any] = {}
        if embed is not None:
            body["embed"] = embed
        if tag_ids is not None:
            body["appliedTags"] = tag_ids
        await self._request("PATCH", f"/api/update-thread-message/{thread_id}", token, json=body)

    async def delete_thread(self, token: str, thread_id: str) -> None:
        await self._request("DELETE", f"/api/delete-thread/{thread_id}", token)

    # --- tags ---

    async def list_thread_tags(self, token: str, thread_id: str) -> list[str]:
        data = await self._request("GET", f"/api/threads/{thread_id}/tags", token)
        tags = data.get("appliedTags", []) if isinstance(data, dict) else data
        return [str(t) for t in tags or []]

    async def list_channel_tags(self, token: str, channel_id: str) -> list[dict]:
        data = await self._request("GET", f"/api/channels/{channel_id}/tags", token)
        tags = data.get("tags", []) if isinstance(data, dict) else data
        return list(tags or [])


def _error_detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200]
    if isinstance(body, dict):
        return str(body.get("error") or body.get("message") or body)
    return str(body)
