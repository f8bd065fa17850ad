"""Hubot notifier for kubehubot.

Posts each message as ``text/plain`` to Hubot's notify endpoint,
``POST {base_url}/hubot/notify/{room}``, where the room name is
percent-encoded (``#fabric8_dev`` -> ``%23fabric8_dev``).
"""

from __future__ import annotations

from urllib.parse import quote

import httpx
import structlog

from kubehubot.notifications.manager import Notifier, NotifierError

_log = structlog.get_logger(component="notifications.hubot")


class HubotNotifier(Notifier):
    """Delivers room messages to a Hubot HTTP endpoint.

    Args:
        base_url:  Hubot base URL, e.g. ``http://hubot:8080``.
        timeout:   HTTP request timeout in seconds. Defaults to 10.
        transport: Optional httpx transport (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not base_url:
            raise ValueError("Hubot base_url must not be empty")
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def name(self) -> str:
        return "hubot"

    def notify_url(self, room: str) -> str:
        return f"{self._base_url}/hubot/notify/{quote(room, safe='')}"

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
        return self._client

    async def notify_room(self, room: str, message: str) -> None:
        url = self.notify_url(room)
        try:
            response = await self._http().post(
                url,
                content=message.encode("utf-8"),
                headers={"Content-Type": "text/plain; charset=utf-8"},
            )
        except httpx.TimeoutException as exc:
            raise NotifierError(f"hubot request timed out: {url}") from exc
        except httpx.HTTPError as exc:
            raise NotifierError(f"hubot request failed: {exc}") from exc

        if not response.is_success:
            raise NotifierError(f"hubot returned {response.status_code}: {response.text[:200]}")
        _log.debug("hubot_notified", room=room, status_code=response.status_code)

    async def aclose(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            await client.aclose()
