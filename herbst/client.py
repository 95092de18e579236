"""
仪表盘后端的 HTTP 客户端（配置、事件流、服务在线检查）。
"""

import logging
from typing import Any, AsyncContextManager, Optional

import httpx

from herbst.errors import ConfigFetchError, ConfigValidationError

logger = logging.getLogger(__name__)

CONFIG_PATH = "/api/config"
EVENTS_PATH = "/api/events"
HEALTH_PATH = "/api/health"


class DashboardClient:
    """Thin wrapper around ``httpx.AsyncClient`` bound to the API base URL."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self._timeout = timeout
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def __aenter__(self) -> "DashboardClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self):
        await self._client.aclose()

    # ── 配置 ────────────────────────────────────

    async def get_config(self) -> Any:
        """
        GET /api/config and decode the JSON body.

        Raises:
            ConfigFetchError: transport failure or non-2xx status
            ConfigValidationError: body is not JSON
        """
        try:
            response = await self._client.get(CONFIG_PATH)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ConfigFetchError(f"{CONFIG_PATH} returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise ConfigFetchError(f"{CONFIG_PATH} request failed: {e!r}") from e

        try:
            return response.json()
        except ValueError as e:
            raise ConfigValidationError(f"response body is not valid JSON: {e}") from e

    # ── 事件流 ────────────────────────────────────

    def stream_events(self) -> AsyncContextManager[httpx.Response]:
        """Open the server-push stream. Reads never time out."""
        return self._client.stream(
            "GET",
            EVENTS_PATH,
            headers={"Accept": "text/event-stream", "Cache-Control": "no-cache"},
            timeout=httpx.Timeout(self._timeout, read=None),
        )

    # ── 在线检查 ────────────────────────────────────

    async def check_online(self, url: str) -> bool:
        """Ask the backend whether a service URL is reachable (online badge)."""
        try:
            response = await self._client.get(HEALTH_PATH, params={"url": url})
            response.raise_for_status()
            return bool(response.json().get("online"))
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Online check for {url} failed: {e!r}")
            return False
