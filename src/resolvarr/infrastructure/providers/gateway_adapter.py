"""Provider adapter talking to a JSON provider gateway over HTTP.

The gateway exposes one route tree per provider::

    {base_url}/{domain}/{provider}/watch/{episode_id}?server=&dub=
    {base_url}/{domain}/{provider}/episodes/{content_id}?dub=&fetchFiller=
    {base_url}/{domain}/{provider}/info/{content_id}?dub=&fetchFiller=
    {base_url}/{domain}/{provider}/{query}?page=
    {base_url}/{domain}/{provider}/trending?page=&perPage=
    {base_url}/{domain}/{provider}/popular?page=&perPage=
    {base_url}/{domain}/{provider}/servers/{episode_id}

Each adapter owns its own ``httpx.AsyncClient`` so cookies and connection
state never leak between resolution attempts.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx
import structlog

from resolvarr.domain.entities import Manifest, ProviderDescriptor, Variant
from resolvarr.domain.exceptions import ProviderError, ProviderTimeoutError

log = structlog.get_logger(__name__)

DEFAULT_USER_AGENT = "Resolvarr/0.1.0"
DEFAULT_TIMEOUT = 15.0


def _bool_param(value: bool) -> str:
    return "true" if value else "false"


def _segment(value: str) -> str:
    return quote(value, safe="")


class GatewayProviderAdapter:
    """``ProviderAdapterPort`` implementation backed by the provider gateway.

    Transport, status and JSON errors raise ``ProviderError``; httpx
    timeouts raise ``ProviderTimeoutError``.
    """

    def __init__(
        self,
        descriptor: ProviderDescriptor,
        *,
        gateway_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._descriptor = descriptor
        root = (descriptor.base_url_override or gateway_url).rstrip("/")
        self.base_url = f"{root}/{descriptor.domain.value}/{descriptor.name}"
        self._client = httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": user_agent, "Accept": "application/json"},
            transport=transport,
        )

    @property
    def name(self) -> str:
        return self._descriptor.name

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # HTTP helpers
    # ------------------------------------------------------------------

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = await self._client.get(url, params=params)
        except httpx.TimeoutException as e:
            log.debug("gateway_timeout", provider=self.name, url=url)
            raise ProviderTimeoutError(f"{self.name}: request timed out") from e
        except httpx.HTTPError as e:
            raise ProviderError(f"{self.name}: {type(e).__name__}: {e}") from e

        if resp.status_code >= 400:
            raise ProviderError(self._status_message(resp))

        try:
            return resp.json()
        except ValueError as e:
            raise ProviderError(f"{self.name}: invalid JSON response") from e

    def _status_message(self, resp: httpx.Response) -> str:
        detail = ""
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("message"):
            detail = f": {body['message']}"
        return f"{self.name}: HTTP {resp.status_code}{detail}"

    @staticmethod
    def _unwrap_list(data: Any, key: str) -> list[dict[str, Any]]:
        """Accept either a bare list or ``{key: [...]}``."""
        if isinstance(data, dict):
            data = data.get(key)
        if data is None:
            return []
        if not isinstance(data, list):
            raise ProviderError(f"expected a list of {key}, got {type(data).__name__}")
        return [item for item in data if isinstance(item, dict)]

    # ------------------------------------------------------------------
    # ProviderAdapterPort
    # ------------------------------------------------------------------

    async def fetch_episode_sources(
        self,
        episode_id: str,
        server: str | None = None,
        variant: Variant | None = None,
    ) -> Manifest:
        variant = variant or Variant()
        params: dict[str, Any] = {"dub": _bool_param(variant.dub)}
        if server:
            params["server"] = server
        data = await self._get_json(f"/watch/{_segment(episode_id)}", params)
        if not isinstance(data, dict):
            raise ProviderError(f"{self.name}: malformed sources payload")
        return Manifest.from_payload(data)

    async def fetch_episodes_list(
        self,
        content_id: str,
        variant: Variant | None = None,
    ) -> list[dict[str, Any]]:
        variant = variant or Variant()
        data = await self._get_json(
            f"/episodes/{_segment(content_id)}",
            {
                "dub": _bool_param(variant.dub),
                "fetchFiller": _bool_param(variant.fetch_filler),
            },
        )
        return self._unwrap_list(data, "episodes")

    async def fetch_info(
        self,
        content_id: str,
        variant: Variant | None = None,
    ) -> dict[str, Any]:
        variant = variant or Variant()
        data = await self._get_json(
            f"/info/{_segment(content_id)}",
            {
                "dub": _bool_param(variant.dub),
                "fetchFiller": _bool_param(variant.fetch_filler),
            },
        )
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ProviderError(f"{self.name}: malformed info payload")
        return data

    async def search(self, query: str, page: int = 1) -> list[dict[str, Any]]:
        data = await self._get_json(f"/{_segment(query)}", {"page": page})
        return self._unwrap_list(data, "results")

    async def fetch_trending(
        self, page: int = 1, per_page: int = 20
    ) -> list[dict[str, Any]]:
        data = await self._get_json("/trending", {"page": page, "perPage": per_page})
        return self._unwrap_list(data, "results")

    async def fetch_popular(
        self, page: int = 1, per_page: int = 20
    ) -> list[dict[str, Any]]:
        data = await self._get_json("/popular", {"page": page, "perPage": per_page})
        return self._unwrap_list(data, "results")

    async def fetch_servers(self, episode_id: str) -> list[dict[str, Any]]:
        data = await self._get_json(f"/servers/{_segment(episode_id)}")
        return self._unwrap_list(data, "servers")


class GatewayAdapterFactory:
    """Builds a fresh ``GatewayProviderAdapter`` per resolution attempt."""

    def __init__(
        self,
        *,
        gateway_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.gateway_url = gateway_url.rstrip("/")
        self._timeout = timeout
        self._user_agent = user_agent
        self._transport = transport

    def __call__(self, descriptor: ProviderDescriptor) -> GatewayProviderAdapter:
        return GatewayProviderAdapter(
            descriptor,
            gateway_url=self.gateway_url,
            timeout=self._timeout,
            user_agent=self._user_agent,
            transport=self._transport,
        )
