"""HTTP JSON transport for the directory service."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from geopresence._constants import USER_AGENT
from geopresence._redact import redact_for_log
from geopresence.config import PresenceConfig
from geopresence.exceptions import GeoPresenceTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by endpoint modules.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`JsonTransport`) concrete.
    """

    async def get_json(self, endpoint: str, params: Mapping[str, str] | None = None) -> Any: ...

    async def post_json(self, endpoint: str, payload: Mapping[str, Any]) -> Any: ...


class JsonTransport:
    """HTTP transport that sends and receives JSON bodies."""

    def __init__(
        self,
        config: PresenceConfig,
        http_session: aiohttp.ClientSession,
    ) -> None:
        self._config = config
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {
            "accept": "application/json",
            "content-type": "application/json; charset=UTF-8",
            "user-agent": USER_AGENT,
        }
        if self._config.api_key:
            headers["authorization"] = f"Bearer {self._config.api_key}"
        return headers

    async def get_json(self, endpoint: str, params: Mapping[str, str] | None = None) -> Any:
        return await self._request("GET", endpoint, params=params)

    async def post_json(self, endpoint: str, payload: Mapping[str, Any]) -> Any:
        return await self._request("POST", endpoint, payload=payload)

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        params: Mapping[str, str] | None = None,
        payload: Mapping[str, Any] | None = None,
    ) -> Any:
        url = f"{self._config.base_url.rstrip('/')}{endpoint}"
        body = json.dumps(payload, separators=(",", ":")) if payload is not None else None

        _logger.debug("%s %s params=%s body=%s", method, url, redact_for_log(dict(params or {})), redact_for_log(payload))

        try:
            async with self._http.request(
                method,
                url,
                params=params,
                data=body,
                headers=self._headers(),
                timeout=self._timeout,
            ) as resp:
                raw = await resp.read()
                if resp.status < 200 or resp.status >= 300:
                    raise GeoPresenceTransportError(
                        f"HTTP {resp.status} from {endpoint}: {raw[:200]!r}",
                        status_code=resp.status,
                        endpoint=endpoint,
                    )
        except GeoPresenceTransportError:
            raise
        except asyncio.TimeoutError as exc:
            raise GeoPresenceTransportError(
                f"Request to {endpoint} timed out after {self._config.request_timeout}s",
                endpoint=endpoint,
            ) from exc
        except aiohttp.ClientError as exc:
            raise GeoPresenceTransportError(
                f"Request to {endpoint} failed: {exc}",
                endpoint=endpoint,
            ) from exc

        try:
            result = json.loads(raw.decode("utf-8"))
        except UnicodeDecodeError as exc:
            raise GeoPresenceTransportError(
                f"Undecodable response body from {endpoint}: {exc}",
                endpoint=endpoint,
            ) from exc
        except json.JSONDecodeError as exc:
            raise GeoPresenceTransportError(
                f"Invalid JSON from {endpoint}: {raw[:200]!r}",
                endpoint=endpoint,
            ) from exc

        _logger.debug("%s %s -> %s", method, endpoint, redact_for_log(result, max_string=128))
        return result
