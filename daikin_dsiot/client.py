"""HTTP transport for the dsiot multi-request endpoint."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Protocol

import httpx

from .config import EngineConfig
from .const import DEFAULT_REQUEST_TIMEOUT, ENDPOINT, SUCCESS_STATUS_CODES, USER_AGENT
from .exceptions import ProtocolDecodeError, TransportError
from .protocol import DsiotRequest
from .tree import ParameterTree

_LOGGER = logging.getLogger(__name__)


class DsiotTransport(Protocol):
    """Transport contract used by coordinators and the family factory."""

    async def async_query(self, host: str, request: DsiotRequest) -> ParameterTree:
        """Send a read request and return the parsed frames."""

    async def async_send(self, host: str, request: DsiotRequest) -> None:
        """Send a write request and confirm the device accepted it."""


class DsiotClient:
    """httpx-backed implementation of :class:`DsiotTransport`."""

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        *,
        timeout: timedelta = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        """Initialise the client, creating an ``AsyncClient`` when none is given."""

        self._owns_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient()
        self._timeout = timeout.total_seconds()

    @classmethod
    def from_config(
        cls, config: EngineConfig, http_client: httpx.AsyncClient | None = None
    ) -> DsiotClient:
        """Build a client honouring the configured request timeout."""

        return cls(http_client, timeout=config.request_timeout)

    @staticmethod
    def url_for(host: str) -> str:
        """Return the endpoint URL for ``host``."""

        return f"http://{host}{ENDPOINT}"

    async def async_close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""

        if self._owns_client:
            await self._http_client.aclose()

    async def _async_post(self, host: str, request: DsiotRequest) -> Any:
        body = request.to_wire()
        _LOGGER.debug("POST %s %s", host, body)
        try:
            response = await self._http_client.post(
                self.url_for(host),
                json=body,
                headers={"User-Agent": USER_AGENT},
                timeout=self._timeout,
            )
            response.raise_for_status()
        except httpx.HTTPError as err:
            _LOGGER.error("dsiot request to %s failed: %s", host, err)
            raise TransportError(f"Request to {host} failed: {err}") from err
        try:
            payload = response.json()
        except ValueError as err:
            raise ProtocolDecodeError(f"Response from {host} is not JSON") from err
        _LOGGER.debug("Response from %s: %s", host, payload)
        return payload

    async def async_query(self, host: str, request: DsiotRequest) -> ParameterTree:
        """Send a read request and return the parsed frames."""

        payload = await self._async_post(host, request)
        return ParameterTree.from_response(payload)

    async def async_send(self, host: str, request: DsiotRequest) -> None:
        """Send a write request and validate per-frame status codes."""

        payload = await self._async_post(host, request)
        responses = payload.get("responses") if isinstance(payload, dict) else None
        if not isinstance(responses, list):
            raise ProtocolDecodeError(f"Write response from {host} lacks responses")
        for item in responses:
            status = item.get("rsc") if isinstance(item, dict) else None
            if status is None or status in SUCCESS_STATUS_CODES:
                continue
            frame = item.get("fr", "unknown")
            _LOGGER.error("Device %s rejected write to %s (code %s)", host, frame, status)
            raise TransportError(f"Device {host} rejected write to {frame}: {status}")
