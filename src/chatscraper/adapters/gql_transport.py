"""GraphQL transport adapter.

Implements the core TransportPort on top of a shared httpx async client.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from chatscraper.core.cancellation import CancelToken
from chatscraper.core.config import TransportConfig
from chatscraper.core.errors import TerminalTransportError, TransientTransportError

LOGGER = logging.getLogger(__name__)

MAX_ATTEMPTS = 2


class GQLTransport:
    """Sends persisted-query batches and retries a failed call exactly once."""

    def __init__(
        self,
        config: Optional[TransportConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._config = config or TransportConfig()
        self._owns_client = http_client is None
        # Shared client reuses connections across every page of every job.
        self._http = http_client or httpx.AsyncClient(timeout=self._config.timeout_seconds)
        self._headers = {
            "Accept": "*/*",
            "Client-ID": self._config.client_id,
        }

    async def __aenter__(self) -> "GQLTransport":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client if this transport created it."""

        if self._owns_client:
            await self._http.aclose()

    async def _attempt(self, payload: Any, cancel_token: CancelToken) -> Any:
        cancel_token.raise_if_cancelled()
        try:
            response = await self._http.post(self._config.url, json=payload, headers=self._headers)
        except httpx.HTTPError as err:
            cancel_token.raise_if_cancelled()
            raise TransientTransportError(f"Request failed: {err}") from err

        # The request was already issued; a cancelled run only discards it.
        cancel_token.raise_if_cancelled()
        if response.is_error:
            raise TransientTransportError(f"HTTP {response.status_code}: {response.text[:200]}")
        try:
            return response.json()
        except ValueError as err:
            raise TransientTransportError(f"Invalid JSON response: {err}") from err

    async def execute(self, payload: Any, cancel_token: CancelToken) -> Any:
        """Run one query and return the decoded JSON body."""

        last_error: Optional[TransientTransportError] = None
        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                return await self._attempt(payload, cancel_token)
            except TransientTransportError as err:
                last_error = err
                if attempt < MAX_ATTEMPTS:
                    LOGGER.warning("GraphQL request failed, retrying once: %s", err)

        raise TerminalTransportError(str(last_error)) from last_error
