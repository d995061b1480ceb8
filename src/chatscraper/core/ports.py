"""Ports (interfaces) used by the core.

Ports define the minimal contracts for transport, cache and listener
adapters so that the core can be reused with different backends.
"""

from __future__ import annotations

from typing import Any, Protocol, Sequence

from chatscraper.core.cancellation import CancelToken
from chatscraper.core.models import ChatMessage


class TransportPort(Protocol):
    """Executes one remote query."""

    async def execute(self, payload: Any, cancel_token: CancelToken) -> Any:
        ...


class CachePort(Protocol):
    """Whole-entry storage of chat replays keyed by broadcast ID."""

    def exists(self, broadcast_id: str) -> bool:
        ...

    def read(self, broadcast_id: str) -> list[ChatMessage]:
        ...

    def write(self, broadcast_id: str, messages: Sequence[ChatMessage]) -> None:
        ...


class DownloadListener(Protocol):
    """Receives downloader events."""

    def on_data(self, messages: list[ChatMessage], broadcast_id: str) -> None:
        ...

    def on_progress(self) -> None:
        ...

    def on_error(self, error: Exception, broadcast_id: str) -> None:
        ...

    def on_success(self) -> None:
        ...

    def on_failure(self) -> None:
        ...
