"""Persisted GraphQL queries used by chatscraper.

The server selects a pre-registered query by its hash, so only the operation
name, the hash and the variables travel over the wire.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class PersistedQuery:
    operation_name: str
    sha256_hash: str
    version: int = 1


CHAT_REPLAY_QUERY = PersistedQuery(
    operation_name="VideoCommentsByOffsetOrCursor",
    sha256_hash="b70a3591ff0f4e0313d126c6a1502d79a1c02baebb288227c582044aa76adf6a",
)

VOD_LIST_QUERY = PersistedQuery(
    operation_name="FilterableVideoTower_Videos",
    sha256_hash="a937f1d22e269e39a03b509f65a7490f9fc247d7f83d6ac1421523e3b68042cb",
)


def build_payload(query: PersistedQuery, variables: dict[str, Any]) -> list[dict[str, Any]]:
    """Return a single-operation batch for ``query``."""

    return [
        {
            "operationName": query.operation_name,
            "variables": variables,
            "extensions": {
                "persistedQuery": {
                    "version": query.version,
                    "sha256Hash": query.sha256_hash,
                }
            },
        }
    ]


def chat_page_payload(broadcast_id: str, offset: float) -> list[dict[str, Any]]:
    """Payload requesting the chat page starting at ``offset`` seconds."""

    return build_payload(
        CHAT_REPLAY_QUERY,
        {"videoID": str(broadcast_id), "contentOffsetSeconds": offset},
    )


def vod_list_payload(channel: str, limit: int) -> list[dict[str, Any]]:
    """Payload requesting the most recent archived broadcasts of a channel."""

    return build_payload(
        VOD_LIST_QUERY,
        {
            "limit": limit,
            "channelOwnerLogin": channel,
            "broadcastType": "ARCHIVE",
            "videoSort": "TIME",
        },
    )
