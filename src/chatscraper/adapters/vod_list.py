"""Recent broadcast listing for a channel.

A single persisted query with no pagination: the remote returns the newest
archived broadcasts first.
"""

from __future__ import annotations

import logging
from typing import Any

from chatscraper.core.cancellation import CancelToken
from chatscraper.core.errors import ChannelNotFoundError, MalformedResponseError
from chatscraper.core.ports import TransportPort
from chatscraper.core.queries import vod_list_payload

LOGGER = logging.getLogger(__name__)


def _video_edges(response: Any, channel: str) -> list[Any]:
    if not isinstance(response, list) or not response or not isinstance(response[0], dict):
        raise MalformedResponseError("Invalid response")
    data = response[0].get("data")
    user = data.get("user") if isinstance(data, dict) else None
    if not user:
        raise ChannelNotFoundError(f"Failed to fetch VODs from '{channel}'")
    if not isinstance(user, dict) or not isinstance(user.get("videos"), dict):
        raise MalformedResponseError("Invalid response")
    edges = user["videos"].get("edges")
    if not isinstance(edges, list):
        raise MalformedResponseError("Invalid response")
    return edges


async def get_recent_vods(
    transport: TransportPort,
    channel: str,
    limit: int,
    cancel_token: CancelToken,
) -> list[str]:
    """Return the IDs of the ``limit`` most recent broadcasts of ``channel``."""

    limit = max(1, round(limit))
    response = await transport.execute(vod_list_payload(channel, limit), cancel_token)
    try:
        ids = [str(edge["node"]["id"]) for edge in _video_edges(response, channel)]
    except (KeyError, TypeError) as err:
        raise MalformedResponseError("Invalid response") from err
    LOGGER.info("Found %s recent VODs for %s", len(ids), channel)
    return ids
