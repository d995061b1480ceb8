"""Helpers for working with broadcast (VOD) identifiers."""

from __future__ import annotations

import math
from typing import Iterable, List, Union

VOD_URL_PREFIX = "https://twitch.tv/videos/"
# Links start a few seconds early so the viewer sees the lead-up to a message.
LINK_LEAD_SECONDS = 5


def normalize_broadcast_id(raw: Union[str, int]) -> str:
    """Return the canonical string form of a broadcast ID.

    IDs are decimal digits. Anything else is rejected early because the ID
    also names the cache file.
    """

    text = str(raw).strip()
    if not text.isdigit():
        raise ValueError(f"Invalid broadcast ID: {raw!r}")
    # Drop leading zeros so "0123" and "123" share one cache entry.
    return str(int(text))


def unique_broadcast_ids(raw_ids: Iterable[Union[str, int]]) -> List[str]:
    """Normalize IDs and drop duplicates, keeping first-seen order."""

    seen: set[str] = set()
    ordered: List[str] = []
    for raw in raw_ids:
        broadcast_id = normalize_broadcast_id(raw)
        if broadcast_id in seen:
            continue
        seen.add(broadcast_id)
        ordered.append(broadcast_id)
    return ordered


def build_vod_link(broadcast_id: str, stream_timestamp: float) -> str:
    """Return a link that opens the broadcast shortly before a message."""

    seconds = max(math.floor(stream_timestamp - LINK_LEAD_SECONDS), 0)
    return f"{VOD_URL_PREFIX}{broadcast_id}?t={seconds}s"
