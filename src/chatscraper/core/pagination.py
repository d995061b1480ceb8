"""Paginated chat replay retrieval with boundary deduplication.

The remote only accepts a stream offset as the continuation point (cursor
continuation gets rejected), so each page is requested at the timestamp of
the previous page's last message. That page re-includes the previous tail,
which is filtered out by record ID.
"""

from __future__ import annotations

import logging
import numbers
from typing import Any, Callable, List, Optional, Sequence

from chatscraper.core.cancellation import CancelToken
from chatscraper.core.dedup import boundary_ids, drop_boundary_duplicates
from chatscraper.core.errors import MalformedResponseError
from chatscraper.core.models import ChatMessage, message_from_record
from chatscraper.core.ports import TransportPort
from chatscraper.core.queries import chat_page_payload

LOGGER = logging.getLogger(__name__)

# Pages that neither add a message nor move the offset before we give up.
MAX_STALLED_PAGES = 3

_MISSING = object()


def _last(items: Sequence[Any]) -> Any:
    return items[-1] if items else None


def _page_comments(response: Any) -> Any:
    """Return the comment container of a batched response.

    ``None`` means the remote reported the end of the stream. ``_MISSING``
    means the shape is wrong.
    """

    if not isinstance(response, list) or not response:
        return _MISSING
    first = response[0]
    if not isinstance(first, dict):
        return _MISSING
    data = first.get("data")
    if not isinstance(data, dict):
        return _MISSING
    video = data.get("video")
    if not isinstance(video, dict) or "comments" not in video:
        return _MISSING
    return video["comments"]


def _next_offset(records: Sequence[Any]) -> float:
    last = _last(records)
    try:
        offset = last["node"]["contentOffsetSeconds"]
    except (KeyError, TypeError):
        offset = None
    if not isinstance(offset, numbers.Real) or isinstance(offset, bool) or offset < 0:
        raise MalformedResponseError("Cannot find last message offset")
    return float(offset)


async def fetch_all(
    broadcast_id: str,
    transport: TransportPort,
    cancel_token: CancelToken,
    on_progress: Optional[Callable[[], None]] = None,
) -> List[ChatMessage]:
    """Download every chat message of one broadcast, in stream order."""

    messages: List[ChatMessage] = []
    offset = 0.0
    previous_ids: set[str] = set()
    stalled = 0
    pages = 0

    while True:
        response = await transport.execute(chat_page_payload(broadcast_id, offset), cancel_token)

        comments = _page_comments(response)
        if comments is None:
            break
        if comments is _MISSING or not isinstance(comments, dict):
            raise MalformedResponseError(f"Invalid response for {broadcast_id}: {response!r}")
        records = comments.get("edges")
        if not isinstance(records, list):
            raise MalformedResponseError(f"Invalid response for {broadcast_id}: {response!r}")

        fresh = drop_boundary_duplicates(records, previous_ids)
        messages.extend(message_from_record(record) for record in fresh)

        next_offset = _next_offset(records)
        # A page made only of duplicates is fine, but the server must not be
        # able to pin us at one offset forever.
        if not fresh and next_offset == offset:
            stalled += 1
            if stalled >= MAX_STALLED_PAGES:
                raise MalformedResponseError(
                    f"Pagination stalled for {broadcast_id} at offset {offset}"
                )
        else:
            stalled = 0
        offset = next_offset
        previous_ids = boundary_ids(records)

        pages += 1
        if on_progress is not None:
            on_progress()

    LOGGER.debug("Fetched %s messages in %s pages for %s", len(messages), pages, broadcast_id)
    return messages
