"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to the remote API's record layout.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from chatscraper.core.errors import CacheIOError, MalformedResponseError

# Defaults used when the remote omits a field on a comment record.
EPOCH_ISO = "1970-01-01T00:00:00.000Z"
UNKNOWN_NAME = "null"
UNKNOWN_USER_ID = "0"


@dataclass(frozen=True)
class Author:
    """Who sent a chat message."""

    display_name: str
    name: str
    id: str


@dataclass(frozen=True)
class ChatMessage:
    """One chat replay message, normalized from a remote comment record."""

    created: str
    stream_timestamp: float
    author: Author
    body: str

    def to_dict(self) -> dict[str, Any]:
        """Return the cache representation of this message."""

        return {
            "created": self.created,
            "stream_timestamp": self.stream_timestamp,
            "user": {
                "display_name": self.author.display_name,
                "name": self.author.name,
                "id": self.author.id,
            },
            "message": self.body,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChatMessage":
        """Build a message from its cache representation."""

        try:
            user = data["user"]
            return cls(
                created=str(data["created"]),
                stream_timestamp=float(data["stream_timestamp"]),
                author=Author(
                    display_name=str(user["display_name"]),
                    name=str(user["name"]),
                    id=str(user["id"]),
                ),
                body=str(data["message"]),
            )
        except (KeyError, TypeError, ValueError) as err:
            raise CacheIOError(f"Invalid cached message: {data!r}") from err


def message_from_record(record: Any) -> ChatMessage:
    """Translate a remote comment edge into a ``ChatMessage``.

    Missing metadata falls back to placeholder values, but a record without
    message fragments cannot be rendered and is treated as malformed.
    """

    try:
        node = record["node"]
        commenter = node.get("commenter") or {}
        fragments = node["message"]["fragments"]
        body = "".join(fragment["text"] or "" for fragment in fragments)
    except (KeyError, TypeError, AttributeError) as err:
        raise MalformedResponseError("Invalid message format") from err

    login = commenter.get("login") or commenter.get("displayName") or UNKNOWN_NAME
    offset = node.get("contentOffsetSeconds")
    return ChatMessage(
        created=node.get("createdAt") or EPOCH_ISO,
        stream_timestamp=float(offset) if offset is not None else 0.0,
        author=Author(
            display_name=commenter.get("displayName") or UNKNOWN_NAME,
            name=str(login).lower(),
            id=str(commenter.get("id") or UNKNOWN_USER_ID),
        ),
        body=body,
    )


@dataclass(frozen=True)
class MatchSpan:
    """A character range of a message body tagged with a display style."""

    start: int
    end: int
    style: str = "match"


class JobOutcome(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"
    ABORTED = "aborted"


@dataclass
class DownloadJob:
    """Per-broadcast state for the lifetime of one downloader run."""

    broadcast_id: str
    in_flight: bool = False
    outcome: JobOutcome = JobOutcome.PENDING
