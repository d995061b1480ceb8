"""JSON file cache adapter.

Implements the core CachePort with one JSON document per broadcast.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
import tempfile
from typing import Sequence

from chatscraper.core.errors import CacheIOError
from chatscraper.core.models import ChatMessage


class JsonChatCache:
    """Stores each chat replay as ``<cache_dir>/<broadcast_id>.json``."""

    def __init__(self, cache_dir: str) -> None:
        self._cache_dir = Path(cache_dir)
        self._cache_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, broadcast_id: str) -> Path:
        return self._cache_dir / f"{broadcast_id}.json"

    def exists(self, broadcast_id: str) -> bool:
        return self.path_for(broadcast_id).is_file()

    def read(self, broadcast_id: str) -> list[ChatMessage]:
        """Load the whole cached message list for one broadcast."""

        path = self.path_for(broadcast_id)
        try:
            with open(path, "r", encoding="utf-8") as handle:
                raw = json.load(handle)
        except (OSError, ValueError) as err:
            raise CacheIOError(f"Cannot read cache entry {path}: {err}") from err

        if not isinstance(raw, list):
            raise CacheIOError(f"Cache entry {path} does not contain a message list")
        return [ChatMessage.from_dict(item) for item in raw]

    def write(self, broadcast_id: str, messages: Sequence[ChatMessage]) -> None:
        """Replace the cache entry for one broadcast in a single step.

        The list is written to a temporary sibling first and then moved into
        place, so readers never see a half-written entry.
        """

        path = self.path_for(broadcast_id)
        payload = [message.to_dict() for message in messages]
        try:
            fd, tmp_path = tempfile.mkstemp(
                dir=self._cache_dir, prefix=f".{broadcast_id}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(payload, handle)
                os.replace(tmp_path, path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except (OSError, ValueError) as err:
            raise CacheIOError(f"Cannot write cache entry {path}: {err}") from err
