from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional, Sequence

from chatscraper.adapters.json_cache import JsonChatCache
from chatscraper.core.cancellation import CancelToken
from chatscraper.core.errors import CacheIOError, TerminalTransportError
from chatscraper.core.models import Author, ChatMessage
from chatscraper.core.orchestrator import ChatDownloader

END_PAGE = [{"data": {"video": {"comments": None}}}]


def _edge(message_id: str, offset: float) -> dict:
    return {
        "node": {
            "id": message_id,
            "createdAt": "2024-01-01T00:00:00Z",
            "contentOffsetSeconds": offset,
            "commenter": {"id": "1", "login": "viewer", "displayName": "Viewer"},
            "message": {"fragments": [{"text": f"message {message_id}"}]},
        }
    }


def _page(*edges: dict) -> list:
    return [{"data": {"video": {"comments": {"edges": list(edges)}}}}]


def _message(body: str) -> ChatMessage:
    return ChatMessage(
        created="2023-05-05T10:00:00Z",
        stream_timestamp=12.0,
        author=Author(display_name="Cached", name="cached", id="7"),
        body=body,
    )


class FakeCache:
    def __init__(self, entries: Optional[dict[str, list[ChatMessage]]] = None) -> None:
        self.entries = dict(entries or {})
        self.writes: list[str] = []

    def exists(self, broadcast_id: str) -> bool:
        return broadcast_id in self.entries

    def read(self, broadcast_id: str) -> list[ChatMessage]:
        return list(self.entries[broadcast_id])

    def write(self, broadcast_id: str, messages: Sequence[ChatMessage]) -> None:
        self.writes.append(broadcast_id)
        self.entries[broadcast_id] = list(messages)


class RecordingListener:
    def __init__(self) -> None:
        self.data: list[tuple[str, list[ChatMessage]]] = []
        self.errors: list[tuple[Exception, str]] = []
        self.progress = 0
        self.successes = 0
        self.failures = 0

    def on_data(self, messages: list[ChatMessage], broadcast_id: str) -> None:
        self.data.append((broadcast_id, messages))

    def on_progress(self) -> None:
        self.progress += 1

    def on_error(self, error: Exception, broadcast_id: str) -> None:
        self.errors.append((error, broadcast_id))

    def on_success(self) -> None:
        self.successes += 1

    def on_failure(self) -> None:
        self.failures += 1


class ChatTransport:
    """Serves two pages and an end marker for every broadcast."""

    def __init__(self, failing: Sequence[str] = ()) -> None:
        self._failing = set(failing)
        self.calls: list[tuple[str, float]] = []
        self.active = 0
        self.peak = 0
        self.on_call: Optional[Callable[[], None]] = None

    async def execute(self, payload: Any, cancel_token: CancelToken) -> Any:
        cancel_token.raise_if_cancelled()
        variables = payload[0]["variables"]
        video_id, offset = variables["videoID"], variables["contentOffsetSeconds"]
        self.calls.append((video_id, offset))
        if self.on_call is not None:
            self.on_call()

        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            for _ in range(3):
                await asyncio.sleep(0)
        finally:
            self.active -= 1
        cancel_token.raise_if_cancelled()

        if video_id in self._failing:
            raise TerminalTransportError("connection reset")
        if offset == 0:
            return _page(_edge(f"{video_id}-1", 1), _edge(f"{video_id}-2", 2))
        if offset == 2:
            return _page(_edge(f"{video_id}-2", 2), _edge(f"{video_id}-3", 3))
        return END_PAGE


def _run(downloader: ChatDownloader, ids: list, force_download: bool = False) -> dict:
    return asyncio.run(downloader.get_chat_replays(ids, force_download=force_download))


def test_cache_hit_skips_network_and_returns_entry_verbatim() -> None:
    cached = [_message("first"), _message("second")]
    cache = FakeCache({"123": cached})
    transport = ChatTransport()
    listener = RecordingListener()
    downloader = ChatDownloader(transport, cache, listener)

    batches = _run(downloader, [123])

    assert transport.calls == []
    assert batches == {"123": cached}
    assert listener.data == [("123", cached)]
    assert listener.successes == 1
    assert listener.failures == 0
    assert cache.writes == []


def test_cache_miss_downloads_and_writes_entry() -> None:
    cache = FakeCache()
    transport = ChatTransport()
    listener = RecordingListener()
    downloader = ChatDownloader(transport, cache, listener)

    batches = _run(downloader, ["55"])

    assert [m.body for m in batches["55"]] == ["message 55-1", "message 55-2", "message 55-3"]
    assert cache.writes == ["55"]
    assert cache.entries["55"] == batches["55"]
    assert listener.progress == 2
    assert listener.successes == 1


def test_force_download_overwrites_cached_entry() -> None:
    cache = FakeCache({"55": [_message("stale")]})
    transport = ChatTransport()
    listener = RecordingListener()
    downloader = ChatDownloader(transport, cache, listener)

    batches = _run(downloader, ["55"], force_download=True)

    assert transport.calls
    assert len(cache.entries["55"]) == 3
    assert batches["55"] == cache.entries["55"]


def test_concurrent_downloads_never_exceed_limit() -> None:
    cache = FakeCache()
    transport = ChatTransport()
    listener = RecordingListener()
    downloader = ChatDownloader(transport, cache, listener, max_downloads=2)

    batches = _run(downloader, [str(i) for i in range(1, 7)])

    assert len(batches) == 6
    assert transport.peak <= 2
    assert downloader.active_downloads == 0
    assert listener.progress == 12
    assert listener.successes == 1


def test_cache_hits_do_not_take_download_slots() -> None:
    cache = FakeCache({str(i): [_message("cached")] for i in range(1, 5)})
    transport = ChatTransport()
    listener = RecordingListener()
    downloader = ChatDownloader(transport, cache, listener, max_downloads=1)

    _run(downloader, ["1", "2", "3", "4", "99"])

    assert transport.peak == 1
    assert {video_id for video_id, _ in transport.calls} == {"99"}


def test_overlapping_runs_share_the_download_limit() -> None:
    transport = ChatTransport()
    listener = RecordingListener()
    downloader = ChatDownloader(transport, FakeCache(), listener, max_downloads=1)

    async def _both_runs() -> list:
        return await asyncio.gather(
            downloader.get_chat_replays(["1", "2"]),
            downloader.get_chat_replays(["3", "4"]),
        )

    first, second = asyncio.run(_both_runs())

    assert set(first) == {"1", "2"}
    assert set(second) == {"3", "4"}
    assert transport.peak == 1
    assert downloader.active_downloads == 0
    assert listener.successes == 2


def test_error_is_isolated_to_its_broadcast() -> None:
    cache = FakeCache()
    transport = ChatTransport(failing=["666"])
    listener = RecordingListener()
    downloader = ChatDownloader(transport, cache, listener)

    batches = _run(downloader, ["1", "666", "2"])

    assert set(batches) == {"1", "2"}
    assert len(listener.errors) == 1
    error, broadcast_id = listener.errors[0]
    assert broadcast_id == "666"
    assert isinstance(error, TerminalTransportError)
    assert "666" not in cache.entries
    assert listener.successes == 0
    assert listener.failures == 1


class FailingDataListener(RecordingListener):
    def on_data(self, messages: list[ChatMessage], broadcast_id: str) -> None:
        if broadcast_id == "2":
            raise RuntimeError("display failed")
        super().on_data(messages, broadcast_id)


class FailingErrorListener(RecordingListener):
    def on_error(self, error: Exception, broadcast_id: str) -> None:
        super().on_error(error, broadcast_id)
        raise RuntimeError("report failed")


def test_listener_data_fault_becomes_that_broadcasts_error() -> None:
    cache = FakeCache()
    listener = FailingDataListener()
    downloader = ChatDownloader(ChatTransport(), cache, listener)

    batches = _run(downloader, ["1", "2", "3"])

    assert set(batches) == {"1", "3"}
    assert [broadcast_id for _, broadcast_id in listener.errors] == ["2"]
    assert isinstance(listener.errors[0][0], RuntimeError)
    assert listener.successes == 0
    assert listener.failures == 1


def test_listener_error_fault_still_reports_failure() -> None:
    listener = FailingErrorListener()
    downloader = ChatDownloader(ChatTransport(failing=["666"]), FakeCache(), listener)

    batches = _run(downloader, ["1", "666"])

    assert set(batches) == {"1"}
    assert len(listener.errors) == 1
    assert listener.successes == 0
    assert listener.failures == 1


def test_corrupt_cache_entry_is_reported(tmp_path) -> None:
    cache = JsonChatCache(str(tmp_path))
    (tmp_path / "77.json").write_text("{not json", encoding="utf-8")
    listener = RecordingListener()
    downloader = ChatDownloader(ChatTransport(), cache, listener)

    _run(downloader, ["77"])

    assert len(listener.errors) == 1
    assert isinstance(listener.errors[0][0], CacheIOError)
    assert listener.failures == 1


def test_abort_settles_jobs_quietly() -> None:
    cache = FakeCache()
    transport = ChatTransport()
    listener = RecordingListener()
    downloader = ChatDownloader(transport, cache, listener, max_downloads=1)
    # The first request is in flight when the run gets cancelled.
    transport.on_call = downloader.abort_all

    batches = _run(downloader, ["1", "2", "3"])

    assert batches == {}
    assert len(transport.calls) == 1
    assert listener.errors == []
    assert listener.data == []
    assert listener.successes == 0
    assert listener.failures == 1
    assert cache.writes == []


def test_abort_before_run_issues_no_request() -> None:
    cache = FakeCache({"1": [_message("cached")]})
    transport = ChatTransport()
    listener = RecordingListener()
    downloader = ChatDownloader(transport, cache, listener)
    downloader.abort_all()

    _run(downloader, ["1", "2"])

    assert transport.calls == []
    assert listener.errors == []
    assert listener.failures == 1


def test_duplicate_ids_are_downloaded_once() -> None:
    cache = FakeCache()
    transport = ChatTransport()
    listener = RecordingListener()
    downloader = ChatDownloader(transport, cache, listener)

    _run(downloader, ["5", 5, "05"])

    assert cache.writes == ["5"]
    assert len(listener.data) == 1


def test_remove_cached_vods_from_list() -> None:
    cache = FakeCache({"1": [_message("cached")]})
    downloader = ChatDownloader(ChatTransport(), cache, RecordingListener())

    assert downloader.remove_cached_vods_from_list(["1", 2, "3", "2"]) == ["2", "3"]
