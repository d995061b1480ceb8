"""Download orchestration across many broadcasts.

This module is integration-agnostic. It only relies on ports for transport,
cache and event delivery, so the CLI and the tests plug in their own.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional, Union

from chatscraper.core.broadcast_keys import unique_broadcast_ids
from chatscraper.core.cancellation import CancelToken
from chatscraper.core.errors import QuietAbort
from chatscraper.core.models import ChatMessage, DownloadJob, JobOutcome
from chatscraper.core.pagination import fetch_all
from chatscraper.core.ports import CachePort, DownloadListener, TransportPort

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_DOWNLOADS = 3


class ChatDownloader:
    """Gets chat replays for many broadcasts, from cache or the network.

    Downloads are bounded by ``max_downloads``; cache hits bypass the limit.
    One cancellation token covers every job started by this instance.
    """

    def __init__(
        self,
        transport: TransportPort,
        cache: CachePort,
        listener: DownloadListener,
        max_downloads: int = DEFAULT_MAX_DOWNLOADS,
        cancel_token: Optional[CancelToken] = None,
    ) -> None:
        if max_downloads < 1:
            raise ValueError("max_downloads must be at least 1")
        self._transport = transport
        self._cache = cache
        self._listener = listener
        self._cancel_token = cancel_token or CancelToken()
        self._slots = asyncio.Semaphore(max_downloads)
        self._active_downloads = 0

    @property
    def active_downloads(self) -> int:
        return self._active_downloads

    def abort_all(self) -> None:
        """Stop all current and queued jobs at their next suspension point."""

        if not self._cancel_token.cancelled:
            LOGGER.info("Aborting all chat downloads")
        self._cancel_token.cancel()

    def remove_cached_vods_from_list(
        self, broadcast_ids: Iterable[Union[str, int]]
    ) -> list[str]:
        """Return only the IDs that have no cache entry yet."""

        return [
            broadcast_id
            for broadcast_id in unique_broadcast_ids(broadcast_ids)
            if not self._cache.exists(broadcast_id)
        ]

    async def get_chat_replays(
        self,
        broadcast_ids: Iterable[Union[str, int]],
        force_download: bool = False,
    ) -> dict[str, list[ChatMessage]]:
        """Retrieve the chat replays of several broadcasts concurrently.

        Every successful batch is passed to ``listener.on_data`` as soon as
        it is ready and is also part of the returned mapping. After all jobs
        settle exactly one of ``on_success`` / ``on_failure`` fires.
        """

        jobs = [DownloadJob(broadcast_id) for broadcast_id in unique_broadcast_ids(broadcast_ids)]
        batches: dict[str, list[ChatMessage]] = {}

        results = await asyncio.gather(
            *(self._run_job(job, force_download, batches) for job in jobs),
            return_exceptions=True,
        )
        for job, result in zip(jobs, results):
            # Only a raising on_error listener gets here; the job already failed.
            if isinstance(result, Exception):
                LOGGER.error("Listener failed while reporting %s: %s", job.broadcast_id, result)

        succeeded = sum(1 for job in jobs if job.outcome is JobOutcome.SUCCESS)
        aborted = sum(1 for job in jobs if job.outcome is JobOutcome.ABORTED)
        LOGGER.info(
            "Chat replay run complete: jobs=%s, succeeded=%s, aborted=%s",
            len(jobs),
            succeeded,
            aborted,
        )
        if succeeded == len(jobs):
            self._listener.on_success()
        else:
            self._listener.on_failure()
        return batches

    async def _run_job(
        self,
        job: DownloadJob,
        force_download: bool,
        batches: dict[str, list[ChatMessage]],
    ) -> None:
        try:
            messages = await self._retrieve(job, force_download)
            # A consumer fault counts as this broadcast's error.
            self._listener.on_data(messages, job.broadcast_id)
        except QuietAbort:
            job.outcome = JobOutcome.ABORTED
            LOGGER.debug("Job for %s aborted", job.broadcast_id)
            return
        except Exception as err:
            # Per-ID failures are reported and isolated from sibling jobs.
            job.outcome = JobOutcome.ERROR
            LOGGER.error("Chat replay for %s failed: %s", job.broadcast_id, err)
            self._listener.on_error(err, job.broadcast_id)
            return

        job.outcome = JobOutcome.SUCCESS
        batches[job.broadcast_id] = messages

    async def _retrieve(self, job: DownloadJob, force_download: bool) -> list[ChatMessage]:
        self._cancel_token.raise_if_cancelled()

        if not force_download and self._cache.exists(job.broadcast_id):
            LOGGER.debug("Cache hit for %s", job.broadcast_id)
            return self._cache.read(job.broadcast_id)

        # Shared by every run on this instance, so overlapping runs share the bound.
        async with self._slots:
            # Queued jobs must not start a request once the run is cancelled.
            self._cancel_token.raise_if_cancelled()
            job.in_flight = True
            self._active_downloads += 1
            try:
                LOGGER.info("Downloading chat replay for %s", job.broadcast_id)
                messages = await fetch_all(
                    job.broadcast_id,
                    self._transport,
                    self._cancel_token,
                    self._listener.on_progress,
                )
                self._cache.write(job.broadcast_id, messages)
            finally:
                self._active_downloads -= 1
                job.in_flight = False

        LOGGER.info("Cached %s messages for %s", len(messages), job.broadcast_id)
        return messages
