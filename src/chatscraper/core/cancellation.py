"""Cooperative cancellation token passed through every suspension point."""

from __future__ import annotations

from chatscraper.core.errors import QuietAbort


class CancelToken:
    """One-way cancellation flag shared by all jobs of one downloader.

    Nothing is interrupted forcibly. Code checks the token around each await
    and turns a cancelled token into ``QuietAbort``.
    """

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise QuietAbort()
