"""Error taxonomy shared by the core and adapters."""

from __future__ import annotations


class ChatScraperError(Exception):
    """Base class for all expected chatscraper failures."""


class TransientTransportError(ChatScraperError):
    """A single request attempt failed; the transport retries it once."""


class TerminalTransportError(ChatScraperError):
    """A request failed on both the first attempt and the retry."""


class MalformedResponseError(ChatScraperError):
    """The remote returned a page or record with an unexpected shape."""


class CacheIOError(ChatScraperError):
    """A cache entry could not be read, parsed or written."""


class InvalidRuleError(ChatScraperError, ValueError):
    """A rule could not be parsed or compiled."""


class ChannelNotFoundError(ChatScraperError):
    """The broadcast listing query found no such channel."""


class QuietAbort(ChatScraperError):
    """Cooperative cancellation outcome.

    Never reported as an error: it means the run was shut down, not that
    anything failed.
    """
