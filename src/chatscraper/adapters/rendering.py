"""Terminal rendering helpers.

Keeping formatting here prevents drift between the result printer and the
status notices, and keeps the core free of any styling library.
"""

from __future__ import annotations

import re
from typing import Iterable

from rich.console import Console
from rich.text import Text

from chatscraper.core.broadcast_keys import build_vod_link
from chatscraper.core.highlight import resolve_spans
from chatscraper.core.models import ChatMessage, MatchSpan

STYLES = {
    "match": "rgb(120,192,90)",
    "notice": "rgb(160,128,0)",
    "link": "underline rgb(122,171,249)",
}

NAME_WIDTH = 20
# Widest link we expect, so message bodies line up in a column.
LINK_WIDTH = len("https://twitch.tv/videos/") + 23

_FRACTIONAL_SECONDS_RE = re.compile(r"\.\d+Z$")


def build_console(plain: bool = False) -> Console:
    """Return a console; plain mode emits no escape sequences at all."""

    return Console(
        color_system=None if plain else "auto",
        highlight=False,
        markup=False,
        soft_wrap=True,
    )


def highlight_text(text: str, spans: Iterable[MatchSpan]) -> Text:
    """Apply resolved highlight spans to ``text``."""

    rendered = Text(text)
    for span in resolve_spans(text, spans):
        rendered.stylize(STYLES.get(span.style, ""), span.start, span.end)
    return rendered


def notice(text: str) -> Text:
    return Text(text, style=STYLES["notice"])


def format_created(created: str) -> str:
    """Drop fractional seconds from an ISO timestamp."""

    return _FRACTIONAL_SECONDS_RE.sub("Z", created)


def format_message(
    message: ChatMessage,
    broadcast_id: str,
    spans: Iterable[MatchSpan],
    print_links: bool = False,
    name_width: int = NAME_WIDTH,
) -> Text:
    """Create the one-line result entry for a matched message."""

    line = Text()
    if print_links:
        link = build_vod_link(broadcast_id, message.stream_timestamp)
        line.append(link, style=STYLES["link"])
        line.append(" " * max(LINK_WIDTH - len(link), 0))

    line.append(f"[{format_created(message.created)}] ")
    line.append(f"{message.author.name}: ".ljust(name_width + 4))
    line.append_text(highlight_text(message.body, spans))
    return line


class ProgressIndicator:
    """Heartbeat bar that grows one block per downloaded page."""

    def __init__(self, console: Console, width: int = 20) -> None:
        self._console = console
        self._width = width
        self.length = 0

    def tick(self) -> None:
        if self.length >= self._width:
            self._console.file.write("\r" + " " * self._width + "\r")
            self.length = 0
        self.length += 1
        self._console.file.write("░")
        self._console.file.flush()

    def clear(self, newline: bool = True) -> None:
        if self.length == 0:
            return
        self._console.file.write("\r" + " " * self._width + "\r")
        if newline:
            self._console.file.write("\n")
        self._console.file.flush()
        self.length = 0
