"""Highlight span resolution (core domain)."""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, List

from chatscraper.core.models import MatchSpan


def resolve_spans(text: str, spans: Iterable[MatchSpan]) -> List[MatchSpan]:
    """Return spans that can be rendered by slicing ``text`` in order.

    Bounds are clamped to the text, spans are sorted by start, and a span
    that overlaps its predecessor starts where the predecessor ends. Its end
    is pulled up to at least the predecessor's end so a span swallowed by an
    earlier one collapses into that one instead of reappearing later.
    """

    length = len(text)
    clamped = [
        replace(span, start=max(span.start, 0), end=min(span.end, length)) for span in spans
    ]
    clamped.sort(key=lambda span: span.start)

    resolved: List[MatchSpan] = []
    previous = None
    for span in clamped:
        if previous is not None:
            start = previous.end if previous.end > span.start else span.start
            span = replace(span, start=start, end=max(span.end, previous.end))
        resolved.append(span)
        previous = span

    return [span for span in resolved if span.start < span.end]
