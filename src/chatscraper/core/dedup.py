"""Boundary deduplication helpers (core domain).

Chat pages are requested by stream offset, so each new page starts with the
records that closed the previous one. Only the IDs of the latest page are
kept, which bounds memory regardless of transcript length.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Optional, Set


def record_id(record: Any) -> Optional[str]:
    """Return the remote identifier of a comment edge, if it has one."""

    try:
        value = record["node"]["id"]
    except (KeyError, TypeError):
        return None
    return None if value is None else str(value)


def boundary_ids(records: Iterable[Any]) -> Set[str]:
    """Collect the identifiers of one page's records."""

    ids: Set[str] = set()
    for record in records:
        value = record_id(record)
        if value is not None:
            ids.add(value)
    return ids


def drop_boundary_duplicates(records: Iterable[Any], previous_ids: Set[str]) -> List[Any]:
    """Remove records already delivered by the previous page."""

    if not previous_ids:
        return list(records)
    return [record for record in records if record_id(record) not in previous_ids]
