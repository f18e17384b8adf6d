"""Client-side level filter and free-text search over a loaded entry window."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence

from ..models import LOG_LEVELS, LevelFilter, LogEntry


def matches_level(entry: LogEntry, level_filter: LevelFilter | str) -> bool:
    return level_filter == "all" or entry.level == level_filter


def matches_search(entry: LogEntry, search_term: str) -> bool:
    """True if ``search_term`` appears in the message (case-insensitive)."""
    if not search_term:
        return True
    return search_term.lower() in entry.message.lower()


def apply_filters(
    entries: Iterable[LogEntry],
    level_filter: LevelFilter | str = "all",
    search_term: str = "",
) -> list[LogEntry]:
    """Return the entries passing both filters, in their original order."""
    return [
        entry
        for entry in entries
        if matches_level(entry, level_filter) and matches_search(entry, search_term)
    ]


def count_by_level(entries: Sequence[LogEntry]) -> dict[str, int]:
    """Per-level counts with every level present, for footer/level chips."""
    counts = Counter(entry.level for entry in entries)
    return {level: counts.get(level, 0) for level in LOG_LEVELS}
