"""
History - Append-only log of visited sections.

The log lets the reader rewind through every section taken so far.
While browsing, an index marks which entry the history pointer is in.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class HistoryEntry:
    section_id: str


class History:
    """Visited sections plus an optional browsing index."""

    def __init__(self, entries: list[HistoryEntry] | None = None):
        self._entries: list[HistoryEntry] = list(entries or [])
        self._history_mode_index: int | None = None

    @property
    def entries(self) -> tuple[HistoryEntry, ...]:
        return tuple(self._entries)

    @property
    def history_mode_index(self) -> int | None:
        return self._history_mode_index

    @property
    def history_mode_section_id(self) -> str | None:
        """Section being browsed in history mode, if any."""
        if self._history_mode_index is None:
            return None
        return self._entries[self._history_mode_index].section_id

    @property
    def is_browsing(self) -> bool:
        return self._history_mode_index is not None

    def add_section(self, section_id: str):
        self._entries.append(HistoryEntry(section_id=section_id))

    def clear(self):
        self._entries = []
        self._history_mode_index = None

    def enter_history_mode(self):
        """Start browsing from the latest entry."""
        if not self._entries:
            return
        self._history_mode_index = len(self._entries) - 1

    def clear_history_mode_index(self):
        self._history_mode_index = None

    def next_section(self) -> bool:
        """Move the browsing index forward; False at the newest entry."""
        if self._history_mode_index is None:
            return False
        if self._history_mode_index >= len(self._entries) - 1:
            return False
        self._history_mode_index += 1
        return True

    def previous_section(self) -> bool:
        """Move the browsing index back; False at the oldest entry."""
        if self._history_mode_index is None:
            return False
        if self._history_mode_index == 0:
            return False
        self._history_mode_index -= 1
        return True

    def to_list(self) -> list[dict[str, Any]]:
        return [{"sectionId": entry.section_id} for entry in self._entries]

    @classmethod
    def from_list(cls, entries: list[dict[str, Any]] | None) -> History:
        return cls([HistoryEntry(section_id=e["sectionId"]) for e in entries or []])
