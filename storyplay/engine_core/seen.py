"""
Seen Tracking - Which steps and choices the reader has already encountered.

Per section the tracker stores either the furthest step id seen or True
once the whole section has been read. "Seen" for a step is decided by its
position in the section relative to the stored step, not by a counter.
"""

from __future__ import annotations
from typing import Any

from ..story.index import Section


class SeenSections:
    """
    Manages seen sections, steps and choices.

    Example data:
        {"intro": True, "chapter1": "s4"}
    """

    def __init__(
        self,
        seen_sections: dict[str, str | bool] | None = None,
        seen_choices: list[str] | None = None,
    ):
        self._seen_sections: dict[str, str | bool] = dict(seen_sections or {})
        self._seen_choices: list[str] = list(seen_choices or [])

    def add_step_id(self, section_id: str, step_id: str):
        """Record a step as the furthest seen point of its section."""
        if self._seen_sections.get(section_id) is True:
            return
        self._seen_sections[section_id] = step_id

    def mark_section_seen(self, section_id: str):
        """Record the whole section as seen."""
        self._seen_sections[section_id] = True

    def is_section_seen(self, section_id: str) -> bool:
        return self._seen_sections.get(section_id) is True

    def is_step_id_seen(self, section: Section, step_id: str) -> bool:
        """Whether a step of the section is at or before the furthest seen step."""
        seen = self._seen_sections.get(section.section_id)
        if seen is True:
            return True
        if seen is None:
            return False
        current_index = section.index_of(step_id)
        if current_index == -1:
            return False
        return section.index_of(seen) >= current_index

    def add_choice(self, choice_id: str):
        if self.is_choice_seen(choice_id):
            return
        self._seen_choices.append(choice_id)

    def is_choice_seen(self, choice_id: str) -> bool:
        return choice_id in self._seen_choices

    def to_dict(self) -> dict[str, Any]:
        return {
            "seenSections": dict(self._seen_sections),
            "seenChoices": list(self._seen_choices),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> SeenSections:
        data = data or {}
        return cls(data.get("seenSections"), data.get("seenChoices"))
