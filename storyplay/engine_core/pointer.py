"""
Step Pointer - A movable cursor into (section_id, step_id) space.

One pointer exists per navigation mode (read, menu, history).
A pointer is either fully set or fully empty, never half of each.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum


class PointerMode(Enum):
    """Navigation modes, each with its own pointer."""
    READ = "read"
    MENU = "menu"
    HISTORY = "history"


@dataclass(frozen=True)
class StepPosition:
    """A resolved (section, step) location."""
    section_id: str
    step_id: str


class StepPointer:
    """
    Points to a specific section and step.

    Validation against the story is the StepManager's job; the pointer
    only guards against being partially set.
    """

    def __init__(self):
        self._section_id: str | None = None
        self._step_id: str | None = None

    @property
    def section_id(self) -> str | None:
        return self._section_id

    @property
    def step_id(self) -> str | None:
        return self._step_id

    @property
    def is_active(self) -> bool:
        """Whether the pointer is pointing to a section and step."""
        return self._section_id is not None and self._step_id is not None

    @property
    def position(self) -> StepPosition | None:
        if not self.is_active:
            return None
        return StepPosition(self._section_id, self._step_id)

    def set(self, section_id: str, step_id: str):
        if not section_id or not step_id:
            raise ValueError("StepPointer needs both a section id and a step id")
        self._section_id = section_id
        self._step_id = step_id

    def clear(self):
        self._section_id = None
        self._step_id = None

    def __repr__(self) -> str:
        return f"StepPointer(section_id={self._section_id!r}, step_id={self._step_id!r})"
