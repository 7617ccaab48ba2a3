"""
Presentation State - What the renderer should show at one step.

Design principles:
- Immutable-friendly: applying a step returns a new state
- Never cached across steps: always the fold of the section prefix
- Slots hold plain JSON-compatible data copied out of the story
- Control signals (goToSectionScene, preset) travel beside the slots
  and are not part of the render-ready state
"""

from __future__ import annotations
from copy import deepcopy
from dataclasses import dataclass, fields, replace
from typing import Any


# Slot attribute name -> authored action key
SLOT_KEYS: dict[str, str] = {
    "background": "background",
    "sfx": "sfx",
    "bgm": "bgm",
    "visual": "visual",
    "dialogue": "dialogue",
    "character": "character",
    "animation": "animation",
    "screen": "screen",
    "choices": "choices",
}

SIGNAL_KEYS: dict[str, str] = {
    "go_to_section_scene": "goToSectionScene",
    "preset": "preset",
}


@dataclass(frozen=True)
class PresentationState:
    """
    Accumulated presentation slots for a step prefix.

    Every slot is optional; None means the slot is absent.
    """
    background: dict[str, Any] | None = None
    sfx: dict[str, Any] | None = None
    bgm: dict[str, Any] | None = None
    visual: dict[str, Any] | None = None
    dialogue: dict[str, Any] | None = None
    character: dict[str, Any] | None = None
    animation: dict[str, Any] | None = None
    screen: dict[str, Any] | None = None
    choices: dict[str, Any] | None = None

    # Transient control signals from the last folded step
    go_to_section_scene: dict[str, Any] | None = None
    preset: dict[str, Any] | None = None

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    @property
    def has_signal(self) -> bool:
        return self.go_to_section_scene is not None or self.preset is not None

    def _copy_with(self, **kwargs) -> PresentationState:
        """Create a copy with some fields replaced."""
        return replace(self, **kwargs)

    def without_slots(self) -> PresentationState:
        """Copy with every slot cleared, keeping the control signals."""
        return PresentationState(
            go_to_section_scene=self.go_to_section_scene,
            preset=self.preset,
        )

    def to_dict(self) -> dict[str, Any]:
        """Render-ready slots keyed as authored, absent slots omitted."""
        return {
            key: deepcopy(getattr(self, attr))
            for attr, key in SLOT_KEYS.items()
            if getattr(self, attr) is not None
        }

    def signals(self) -> dict[str, Any]:
        """Control signals keyed as authored."""
        return {
            key: deepcopy(getattr(self, attr))
            for attr, key in SIGNAL_KEYS.items()
            if getattr(self, attr) is not None
        }
