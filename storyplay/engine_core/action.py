"""
Action System - Named actions, parsing and factories.

Actions represent:
1. Navigation (next/previous step, jumping to a section)
2. Timed advancement control (auto mode, skip mode)
3. Runtime state (variables, presets, layered views, choices)
4. Save slots

Raw action names arrive from story data, presets and the renderer.
They are parsed into ActionType at the boundary; an unknown name is an
UnknownActionError, which callers must let propagate.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from ..errors import ActionPayloadError, UnknownActionError


class ActionType(Enum):
    """Every action the engine can handle."""
    # Navigation
    NEXT_STEP = "nextStep"
    NEXT_LINE_FROM_SYSTEM = "nextLineFromSystem"
    PREV_STEP = "prevStep"
    GO_TO_SECTION_SCENE = "goToSectionScene"

    # Modes
    ENTER_MENU = "enterMenu"
    CLEAR_CURRENT_MODE = "clearCurrentMode"
    EXIT_HISTORY = "exitHistory"

    # Timed advancement
    START_AUTO_MODE = "startAutoMode"
    STOP_AUTO_MODE = "stopAutoMode"
    TOGGLE_AUTO_MODE = "toggleAutoMode"
    START_SKIP_MODE = "startSkipMode"
    STOP_SKIP_MODE = "stopSkipMode"
    TOGGLE_SKIP_MODE = "toggleSkipMode"

    # Runtime state
    SET_RUNTIME_VARIABLE = "setRuntimeVariable"
    UPDATE_VARIABLE = "updateVariable"
    SET_PRESET = "setPreset"
    SELECT_CHOICE = "selectChoice"
    TOGGLE_DIALOGUE_UI_HIDDEN = "toggleDialogueUIHidden"
    PUSH_LAYERED_VIEW = "pushLayeredView"
    POP_LAYERED_VIEW = "popLayeredView"

    # Save slots
    SAVE_VN_DATA = "saveVnData"
    LOAD_VN_DATA = "loadVnData"


def parse_action_type(name: str) -> ActionType:
    """Parse a raw action name, raising UnknownActionError if it is not known."""
    try:
        return ActionType(name)
    except ValueError:
        raise UnknownActionError(name) from None


@dataclass
class Action:
    """
    A parsed action with its payload.

    The payload is kept as authored (a mapping); each handler reads
    the keys it needs.
    """
    action_type: ActionType
    payload: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def parse(cls, name: str, payload: Any = None) -> Action:
        """Factory from a raw name and payload."""
        action_type = parse_action_type(name)
        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise ActionPayloadError(name, "payload must be an object")
        return cls(action_type=action_type, payload=dict(payload))

    @property
    def name(self) -> str:
        return self.action_type.value

    @classmethod
    def next_step(cls) -> Action:
        """Factory for a manual next step."""
        return cls(action_type=ActionType.NEXT_STEP)

    @classmethod
    def next_line_from_system(cls, source: str) -> Action:
        """Factory for timer-driven advancement."""
        return cls(
            action_type=ActionType.NEXT_LINE_FROM_SYSTEM,
            payload={"source": source},
        )

    @classmethod
    def go_to_section_scene(
        cls, section_id: str, scene_id: str | None = None, mode: str | None = None
    ) -> Action:
        """Factory for jumping to a section."""
        payload: dict[str, Any] = {"sectionId": section_id}
        if scene_id is not None:
            payload["sceneId"] = scene_id
        if mode is not None:
            payload["mode"] = mode
        return cls(action_type=ActionType.GO_TO_SECTION_SCENE, payload=payload)

    @classmethod
    def set_preset(cls, preset_id: str) -> Action:
        """Factory for switching presets."""
        return cls(action_type=ActionType.SET_PRESET, payload={"presetId": preset_id})
