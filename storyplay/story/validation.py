"""
Story Validation - Structural validation for story data.

Validates that:
1. Initial scene, section and preset ids resolve
2. Every section has at least one step and step ids are unique within it
3. goToSectionScene targets and preset switches reference existing ids
4. Preset event maps only name actions the engine knows
5. autoNext delays are non-negative numbers
6. Scenes, sections, steps and object-valued step actions have the right shape
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Mapping

from ..engine_core.action import ActionType
from ..errors import StoryValidationError

# Step actions the reducer reads as objects
OBJECT_ACTION_KEYS = (
    "background",
    "sfx",
    "bgm",
    "visual",
    "dialogue",
    "character",
    "goToSectionScene",
    "preset",
)


@dataclass
class ValidationResult:
    """Result of validation, with errors and warnings."""
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def validate_story(data: Mapping[str, Any], raise_on_error: bool = False) -> ValidationResult:
    """
    Validate authored story data.

    Returns ValidationResult with errors and warnings.
    Raises StoryValidationError if raise_on_error=True and errors exist.
    """
    errors: list[str] = []
    warnings: list[str] = []

    story = data.get("story") if isinstance(data, Mapping) else None
    if not isinstance(story, Mapping):
        errors.append("story is required")
        return _finish(errors, warnings, raise_on_error)

    scenes = _mapping_or_error(story.get("scenes"), "story.scenes", errors)
    presets = _mapping_or_error(data.get("presets"), "presets", errors)
    known_actions = {action_type.value for action_type in ActionType}

    # Shapes
    sections_by_scene: dict[str, dict[str, Any]] = {}
    for scene_id, scene in scenes.items():
        if not isinstance(scene, Mapping):
            errors.append(f"Scene {scene_id} must be an object")
            continue
        sections = _mapping_or_error(scene.get("sections"), f"Scene {scene_id}: sections", errors)
        sections_by_scene[scene_id] = {}
        for section_id, section in sections.items():
            if not isinstance(section, Mapping):
                errors.append(f"Section {section_id} must be an object")
                continue
            sections_by_scene[scene_id][section_id] = section

    section_ids: set[str] = set()
    for sections in sections_by_scene.values():
        for section_id in sections:
            if section_id in section_ids:
                errors.append(f"Section {section_id} is defined in more than one scene")
            section_ids.add(section_id)

    # Initial ids
    initial_scene_id = story.get("initialSceneId")
    if not _is_key(initial_scene_id, scenes):
        errors.append(f"initialSceneId {initial_scene_id} does not match a scene")
    initial_preset_id = story.get("initialPresetId")
    if initial_preset_id is not None and not _is_key(initial_preset_id, presets):
        errors.append(f"initialPresetId {initial_preset_id} does not match a preset")
    elif initial_preset_id is None:
        warnings.append("initialPresetId is not set; events will not be mapped")

    for scene_id, sections in sections_by_scene.items():
        initial_section_id = scenes[scene_id].get("initialSectionId")
        if not _is_key(initial_section_id, sections):
            errors.append(
                f"Scene {scene_id}: initialSectionId {initial_section_id} is not in the scene"
            )

        for section_id, section in sections.items():
            steps = section.get("steps") or []
            if not isinstance(steps, list):
                errors.append(f"Section {section_id}: steps must be a list")
                continue
            if not steps:
                errors.append(f"Section {section_id} has no steps")

            seen_step_ids: set[str] = set()
            for position, step in enumerate(steps):
                if not isinstance(step, Mapping):
                    errors.append(f"Section {section_id}: step {position} must be an object")
                    continue
                step_id = step.get("id")
                if not isinstance(step_id, str) or not step_id:
                    errors.append(f"Section {section_id}: step {position} has no id")
                    continue
                if step_id in seen_step_ids:
                    errors.append(f"Section {section_id}: duplicate step id {step_id}")
                seen_step_ids.add(step_id)

                errors.extend(
                    f"Section {section_id}, step {step_id}: {message}"
                    for message in _validate_step(step, section_ids, presets)
                )

    # Preset event maps
    for preset_id, preset in presets.items():
        if not isinstance(preset, Mapping):
            errors.append(f"Preset {preset_id} must be an object")
            continue
        events_map = _mapping_or_error(
            preset.get("eventsMap"), f"Preset {preset_id}: eventsMap", errors
        )
        for event_name, mapping in events_map.items():
            if not isinstance(mapping, Mapping):
                errors.append(f"Preset {preset_id}: event {event_name} must be an object")
                continue
            actions = _mapping_or_error(
                mapping.get("actions"), f"Preset {preset_id}: event {event_name}: actions", errors
            )
            for action_name in actions:
                if action_name not in known_actions:
                    errors.append(
                        f"Preset {preset_id}: event {event_name} maps unknown action {action_name}"
                    )

    return _finish(errors, warnings, raise_on_error)


def _validate_step(
    step: Mapping[str, Any],
    section_ids: set[str],
    presets: Mapping[str, Any],
) -> list[str]:
    """Validate shapes, references and timing on a single step."""
    errors: list[str] = []
    actions = step.get("actions") or {}
    if not isinstance(actions, Mapping):
        return ["actions must be an object"]

    for name in OBJECT_ACTION_KEYS:
        value = actions.get(name)
        if value is not None and not isinstance(value, Mapping):
            errors.append(f"{name} must be an object")

    go_to = actions.get("goToSectionScene")
    if isinstance(go_to, Mapping):
        target = go_to.get("sectionId")
        if not _is_key(target, section_ids):
            errors.append(f"goToSectionScene target {target} does not exist")

    preset = actions.get("preset")
    if isinstance(preset, Mapping):
        preset_id = preset.get("presetId")
        if not _is_key(preset_id, presets):
            errors.append(f"preset {preset_id} does not exist")

    auto_next = step.get("autoNext")
    if auto_next is not None and not isinstance(auto_next, Mapping):
        errors.append("autoNext must be an object")
    elif auto_next is not None:
        delay = auto_next.get("delay")
        if delay is not None and (not isinstance(delay, (int, float)) or delay < 0):
            errors.append(f"autoNext.delay must be a non-negative number, got {delay!r}")

    return errors


def _mapping_or_error(value: Any, label: str, errors: list[str]) -> Mapping[str, Any]:
    """Return value when it is a mapping; otherwise record an error and return {}."""
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        errors.append(f"{label} must be an object")
        return {}
    return value


def _is_key(value: Any, container) -> bool:
    return isinstance(value, str) and value in container


def _finish(errors: list[str], warnings: list[str], raise_on_error: bool) -> ValidationResult:
    if errors and raise_on_error:
        raise StoryValidationError(errors)
    return ValidationResult(valid=not errors, errors=errors, warnings=warnings)
