"""
Render Elements - Default mapping from presentation state to 2D elements.

The renderer is an external collaborator; this module is the stand-in
the engine uses unless a host plugs in its own generator. Each builder
appends to a shared element/transition list in draw order:
1. Full-screen click target (bg-screen), raising LeftClick/RightClick/ScrollUp
2. Background or CG sprite
3. Character containers, one sprite per sprite part
4. Visual sprites
5. Dialogue box screen
6. Overlay screen
7. Choice screen

UI screens are copied as authored. Their template bindings are left
unevaluated; the data they would bind is attached beside them.
"""

from __future__ import annotations
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from ..engine_core.state import PresentationState

ResolveFile = Callable[[str], str]


@dataclass
class RenderElements:
    """Output of a render-element generator."""
    elements: list[dict[str, Any]] = field(default_factory=list)
    transitions: list[dict[str, Any]] = field(default_factory=list)


def default_resolve_file(file_id: str) -> str:
    return f"file:{file_id}"


def generate_render_elements(
    state: PresentationState,
    resources: Mapping[str, Any],
    resolve_file: ResolveFile = default_resolve_file,
    screen: Mapping[str, Any] | None = None,
    ui: Mapping[str, Any] | None = None,
    variables: Mapping[str, Any] | None = None,
    dialogue_ui_hidden: bool = False,
) -> RenderElements:
    """
    Build render elements for a presentation state.

    Resources that the state references but the story does not define
    are skipped.
    """
    result = RenderElements()
    context = {
        "state": state,
        "resources": resources or {},
        "resolve_file": resolve_file,
        "screen": screen or {},
        "ui": ui or {},
        "variables": dict(variables or {}),
        "dialogue_ui_hidden": dialogue_ui_hidden,
    }
    for builder in _BUILDERS:
        builder(result, **context)
    return result


def _add_screen_background(result: RenderElements, screen, **_):
    result.elements.append({
        "id": "bg-screen",
        "type": "graphics",
        "x1": 0,
        "x2": screen.get("width", 0),
        "y1": 0,
        "y2": screen.get("height", 0),
        "fill": screen.get("backgroundColor"),
        "clickEventName": "LeftClick",
        "rightClickEventName": "RightClick",
        "wheelEventName": "ScrollUp",
    })


def _add_background(result: RenderElements, state, resources, resolve_file, **_):
    background = state.background
    if not background:
        return

    resource = resources.get("backgrounds", {}).get(background.get("backgroundId"))
    if resource is not None:
        result.elements.append({
            "id": "bg-cg",
            "type": "sprite",
            "x": 0,
            "y": 0,
            "url": resolve_file(resource["fileId"]),
        })
    _add_animations(result, background.get("animations"), "bg-cg", "bg-cg-animation", resources)


def _add_characters(result: RenderElements, state, resources, resolve_file, **_):
    character = state.character
    if not character:
        return

    positions = resources.get("positions", {})
    sprite_files = {
        part_id: part.get("fileId")
        for definition in resources.get("characters", {}).values()
        for part_id, part in definition.get("spriteParts", {}).items()
    }

    for item in character.get("items", []):
        position = positions.get(item.get("positionId"), {})
        container = {
            "id": f"character-container-{item['id']}",
            "type": "container",
            "x": position.get("x"),
            "y": position.get("y"),
            "xa": position.get("xa"),
            "ya": position.get("ya"),
            "anchor": position.get("anchor"),
            "children": [],
        }
        for part in item.get("spriteParts", []):
            file_id = sprite_files.get(part.get("spritePartId"))
            if file_id is None:
                continue
            container["children"].append({
                "id": f"{item['id']}-{part['spritePartId']}",
                "type": "sprite",
                "url": resolve_file(file_id),
            })
        result.elements.append(container)


def _add_visuals(result: RenderElements, state, resources, resolve_file, **_):
    visual = state.visual
    if not visual:
        return

    for item in visual.get("items", []):
        element_id = f"visual-{item['id']}"
        resource = resources.get("visuals", {}).get(item.get("visualId"))
        if resource is not None:
            position = resources.get("positions", {}).get(item.get("positionId"), {})
            result.elements.append({
                "id": element_id,
                "type": "sprite",
                "url": resolve_file(resource["fileId"]),
                "x": position.get("x"),
                "y": position.get("y"),
                "xa": position.get("xa"),
                "ya": position.get("ya"),
            })
        _add_animations(result, item.get("animations"), element_id, f"{item['id']}-animation", resources)


def _add_dialogue(result: RenderElements, state, resources, ui, dialogue_ui_hidden, **_):
    dialogue = state.dialogue
    if not dialogue or dialogue_ui_hidden:
        return

    box = ui.get("screens", {}).get(dialogue.get("dialogueBoxId"))
    if box is None:
        return

    character_name = None
    character_id = dialogue.get("characterId")
    if character_id:
        character_name = resources.get("characters", {}).get(character_id, {}).get("name")
    if isinstance(dialogue.get("character"), dict):
        character_name = dialogue["character"].get("characterName", character_name)

    result.elements.append({
        "id": "dialogue",
        "type": "screen",
        "screenId": dialogue.get("dialogueBoxId"),
        "elements": deepcopy(box.get("elements", [])),
        "data": {
            "dialogue": {
                "text": dialogue.get("text"),
                "segments": deepcopy(dialogue.get("segments")),
                "texts": deepcopy(dialogue.get("texts")),
                "character": {"name": character_name},
            },
        },
    })


def _add_screen(result: RenderElements, state, ui, variables, **_):
    overlay = state.screen
    if not overlay:
        return

    screen = ui.get("screens", {}).get(overlay.get("screenId"))
    if screen is None:
        return
    result.elements.append({
        "id": f"screen-{overlay['screenId']}",
        "type": "screen",
        "screenId": overlay["screenId"],
        "elements": deepcopy(screen.get("elements", [])),
        "data": {"variables": deepcopy(variables)},
    })


def _add_choices(result: RenderElements, state, ui, **_):
    choices = state.choices
    if not choices:
        return

    screen = ui.get("screens", {}).get(choices.get("choiceScreenId"))
    if screen is None:
        return
    result.elements.append({
        "id": "choices",
        "type": "screen",
        "screenId": choices.get("choiceScreenId"),
        "elements": deepcopy(screen.get("elements", [])),
        "data": {"choices": {"items": deepcopy(choices.get("items", []))}},
    })


def _add_animations(result: RenderElements, animations, element_id, transition_id, resources):
    """Keyframe transitions for an element's in/out animations."""
    if not animations:
        return
    definitions = resources.get("animations", {})
    for direction, event, suffix in (("in", "add", ""), ("out", "remove", "-2")):
        animation = definitions.get(animations.get(direction))
        if animation is None:
            continue
        result.transitions.append({
            "id": f"{transition_id}{suffix}",
            "type": "keyframes",
            "event": event,
            "elementId": element_id,
            "animationProperties": deepcopy(animation.get("properties")),
        })


_BUILDERS = [
    _add_screen_background,
    _add_background,
    _add_characters,
    _add_visuals,
    _add_dialogue,
    _add_screen,
    _add_choices,
]
