"""
Reducer - Folds a step prefix into a presentation state.

The reducer is the single point where step deltas become presentation.
derive() is called with the steps of a section from the first step
through the current pointer step, and folds them left to right.

Design principles:
- Pure function: (state, step) -> new_state
- Step data is never aliased: values are deep-copied on the way in
- Each slot has its own persistence rule (see the slot handlers)
- cleanAll always wins within its step
"""

from __future__ import annotations
from copy import deepcopy
from typing import Any, Callable, Iterable, Mapping

from .state import PresentationState
from ..story.index import Step


SlotHandler = Callable[[Any, Mapping[str, Any]], Any]


class Reducer:
    """
    Applies step deltas to presentation state.

    Stateless - all state is in PresentationState.
    """

    def apply(self, state: PresentationState, step: Step) -> PresentationState:
        """
        Apply one step to the accumulated state.

        Returns a new PresentationState; `state` is left untouched.
        """
        actions = step.actions or {}

        updates = {
            slot: handler(getattr(state, slot), actions)
            for slot, handler in self._get_handlers().items()
        }
        # Control signals only live for the step that carries them
        updates["go_to_section_scene"] = deepcopy(actions.get("goToSectionScene"))
        updates["preset"] = deepcopy(actions.get("preset"))

        new_state = state._copy_with(**updates)

        if actions.get("cleanAll"):
            new_state = new_state.without_slots()

        return new_state

    def _get_handlers(self) -> dict[str, SlotHandler]:
        """Slot handlers in application order."""
        return {
            "background": self._apply_background,
            "sfx": self._apply_sfx,
            "bgm": self._apply_bgm,
            "visual": self._apply_visual,
            "dialogue": self._apply_dialogue,
            "character": self._apply_character,
            "animation": self._presence_slot("animation"),
            "screen": self._presence_slot("screen"),
            "choices": self._presence_slot("choices"),
        }

    def _apply_background(self, current, actions):
        """
        A background with an id replaces the slot, one without an id clears it.

        When the step says nothing about the background it stays, minus its
        entrance animation which has already played.
        """
        delta = actions.get("background")
        if delta is not None:
            if delta.get("backgroundId"):
                return deepcopy(dict(delta))
            return None
        if current is not None and "inAnimation" in current:
            current = dict(current)
            del current["inAnimation"]
        return current

    def _apply_sfx(self, current, actions):
        """Sound effects never persist past their step."""
        delta = actions.get("sfx")
        return deepcopy(dict(delta)) if delta is not None else None

    def _apply_bgm(self, current, actions):
        """Music persists until replaced; loops unless loop is explicitly false."""
        delta = actions.get("bgm")
        if delta is None:
            return current
        bgm = deepcopy(dict(delta))
        bgm["loop"] = delta.get("loop", True) is not False
        return bgm

    def _apply_visual(self, current, actions):
        """Visuals are replaced wholesale; otherwise cleared entries are dropped."""
        delta = actions.get("visual")
        if delta is not None:
            return deepcopy(dict(delta))
        if current is None or "items" not in current:
            return current
        visual = dict(current)
        visual["items"] = [item for item in current["items"] if item.get("visualId")]
        return visual

    def _apply_dialogue(self, current, actions):
        """
        Dialogue deltas merge into the running dialogue.

        Order matters: merge, then text/segments exclusion, then
        character name removal, then the incremental texts log.
        A delta carrying both text and segments keeps its text.
        """
        delta = actions.get("dialogue")
        if delta is None:
            return current

        dialogue = {**deepcopy(current or {}), **deepcopy(dict(delta))}

        if delta.get("text") is not None:
            dialogue.pop("segments", None)
        elif delta.get("segments") is not None:
            dialogue.pop("text", None)

        character = delta.get("character")
        if character is not None and not character.get("characterName"):
            if isinstance(dialogue.get("character"), dict):
                dialogue["character"].pop("characterName", None)

        if delta.get("incremental"):
            texts = list(dialogue.get("texts") or [])
            texts.append({"template": delta.get("template"), "text": delta.get("text")})
            dialogue["texts"] = texts

        return dialogue

    def _apply_character(self, current, actions):
        """
        Character items are reconciled by id.

        Matching items are merged and lose animations the delta doesn't
        repeat; items missing from the delta lose their entrance animation.
        """
        delta = actions.get("character")
        if delta is None:
            return current
        if current is None:
            return deepcopy(dict(delta))

        delta_items = {item.get("id"): item for item in delta.get("items", [])}
        items = [dict(item) for item in current.get("items", [])]

        for delta_item in delta.get("items", []):
            match = next(
                (i for i, item in enumerate(items) if item.get("id") == delta_item.get("id")),
                None,
            )
            if match is None:
                items.append(deepcopy(dict(delta_item)))
                continue
            merged = {**items[match], **deepcopy(dict(delta_item))}
            if not delta_item.get("inAnimation"):
                merged.pop("inAnimation", None)
            if not delta_item.get("outAnimation"):
                merged.pop("outAnimation", None)
            items[match] = merged

        for item in items:
            if item.get("id") not in delta_items:
                item.pop("inAnimation", None)

        character = dict(current)
        character["items"] = items
        return character

    @staticmethod
    def _presence_slot(key: str) -> SlotHandler:
        """Slot that exists only on steps that set it."""
        def handler(current, actions):
            delta = actions.get(key)
            return deepcopy(delta) if delta is not None else None
        return handler


_REDUCER = Reducer()


def apply_step(state: PresentationState, step: Step) -> PresentationState:
    """Apply a single step to a state."""
    return _REDUCER.apply(state, step)


def derive(steps: Iterable[Step]) -> PresentationState:
    """
    Fold a step prefix into a presentation state.

    An empty sequence yields an empty state.
    """
    state = PresentationState()
    for step in steps:
        state = _REDUCER.apply(state, step)
    return state
