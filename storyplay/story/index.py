"""
Story Index - Read-only view over the static story data.

The authored story nests steps inside sections inside scenes. The index
flattens that graph so any section can be looked up directly, and exposes
the other static collections the runtime needs:
- Initial ids (scene, section, first step, preset)
- Presets (event name -> action maps)
- Resources, UI screens, screen size and variable definitions

The index is built once per play session and never mutated.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from ..errors import NotFoundError


DEFAULT_AUTO_NEXT_DELAY_MS = 1000


@dataclass(frozen=True)
class AutoNext:
    """Per-step timed advancement settings."""
    delay: float = DEFAULT_AUTO_NEXT_DELAY_MS
    prevent_manual: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> AutoNext | None:
        if data is None:
            return None
        delay = data.get("delay")
        return cls(
            delay=DEFAULT_AUTO_NEXT_DELAY_MS if delay is None else delay,
            prevent_manual=bool(data.get("preventManual", False)),
        )


@dataclass(frozen=True)
class Step:
    """
    Atomic unit of story content.

    `actions` is the sparse set of named deltas applied when the step
    is folded into a presentation state.
    """
    id: str
    actions: Mapping[str, Any] = field(default_factory=dict)
    auto_next: AutoNext | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Step:
        return cls(
            id=data["id"],
            actions=MappingProxyType(dict(data.get("actions") or {})),
            auto_next=AutoNext.from_dict(data.get("autoNext")),
        )


@dataclass(frozen=True)
class Section:
    """Ordered sequence of steps representing one linear beat of the story."""
    section_id: str
    steps: tuple[Step, ...] = ()

    def index_of(self, step_id: str) -> int:
        """Position of a step in this section, -1 if absent."""
        for i, step in enumerate(self.steps):
            if step.id == step_id:
                return i
        return -1

    def has_step(self, step_id: str) -> bool:
        return self.index_of(step_id) != -1

    @property
    def first_step(self) -> Step | None:
        return self.steps[0] if self.steps else None

    @property
    def last_step(self) -> Step | None:
        return self.steps[-1] if self.steps else None


@dataclass(frozen=True)
class Scene:
    """Container of sections."""
    scene_id: str
    initial_section_id: str
    section_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class InitialIds:
    scene_id: str
    section_id: str
    step_id: str
    preset_id: str | None = None


class StoryIndex:
    """
    Flattened, read-only lookup over the story graph.

    Usage:
        index = StoryIndex.from_dict(story_data)
        section = index.get_section("intro")
        steps = index.get_section_steps("intro", "s3")  # prefix through s3
    """

    def __init__(
        self,
        scenes: dict[str, Scene],
        sections: dict[str, Section],
        initial_scene_id: str,
        initial_preset_id: str | None = None,
        presets: dict[str, Any] | None = None,
        resources: dict[str, Any] | None = None,
        ui: dict[str, Any] | None = None,
        screen: dict[str, Any] | None = None,
        variables: dict[str, Any] | None = None,
    ):
        self._scenes = scenes
        self._sections = sections
        self._initial_scene_id = initial_scene_id
        self._initial_preset_id = initial_preset_id
        self._presets = presets or {}
        self._resources = resources or {}
        self._ui = ui or {}
        self._screen = screen or {}
        self._variables = variables or {}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> StoryIndex:
        """Build an index from authored story data."""
        story = data["story"]
        scenes: dict[str, Scene] = {}
        sections: dict[str, Section] = {}

        for scene_id, scene_data in story.get("scenes", {}).items():
            section_ids = []
            for section_id, section_data in scene_data.get("sections", {}).items():
                steps = tuple(
                    Step.from_dict(step) for step in section_data.get("steps", [])
                )
                sections[section_id] = Section(section_id=section_id, steps=steps)
                section_ids.append(section_id)
            scenes[scene_id] = Scene(
                scene_id=scene_id,
                initial_section_id=scene_data.get("initialSectionId"),
                section_ids=tuple(section_ids),
            )

        return cls(
            scenes=scenes,
            sections=sections,
            initial_scene_id=story.get("initialSceneId"),
            initial_preset_id=story.get("initialPresetId"),
            presets=dict(data.get("presets") or {}),
            resources=dict(data.get("resources") or {}),
            ui=dict(data.get("ui") or {}),
            screen=dict(data.get("screen") or {}),
            variables=dict(data.get("variables") or {}),
        )

    @property
    def initial_ids(self) -> InitialIds:
        scene = self.get_scene(self._initial_scene_id)
        section = self.get_section(scene.initial_section_id)
        if section.first_step is None:
            raise NotFoundError(f"Section {section.section_id!r} has no steps")
        return InitialIds(
            scene_id=scene.scene_id,
            section_id=section.section_id,
            step_id=section.first_step.id,
            preset_id=self._initial_preset_id,
        )

    @property
    def scenes(self) -> Mapping[str, Scene]:
        return MappingProxyType(self._scenes)

    @property
    def sections(self) -> Mapping[str, Section]:
        return MappingProxyType(self._sections)

    @property
    def presets(self) -> Mapping[str, Any]:
        return MappingProxyType(self._presets)

    @property
    def resources(self) -> Mapping[str, Any]:
        return MappingProxyType(self._resources)

    @property
    def ui(self) -> Mapping[str, Any]:
        return MappingProxyType(self._ui)

    @property
    def screen(self) -> Mapping[str, Any]:
        return MappingProxyType(self._screen)

    @property
    def variables(self) -> Mapping[str, Any]:
        return MappingProxyType(self._variables)

    def get_scene(self, scene_id: str) -> Scene:
        scene = self._scenes.get(scene_id)
        if scene is None:
            raise NotFoundError(f"Scene {scene_id!r} not found")
        return scene

    def get_section(self, section_id: str) -> Section:
        section = self._sections.get(section_id)
        if section is None:
            raise NotFoundError(f"Section {section_id!r} not found")
        return section

    def has_section(self, section_id: str) -> bool:
        return section_id in self._sections

    def get_step(self, section_id: str, step_id: str) -> Step:
        section = self.get_section(section_id)
        index = section.index_of(step_id)
        if index == -1:
            raise NotFoundError(
                f"Step {step_id!r} not found in section {section_id!r}"
            )
        return section.steps[index]

    def get_section_steps(
        self, section_id: str, step_id: str | None = None
    ) -> tuple[Step, ...]:
        """
        Get the steps of a section.

        With a step id, returns the prefix from the first step through
        that step, inclusive.
        """
        section = self.get_section(section_id)
        if step_id is None:
            return section.steps
        index = section.index_of(step_id)
        if index == -1:
            raise NotFoundError(
                f"Step {step_id!r} not found in section {section_id!r}"
            )
        return section.steps[: index + 1]

    def get_preset(self, preset_id: str) -> Mapping[str, Any]:
        preset = self._presets.get(preset_id)
        if preset is None:
            raise NotFoundError(f"Preset {preset_id!r} not found")
        return preset

    def has_preset(self, preset_id: str) -> bool:
        return preset_id in self._presets

    def default_variables(self, persistence: str | None = None) -> dict[str, Any]:
        """Default values for variable definitions, optionally by persistence scope."""
        return {
            key: definition.get("default")
            for key, definition in self._variables.items()
            if persistence is None
            or definition.get("persistence", "runtime") == persistence
        }
