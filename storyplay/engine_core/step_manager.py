"""
Step Manager - Owns the step pointers, history log and seen tracking.

Responsibilities:
- One StepPointer per mode (read, menu, history) and the active mode
- Step navigation: next, previous, jump to a section
- The effective step sequence (section prefix) fed to the reducer
- Seen tracking and history entries whenever the read pointer moves

Pointers are only ever set to ids that exist in the StoryIndex;
anything else raises NotFoundError.
"""

from __future__ import annotations
from typing import Any

from .history import History
from .pointer import PointerMode, StepPointer, StepPosition
from .seen import SeenSections
from ..errors import NotFoundError
from ..story.index import Section, Step, StoryIndex


class StepManager:
    """
    Navigation state for one play-through.

    Usage:
        manager = StepManager(story)
        manager.next_step()
        steps = manager.get_current_steps()  # read-mode prefix
    """

    def __init__(
        self,
        story: StoryIndex,
        seen: SeenSections | None = None,
        history: History | None = None,
    ):
        self._story = story
        self._pointers: dict[PointerMode, StepPointer] = {
            mode: StepPointer() for mode in PointerMode
        }
        self._mode = PointerMode.READ
        self._seen = seen or SeenSections()
        self._history = history or History()

        initial = story.initial_ids
        self._pointers[PointerMode.READ].set(initial.section_id, initial.step_id)
        if not self._history.entries:
            self._history.add_section(initial.section_id)

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def mode(self) -> PointerMode:
        return self._mode

    @property
    def seen(self) -> SeenSections:
        return self._seen

    @property
    def history(self) -> History:
        return self._history

    def pointer(self, mode: PointerMode) -> StepPointer:
        return self._pointers[mode]

    @property
    def current_pointer(self) -> StepPointer:
        return self._pointers[self._mode]

    @property
    def current_position(self) -> StepPosition | None:
        return self.current_pointer.position

    @property
    def read_position(self) -> StepPosition | None:
        return self._pointers[PointerMode.READ].position

    @property
    def current_step(self) -> Step | None:
        """Step under the active pointer."""
        position = self.current_position
        if position is None:
            return None
        return self._story.get_step(position.section_id, position.step_id)

    @property
    def read_step(self) -> Step | None:
        position = self.read_position
        if position is None:
            return None
        return self._story.get_step(position.section_id, position.step_id)

    @property
    def has_next_step(self) -> bool:
        position = self.current_position
        if position is None:
            return False
        section, index = self._locate(position)
        return index + 1 < len(section.steps)

    # =========================================================================
    # Step sequences
    # =========================================================================

    def get_current_steps(self) -> tuple[Step, ...]:
        """Read-mode prefix from section start through the current step."""
        return self.get_mode_steps(PointerMode.READ)

    def get_mode_steps(self, mode: PointerMode) -> tuple[Step, ...]:
        """Prefix for a mode's pointer; empty when the pointer is inactive."""
        position = self._pointers[mode].position
        if position is None:
            return ()
        return self._story.get_section_steps(position.section_id, position.step_id)

    def get_active_steps(self) -> tuple[Step, ...]:
        """Prefix for the active mode's pointer."""
        return self.get_mode_steps(self._mode)

    # =========================================================================
    # Navigation
    # =========================================================================

    def next_step(self) -> bool:
        """
        Advance the active pointer by one step.

        Returns False at the last step of a section (terminal, not an error).
        """
        position = self.current_position
        if position is None:
            return False
        section, index = self._locate(position)

        if self._mode is PointerMode.HISTORY:
            return self._next_step_history(section, index)

        if index + 1 >= len(section.steps):
            return False
        self._move(self._mode, section.section_id, section.steps[index + 1].id)
        return True

    def prev_step(self) -> bool:
        """
        Step backwards.

        From read mode this enters history mode so the read pointer keeps
        its place. Returns False when there is nothing earlier to show.
        """
        position = self.current_position
        if position is None:
            return False
        section, index = self._locate(position)

        if self._mode is PointerMode.READ:
            if index > 0:
                self._history.enter_history_mode()
                self._mode = PointerMode.HISTORY
                self._move(PointerMode.HISTORY, section.section_id, section.steps[index - 1].id)
                return True
            if len(self._history.entries) < 2:
                return False
            self._history.enter_history_mode()
            self._history.previous_section()
            self._mode = PointerMode.HISTORY
            self._move_to_last_step(self._history.history_mode_section_id)
            return True

        if self._mode is PointerMode.HISTORY:
            if index > 0:
                self._move(PointerMode.HISTORY, section.section_id, section.steps[index - 1].id)
                return True
            if not self._history.previous_section():
                return False
            self._move_to_last_step(self._history.history_mode_section_id)
            return True

        return False

    def go_to_section_scene(
        self,
        section_id: str,
        scene_id: str | None = None,
        mode: PointerMode | str | None = None,
    ):
        """
        Move the active pointer to the first step of a section.

        The scene id is informational only; the section alone decides
        where the pointer lands.
        """
        section = self._story.get_section(section_id)
        first_step = section.first_step
        if first_step is None:
            raise NotFoundError(f"Section {section_id!r} has no steps")

        if mode is not None:
            self._mode = PointerMode(mode)

        if self._mode is PointerMode.HISTORY:
            entries = self._history.entries
            next_index = (self._history.history_mode_index or 0) + 1
            if next_index < len(entries) and entries[next_index].section_id == section_id:
                self._history.next_section()
                self._move(PointerMode.HISTORY, section_id, first_step.id)
                self._exit_history_if_caught_up()
            else:
                self.exit_history()
            return

        if self._mode is PointerMode.READ:
            self._history.add_section(section_id)
        self._move(self._mode, section_id, first_step.id)

    def enter_menu(self, section_id: str):
        """Show a menu section on the menu pointer, leaving read in place."""
        section = self._story.get_section(section_id)
        if section.first_step is None:
            raise NotFoundError(f"Section {section_id!r} has no steps")
        self._pointers[PointerMode.MENU].set(section_id, section.first_step.id)
        self._mode = PointerMode.MENU

    def clear_current_mode(self, mode: PointerMode | str = PointerMode.READ):
        """Leave the active mode (clearing its pointer) and switch to `mode`."""
        if self._mode is PointerMode.HISTORY:
            self._history.clear_history_mode_index()
        if self._mode is not PointerMode.READ:
            self._pointers[self._mode].clear()
        self._mode = PointerMode(mode)

    def exit_history(self):
        """Return from history browsing to the read pointer."""
        if self._mode is not PointerMode.HISTORY:
            return
        self._pointers[PointerMode.HISTORY].clear()
        self._history.clear_history_mode_index()
        self._mode = PointerMode.READ

    # =========================================================================
    # Save data
    # =========================================================================

    def to_save_data(self) -> dict[str, Any]:
        """Snapshot of the read position, history and seen tracking."""
        position = self.read_position
        return {
            "pointer": {
                "sectionId": position.section_id if position else None,
                "stepId": position.step_id if position else None,
            },
            "history": self._history.to_list(),
            **self._seen.to_dict(),
        }

    def restore(self, save_data: dict[str, Any]):
        """Restore a snapshot produced by to_save_data()."""
        pointer = save_data["pointer"]
        self._story.get_step(pointer["sectionId"], pointer["stepId"])

        for mode in (PointerMode.MENU, PointerMode.HISTORY):
            self._pointers[mode].clear()
        self._mode = PointerMode.READ
        self._pointers[PointerMode.READ].set(pointer["sectionId"], pointer["stepId"])
        self._history = History.from_list(save_data.get("history"))
        self._seen = SeenSections.from_dict(save_data)

    # =========================================================================
    # Internals
    # =========================================================================

    def _locate(self, position: StepPosition) -> tuple[Section, int]:
        section = self._story.get_section(position.section_id)
        index = section.index_of(position.step_id)
        if index == -1:
            raise NotFoundError(
                f"Step {position.step_id!r} not found in section {position.section_id!r}"
            )
        return section, index

    def _move(self, mode: PointerMode, section_id: str, step_id: str):
        """Set a pointer after validating the target; tracks seen on read moves."""
        self._story.get_step(section_id, step_id)
        pointer = self._pointers[mode]
        if mode is PointerMode.READ and pointer.is_active:
            self._mark_seen(pointer.position)
        pointer.set(section_id, step_id)

    def _move_to_last_step(self, section_id: str):
        section = self._story.get_section(section_id)
        if section.last_step is None:
            raise NotFoundError(f"Section {section_id!r} has no steps")
        self._move(PointerMode.HISTORY, section_id, section.last_step.id)

    def _mark_seen(self, position: StepPosition):
        """Record a vacated read step; leaving the last step completes the section."""
        section, index = self._locate(position)
        if index == len(section.steps) - 1:
            self._seen.mark_section_seen(section.section_id)
        elif not self._seen.is_step_id_seen(section, position.step_id):
            self._seen.add_step_id(section.section_id, position.step_id)

    def _next_step_history(self, section: Section, index: int) -> bool:
        if index + 1 < len(section.steps):
            self._move(PointerMode.HISTORY, section.section_id, section.steps[index + 1].id)
        elif self._history.next_section():
            next_section = self._story.get_section(self._history.history_mode_section_id)
            if next_section.first_step is None:
                raise NotFoundError(f"Section {next_section.section_id!r} has no steps")
            self._move(PointerMode.HISTORY, next_section.section_id, next_section.first_step.id)
        else:
            self.exit_history()
            return True
        self._exit_history_if_caught_up()
        return True

    def _exit_history_if_caught_up(self):
        """Browsing forward onto the read position ends history mode."""
        if self._history.history_mode_index != len(self._history.entries) - 1:
            return
        if self._pointers[PointerMode.HISTORY].position == self.read_position:
            self.exit_history()
