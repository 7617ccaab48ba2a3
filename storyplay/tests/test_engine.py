"""
Tests for the Engine.

Tests:
- Initial render and preset event mapping
- Manual and timed navigation, including preventManual steps
- goToSectionScene redirects and the redirect hop limit
- Auto/skip mode exclusivity and end-of-section behavior
- Variables, choices, layered views and save slots
"""

import pytest

from ..engine_core.pointer import PointerMode, StepPosition
from ..engine_core.scheduler import ManualTickSource, TimerKind
from ..errors import ActionPayloadError, NavigationLoopError, NotFoundError, UnknownActionError
from ..persistence.store import SAVE_DATA_KEY, VARIABLES_KEY, MemoryStore
from ..session.engine import Engine
from ..story.index import StoryIndex


def _click(engine, times=1):
    for _ in range(times):
        engine.handle_event("LeftClick")


def _element_ids(engine):
    return [element["id"] for element in engine.render_result.elements]


class TestInit:
    """Tests for the first render."""

    def test_init_renders_initial_step(self, engine):
        result = engine.render_result

        assert result is not None
        assert result.state["dialogue"]["text"] == "Hello."
        assert result.state["background"]["backgroundId"] == "bg-room"
        assert result.system["sectionId"] == "intro"
        assert result.system["stepId"] == "intro-1"
        assert result.system["presetId"] == "read"
        assert result.scope_changed

    def test_init_elements(self, engine):
        assert _element_ids(engine) == ["bg-screen", "bg-cg", "dialogue"]
        dialogue = engine.render_result.elements[-1]
        assert dialogue["data"]["dialogue"]["character"]["name"] == "Alice"

    def test_default_variables(self, engine):
        assert engine.variables == {"affection": 0, "volume": 50}

    def test_stored_local_variables_override_defaults(self, story):
        store = MemoryStore({VARIABLES_KEY: {"volume": 70}})
        engine = Engine(story, store=store)
        assert engine.variables == {"affection": 0, "volume": 70}

    def test_to_dict(self, engine):
        data = engine.render_result.to_dict()
        assert set(data) == {"id", "state", "elements", "transitions", "scopeChanged", "system"}


class TestEvents:
    """Tests for event mapping through presets."""

    def test_left_click_advances(self, engine, renders):
        engine.handle_event("LeftClick")

        assert len(renders) == 1
        assert engine.step_manager.read_position == StepPosition("intro", "intro-2")
        assert renders[0].state["sfx"] == {"audioId": "chime"}

    def test_unmapped_event_ignored(self, engine, renders):
        engine.handle_event("KeyPress")
        assert renders == []

    def test_actions_event_runs_batch_with_one_render(self, engine, renders):
        engine.handle_event("Actions", {"actions": {
            "setRuntimeVariable": {"seenIntro": True},
            "goToSectionScene": {"sectionId": "park"},
        }})

        assert len(renders) == 1
        assert renders[0].system["sectionId"] == "park"
        assert engine.variables["seenIntro"] is True

    def test_unknown_action_raises(self, engine):
        with pytest.raises(UnknownActionError):
            engine.handle_action("fly")

    def test_unknown_action_in_event_batch_raises(self, engine):
        with pytest.raises(UnknownActionError):
            engine.handle_event("Actions", {"actions": {"fly": {}}})

    def test_non_object_payloads_raise(self, engine, renders):
        with pytest.raises(ActionPayloadError):
            engine.handle_event("Actions", {"actions": {"nextStep": True}})
        with pytest.raises(ActionPayloadError):
            engine.handle_event("Actions", {"actions": ["nextStep"]})
        with pytest.raises(ActionPayloadError):
            engine.handle_event("Actions", "nextStep")
        with pytest.raises(ActionPayloadError):
            engine.handle_action("selectChoice", {"choiceId": "c1", "actions": "nextStep"})
        with pytest.raises(ActionPayloadError):
            engine.handle_action("updateVariable", {"operations": 3})

        assert renders == []
        assert engine.step_manager.read_position == StepPosition("intro", "intro-1")

    def test_preset_switch_changes_mapping(self, engine):
        engine.handle_action("setPreset", {"presetId": "title"})
        engine.handle_event("LeftClick")

        assert engine.preset_id == "title"
        assert engine.step_manager.read_position == StepPosition("park", "park-1")
        assert engine.variables["fromTitle"] is True

    def test_set_unknown_preset_raises(self, engine):
        with pytest.raises(NotFoundError):
            engine.handle_action("setPreset", {"presetId": "nope"})
        assert engine.preset_id == "read"

    def test_set_preset_does_not_render(self, engine, renders):
        engine.handle_action("setPreset", {"presetId": "title"})
        assert renders == []

    def test_preset_signal_on_step(self, story_data, ticks):
        """A step's preset signal switches the preset when the step is shown."""
        steps = story_data["story"]["scenes"]["scene-intro"]["sections"]["intro"]["steps"]
        steps[1]["actions"]["preset"] = {"presetId": "title"}
        engine = Engine(StoryIndex.from_dict(story_data), tick_source=ticks)
        engine.init()

        engine.handle_event("LeftClick")

        assert engine.preset_id == "title"
        assert engine.render_result.system["presetId"] == "title"


class TestManualNavigation:
    """Tests for next/prev and history browsing."""

    def test_prev_enters_history(self, engine):
        _click(engine)
        engine.handle_event("ScrollUp")

        assert engine.render_result.system["mode"] == "history"
        assert engine.render_result.state["dialogue"]["text"] == "Hello."
        assert engine.step_manager.read_position == StepPosition("intro", "intro-2")

    def test_prev_at_start_does_not_render(self, engine, renders):
        engine.handle_event("ScrollUp")
        assert renders == []

    def test_prevent_manual_blocks_click(self, engine, renders):
        _click(engine, 2)
        assert engine.step_manager.read_position == StepPosition("intro", "intro-3")

        _click(engine)

        assert engine.step_manager.read_position == StepPosition("intro", "intro-3")
        assert len(renders) == 2

    def test_auto_next_step_advances_on_ticks(self, engine, ticks):
        _click(engine, 2)
        assert engine.scheduler.is_armed(TimerKind.STEP)

        ticks.tick(250)
        assert engine.step_manager.read_position == StepPosition("intro", "intro-3")
        ticks.tick(250)

        assert engine.step_manager.read_position == StepPosition("intro", "intro-4")
        assert not engine.scheduler.is_armed(TimerKind.STEP)

    def test_history_browsing_disarms_step_timer(self, engine, ticks):
        _click(engine, 2)
        engine.handle_event("ScrollUp")

        ticks.tick(1000)

        assert engine.step_manager.mode is PointerMode.HISTORY
        assert engine.step_manager.read_position == StepPosition("intro", "intro-3")
        assert not engine.scheduler.is_armed(TimerKind.STEP)

    def test_click_in_history_is_not_blocked(self, engine, ticks):
        """Stepping forward out of history onto a preventManual step re-arms its timer."""
        _click(engine, 2)
        engine.handle_event("ScrollUp")

        _click(engine)

        assert engine.step_manager.mode is PointerMode.READ
        assert engine.scheduler.timer(TimerKind.STEP).armed_for == StepPosition("intro", "intro-3")

    def test_jump_away_disarms_step_timer(self, engine, ticks):
        _click(engine, 2)
        ticks.tick(200)
        engine.handle_action("goToSectionScene", {"sectionId": "park"})

        ticks.tick(1000)

        assert engine.step_manager.read_position == StepPosition("park", "park-1")


class TestRedirects:
    """Tests for goToSectionScene signals on steps."""

    def test_redirect_step_is_followed_before_render(self, engine, renders):
        _click(engine, 2)
        engine.handle_action("nextLineFromSystem")
        _click(engine)

        assert engine.step_manager.read_position == StepPosition("park", "park-1")
        assert renders[-1].state["dialogue"]["text"] == "The park."
        assert renders[-1].state["background"] == {"backgroundId": "bg-park"}
        assert [e.section_id for e in engine.step_manager.history.entries] == ["intro", "park"]
        assert engine.step_manager.seen.is_section_seen("intro")

    def test_history_shows_redirect_step(self, engine):
        """Browsing back onto a redirect step stays there."""
        engine.handle_action("goToSectionScene", {"sectionId": "park"})
        engine.handle_event("ScrollUp")

        assert engine.step_manager.mode is PointerMode.HISTORY
        assert engine.step_manager.current_position == StepPosition("intro", "intro-5")

    def test_redirect_loop_raises(self, ticks):
        story = StoryIndex.from_dict({"story": {
            "initialSceneId": "s",
            "scenes": {"s": {
                "initialSectionId": "loop",
                "sections": {"loop": {"steps": [
                    {"id": "l1", "actions": {"goToSectionScene": {"sectionId": "loop"}}},
                ]}},
            }},
        }})
        engine = Engine(story, tick_source=ticks, max_redirects=3)

        with pytest.raises(NavigationLoopError):
            engine.init()

    def test_bad_mode_rejected(self, engine):
        with pytest.raises(ActionPayloadError):
            engine.handle_action("goToSectionScene", {"sectionId": "park", "mode": "sideways"})

    def test_missing_section_id_rejected(self, engine):
        with pytest.raises(ActionPayloadError):
            engine.handle_action("goToSectionScene", {})


class TestMenuMode:
    """Tests for the menu pointer through the engine."""

    def test_enter_menu_and_return(self, engine):
        _click(engine)
        engine.handle_action("enterMenu", {"sectionId": "menu"})

        assert engine.render_result.system["mode"] == "menu"
        assert "screen-settings" in _element_ids(engine)
        assert engine.render_result.scope_changed

        engine.handle_action("clearCurrentMode", {"mode": "read"})

        assert engine.render_result.system["mode"] == "read"
        assert engine.render_result.system["stepId"] == "intro-2"

    def test_exit_history(self, engine):
        _click(engine)
        engine.handle_event("ScrollUp")
        engine.handle_action("exitHistory")

        assert engine.render_result.system["mode"] == "read"
        assert engine.render_result.system["stepId"] == "intro-2"


class TestTimedModes:
    """Tests for auto and skip modes."""

    def test_auto_mode_advances_each_delay(self, engine, ticks):
        engine.handle_action("startAutoMode")

        ticks.tick(999)
        assert engine.step_manager.read_position == StepPosition("intro", "intro-1")
        ticks.tick(1)

        assert engine.auto_mode
        assert engine.step_manager.read_position == StepPosition("intro", "intro-2")

    def test_auto_mode_delay_override(self, engine, ticks):
        engine.handle_action("startAutoMode", {"delay": 100})
        ticks.tick(100)
        assert engine.step_manager.read_position == StepPosition("intro", "intro-2")

    def test_auto_and_skip_are_exclusive(self, engine, ticks):
        engine.handle_action("startAutoMode")
        engine.handle_action("startSkipMode")

        assert engine.skip_mode and not engine.auto_mode
        assert engine.scheduler.is_armed(TimerKind.SKIP)
        assert not engine.scheduler.is_armed(TimerKind.AUTO)

        engine.handle_action("toggleAutoMode")

        assert engine.auto_mode and not engine.skip_mode
        assert not engine.scheduler.is_armed(TimerKind.SKIP)

    def test_toggle_skip_mode(self, engine):
        engine.handle_action("toggleSkipMode")
        assert engine.skip_mode
        engine.handle_action("toggleSkipMode")
        assert not engine.skip_mode
        assert not engine.scheduler.is_armed(TimerKind.SKIP)

    def test_skip_mode_advances_fast(self, engine, ticks):
        engine.handle_action("startSkipMode")
        ticks.tick(30)
        assert engine.step_manager.read_position == StepPosition("intro", "intro-2")

    def test_end_of_section_stops_modes(self, engine, ticks, renders):
        engine.handle_action("goToSectionScene", {"sectionId": "park"})
        _click(engine, 2)
        renders.clear()
        engine.handle_action("startAutoMode")

        ticks.tick(1000)

        assert not engine.auto_mode
        assert not engine.scheduler.is_armed(TimerKind.AUTO)
        assert renders == []
        assert engine.step_manager.read_position == StepPosition("park", "park-3")

    def test_stop_mode_when_off_is_noop(self, engine, renders):
        engine.handle_action("stopAutoMode")
        engine.handle_action("stopSkipMode")
        assert renders == []

    def test_close_detaches_timers(self, story):
        ticks = ManualTickSource()
        engine = Engine(story, tick_source=ticks)
        engine.init()
        engine.handle_action("startAutoMode")

        engine.close()

        assert ticks.listener_count == 0


class TestRuntimeState:
    """Tests for variables, choices, dialogue visibility and layered views."""

    def test_set_runtime_variable(self, engine, renders):
        engine.handle_action("setRuntimeVariable", {"affection": 3})
        assert engine.variables["affection"] == 3
        assert renders[-1].system["variables"]["affection"] == 3

    def test_update_local_variable_persists(self, engine, store):
        engine.handle_action("updateVariable", {"operations": [
            {"variableId": "volume", "op": "increment", "value": 10},
        ]})

        assert engine.variables["volume"] == 60
        assert store.get(VARIABLES_KEY) == {"volume": 60}

    def test_update_runtime_variable_not_persisted(self, engine, store):
        engine.handle_action("updateVariable", {"operations": [
            {"variableId": "affection", "op": "decrement", "value": 2},
            {"variableId": "mood", "value": "happy"},
        ]})

        assert engine.variables["affection"] == -2
        assert engine.variables["mood"] == "happy"
        assert store.get(VARIABLES_KEY) is None

    def test_update_variable_bad_payloads(self, engine):
        with pytest.raises(ActionPayloadError):
            engine.handle_action("updateVariable", {"operations": [
                {"variableId": "volume", "op": "increment", "value": "loud"},
            ]})
        with pytest.raises(ActionPayloadError):
            engine.handle_action("updateVariable", {"operations": [
                {"variableId": "volume", "op": "multiply", "value": 2},
            ]})
        with pytest.raises(ActionPayloadError):
            engine.handle_action("updateVariable", {})

    def test_select_choice(self, engine):
        engine.handle_action("goToSectionScene", {"sectionId": "park"})
        _click(engine)
        assert "choices" in _element_ids(engine)

        engine.handle_action("selectChoice", {
            "choiceId": "c-stay",
            "actions": {"nextStep": {}},
        })

        assert engine.step_manager.seen.is_choice_seen("c-stay")
        assert engine.step_manager.read_position == StepPosition("park", "park-3")
        assert "choices" not in _element_ids(engine)

    def test_toggle_dialogue_ui_hidden(self, engine):
        engine.handle_event("RightClick")

        assert engine.dialogue_ui_hidden
        assert "dialogue" not in _element_ids(engine)
        assert engine.render_result.state["dialogue"]["text"] == "Hello."
        assert not engine.render_result.scope_changed

    def test_layered_views(self, engine, renders):
        engine.handle_action("pushLayeredView", {"viewId": "settings"})

        assert engine.layered_views == [{"viewId": "settings"}]
        assert renders[-1].scope_changed
        assert renders[-1].system["layeredViews"] == [{"viewId": "settings"}]

        engine.handle_action("popLayeredView")
        engine.handle_action("popLayeredView")

        assert engine.layered_views == []
        assert len(renders) == 2

    def test_push_layered_view_needs_view_id(self, engine):
        with pytest.raises(ActionPayloadError):
            engine.handle_action("pushLayeredView", {})


class TestSaveSlots:
    """Tests for saveVnData and loadVnData."""

    def test_save_writes_store(self, engine, store):
        _click(engine)
        engine.handle_action("saveVnData", {"slotIndex": 1})

        slots = store.get(SAVE_DATA_KEY)
        assert len(slots) == 1
        assert slots[0]["slotIndex"] == 1
        assert slots[0]["pointer"] == {"sectionId": "intro", "stepId": "intro-2"}

    def test_save_replaces_same_slot(self, engine, store):
        engine.handle_action("saveVnData", {"slotIndex": 1})
        _click(engine)
        engine.handle_action("saveVnData", {"slotIndex": 1})
        engine.handle_action("saveVnData", {"slotIndex": 2})

        slots = store.get(SAVE_DATA_KEY)
        assert [slot["slotIndex"] for slot in slots] == [1, 2]
        assert slots[0]["pointer"]["stepId"] == "intro-2"

    def test_load_restores_position_and_variables(self, engine):
        _click(engine)
        engine.handle_action("setRuntimeVariable", {"affection": 5})
        engine.handle_action("saveVnData", {"slotIndex": 1})
        engine.handle_action("goToSectionScene", {"sectionId": "park"})
        engine.handle_action("setRuntimeVariable", {"affection": 9})

        engine.handle_action("loadVnData", {"slotIndex": 1})

        assert engine.step_manager.read_position == StepPosition("intro", "intro-2")
        assert engine.variables["affection"] == 5
        assert engine.render_result.state["dialogue"]["text"] == "Welcome."

    def test_load_missing_slot_is_noop(self, engine, renders):
        engine.handle_action("loadVnData", {"slotIndex": 7})
        assert renders == []
        assert engine.step_manager.read_position == StepPosition("intro", "intro-1")

    def test_saves_survive_new_engine(self, story, store):
        first = Engine(story, store=store)
        first.init()
        first.handle_event("LeftClick")
        first.handle_action("saveVnData", {"slotIndex": 3})
        first.close()

        second = Engine(story, store=store)
        second.init()
        second.handle_action("loadVnData", {"slotIndex": 3})

        assert [slot["slotIndex"] for slot in second.save_data] == [3]
        assert second.step_manager.read_position == StepPosition("intro", "intro-2")
