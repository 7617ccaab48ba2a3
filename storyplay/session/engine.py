"""
Engine - The action dispatcher that drives one play-through.

The engine is the only thing hosts talk to:
1. Inbound events are mapped to actions through the current preset
2. Actions move pointers and runtime state and return Effect requests
3. Effects are deduplicated and run once per inbound call
4. A render derives the presentation state, builds render elements and
   notifies listeners
5. After every render the scheduler is told which step is on screen

Timed advancement re-enters through handle_action("nextLineFromSystem"),
exactly as a host-initiated action would.
"""

from __future__ import annotations
import logging
import time
import uuid
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from ..engine_core.action import Action, ActionType
from ..engine_core.effects import RENDER, Effect, EffectDispatcher, RenderScope
from ..engine_core.pointer import PointerMode, StepPosition
from ..engine_core.reducer import derive
from ..engine_core.scheduler import AdvancementScheduler, ManualTickSource, TickSource, TimerKind
from ..engine_core.state import PresentationState
from ..engine_core.step_manager import StepManager
from ..errors import ActionPayloadError, NavigationLoopError, UnknownActionError
from ..persistence.store import SAVE_DATA_KEY, VARIABLES_KEY, KeyValueStore, MemoryStore
from ..render.elements import RenderElements, default_resolve_file, generate_render_elements
from ..story.index import StoryIndex

logger = logging.getLogger(__name__)

# Event name whose payload carries an explicit {"actions": {...}} batch
ACTIONS_EVENT = "Actions"

# Effect names the engine registers
START_AUTO_NEXT_TIMER = "startAutoNextTimer"
CLEAR_AUTO_NEXT_TIMER = "clearAutoNextTimer"
START_SKIP_NEXT_TIMER = "startSkipNextTimer"
CLEAR_SKIP_NEXT_TIMER = "clearSkipNextTimer"
SAVE_VN_DATA = "saveVnData"
SAVE_VARIABLES = "saveVariables"

DEFAULT_MAX_REDIRECTS = 32

GenerateElements = Callable[..., RenderElements]
RenderListener = Callable[["RenderResult"], None]


@dataclass
class RenderResult:
    """
    One render's output.

    `scope_changed` tells the host whether the story position, mode or
    overlay stack differs from the previous render.
    """
    id: str
    state: dict[str, Any]
    elements: list[dict[str, Any]] = field(default_factory=list)
    transitions: list[dict[str, Any]] = field(default_factory=list)
    scope_changed: bool = True
    system: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "state": self.state,
            "elements": self.elements,
            "transitions": self.transitions,
            "scopeChanged": self.scope_changed,
            "system": self.system,
        }


class Engine:
    """
    Runtime for one story play-through.

    Usage:
        engine = Engine(story, tick_source=ticks)
        engine.on_render(show)
        engine.init()                       # first render
        engine.handle_event("LeftClick")    # preset maps it to nextStep
        ticks.tick(16)                      # timers advance on ticks
    """

    def __init__(
        self,
        story: StoryIndex,
        tick_source: TickSource | None = None,
        store: KeyValueStore | None = None,
        generate: GenerateElements = generate_render_elements,
        resolve_file: Callable[[str], str] = default_resolve_file,
        max_redirects: int = DEFAULT_MAX_REDIRECTS,
    ):
        self._story = story
        self._tick_source = tick_source or ManualTickSource()
        self._store = store or MemoryStore()
        self._generate = generate
        self._resolve_file = resolve_file
        self._max_redirects = max_redirects

        self._step_manager = StepManager(story)
        self._preset_id = story.initial_ids.preset_id
        self._variables: dict[str, Any] = {
            **story.default_variables(),
            **(self._store.get(VARIABLES_KEY) or {}),
        }

        self._auto_mode = False
        self._skip_mode = False
        self._dialogue_ui_hidden = False
        self._layered_views: list[dict[str, Any]] = []

        self._listeners: list[RenderListener] = []
        self._render_result: RenderResult | None = None

        self._scheduler = AdvancementScheduler(
            self._tick_source,
            advance=self._advance_from_timer,
            active_position=self._active_step_position,
        )
        self._effects = EffectDispatcher(scope_provider=self.render_scope)
        self._register_effects()

    # =========================================================================
    # Public API
    # =========================================================================

    def init(self) -> RenderResult | None:
        """Render the initial step."""
        position = self._step_manager.read_position
        logger.info(
            "Starting story at section %s step %s",
            position.section_id, position.step_id,
        )
        self._dispatch([Effect(RENDER)])
        return self._render_result

    def handle_action(self, name: str, payload: Any = None):
        """
        Run one named action and its effects.

        Raises UnknownActionError for names the engine does not know.
        """
        self._dispatch(self._run(Action.parse(name, payload)))

    def handle_event(self, event: str, payload: Any = None):
        """
        Run the actions an inbound event maps to.

        "Actions" carries its own batch in payload["actions"]; any other
        event is looked up in the current preset's eventsMap. Unmapped
        events are ignored. Effects from the whole batch run once.
        """
        if event == ACTIONS_EVENT:
            payload = payload or {}
            actions = payload.get("actions") if isinstance(payload, Mapping) else None
            if actions is None:
                actions = {}
            if not isinstance(payload, Mapping) or not isinstance(actions, Mapping):
                raise ActionPayloadError(ACTIONS_EVENT, "actions must be an object")
        else:
            actions = self._mapped_actions(event)
            if actions is None:
                logger.debug("Ignoring unmapped event %s", event)
                return

        effects: list[Effect] = []
        for name, action_payload in actions.items():
            effects.extend(self._run(Action.parse(name, action_payload)))
        self._dispatch(effects)

    def on_render(self, listener: RenderListener):
        self._listeners.append(listener)

    def off_render(self, listener: RenderListener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def close(self):
        """Stop all timers; the engine must not be used afterwards."""
        self._scheduler.disarm_all()
        self._listeners.clear()

    def render_scope(self) -> RenderScope:
        position = self._step_manager.current_position
        return RenderScope(
            mode=self._step_manager.mode.value,
            section_id=position.section_id if position else None,
            step_id=position.step_id if position else None,
            layered_view_count=len(self._layered_views),
        )

    @property
    def story(self) -> StoryIndex:
        return self._story

    @property
    def step_manager(self) -> StepManager:
        return self._step_manager

    @property
    def scheduler(self) -> AdvancementScheduler:
        return self._scheduler

    @property
    def render_result(self) -> RenderResult | None:
        return self._render_result

    @property
    def presentation_state(self) -> PresentationState:
        return derive(self._step_manager.get_active_steps())

    @property
    def variables(self) -> dict[str, Any]:
        return deepcopy(self._variables)

    @property
    def save_data(self) -> list[dict[str, Any]]:
        return self._stored_save_data()

    @property
    def auto_mode(self) -> bool:
        return self._auto_mode

    @property
    def skip_mode(self) -> bool:
        return self._skip_mode

    @property
    def dialogue_ui_hidden(self) -> bool:
        return self._dialogue_ui_hidden

    @property
    def preset_id(self) -> str | None:
        return self._preset_id

    @property
    def layered_views(self) -> list[dict[str, Any]]:
        return deepcopy(self._layered_views)

    # =========================================================================
    # Dispatch
    # =========================================================================

    def _run(self, action: Action) -> list[Effect]:
        handler = self._get_handler(action.action_type)
        if handler is None:
            raise UnknownActionError(action.name)
        return handler(action)

    def _get_handler(self, action_type: ActionType):
        """Get the handler function for an action type."""
        return self._get_handlers().get(action_type)

    def _get_handlers(self) -> dict[ActionType, Callable[[Action], list[Effect]]]:
        return {
            ActionType.NEXT_STEP: self._handle_next_step,
            ActionType.NEXT_LINE_FROM_SYSTEM: self._handle_next_line_from_system,
            ActionType.PREV_STEP: self._handle_prev_step,
            ActionType.GO_TO_SECTION_SCENE: self._handle_go_to_section_scene,
            ActionType.ENTER_MENU: self._handle_enter_menu,
            ActionType.CLEAR_CURRENT_MODE: self._handle_clear_current_mode,
            ActionType.EXIT_HISTORY: self._handle_exit_history,
            ActionType.START_AUTO_MODE: self._handle_start_auto_mode,
            ActionType.STOP_AUTO_MODE: self._handle_stop_auto_mode,
            ActionType.TOGGLE_AUTO_MODE: self._handle_toggle_auto_mode,
            ActionType.START_SKIP_MODE: self._handle_start_skip_mode,
            ActionType.STOP_SKIP_MODE: self._handle_stop_skip_mode,
            ActionType.TOGGLE_SKIP_MODE: self._handle_toggle_skip_mode,
            ActionType.SET_RUNTIME_VARIABLE: self._handle_set_runtime_variable,
            ActionType.UPDATE_VARIABLE: self._handle_update_variable,
            ActionType.SET_PRESET: self._handle_set_preset,
            ActionType.SELECT_CHOICE: self._handle_select_choice,
            ActionType.TOGGLE_DIALOGUE_UI_HIDDEN: self._handle_toggle_dialogue_ui_hidden,
            ActionType.PUSH_LAYERED_VIEW: self._handle_push_layered_view,
            ActionType.POP_LAYERED_VIEW: self._handle_pop_layered_view,
            ActionType.SAVE_VN_DATA: self._handle_save_vn_data,
            ActionType.LOAD_VN_DATA: self._handle_load_vn_data,
        }

    def _dispatch(self, effects: list[Effect]):
        # Redirects and preset switches must land before the render scope is snapshotted
        if any(effect.name == RENDER for effect in effects):
            self._follow_signals()
        self._effects.dispatch(effects)

    def _mapped_actions(self, event: str) -> dict[str, Any] | None:
        if self._preset_id is None:
            return None
        preset = self._story.get_preset(self._preset_id)
        mapping = (preset.get("eventsMap") or {}).get(event)
        if mapping is None:
            return None
        return mapping.get("actions") or {}

    # =========================================================================
    # Navigation handlers
    # =========================================================================

    def _handle_next_step(self, action: Action) -> list[Effect]:
        # preventManual only guards live reading; history browsing is never blocked
        if self._step_manager.mode is PointerMode.READ:
            step = self._step_manager.read_step
            if step is not None and step.auto_next is not None and step.auto_next.prevent_manual:
                logger.debug("Manual advance blocked on step %s", step.id)
                return []
        return self._advance()

    def _handle_next_line_from_system(self, action: Action) -> list[Effect]:
        return self._advance()

    def _advance(self) -> list[Effect]:
        if self._step_manager.next_step():
            return [Effect(RENDER)]
        # End of the section: timed modes have nothing left to advance
        return self._stop_auto_mode() + self._stop_skip_mode()

    def _handle_prev_step(self, action: Action) -> list[Effect]:
        if self._step_manager.prev_step():
            return [Effect(RENDER)]
        return []

    def _handle_go_to_section_scene(self, action: Action) -> list[Effect]:
        self._go_to_section_scene(action.payload, action.name)
        return [Effect(RENDER)]

    def _go_to_section_scene(self, payload: dict[str, Any], action_name: str):
        self._step_manager.go_to_section_scene(
            _require(payload, "sectionId", action_name),
            payload.get("sceneId"),
            self._parse_mode(payload.get("mode"), action_name),
        )

    def _handle_enter_menu(self, action: Action) -> list[Effect]:
        self._step_manager.enter_menu(_require(action.payload, "sectionId", action.name))
        return [Effect(RENDER)]

    def _handle_clear_current_mode(self, action: Action) -> list[Effect]:
        mode = self._parse_mode(action.payload.get("mode"), action.name) or PointerMode.READ
        self._step_manager.clear_current_mode(mode)
        return [Effect(RENDER)]

    def _handle_exit_history(self, action: Action) -> list[Effect]:
        self._step_manager.exit_history()
        return [Effect(RENDER)]

    # =========================================================================
    # Timed advancement handlers
    # =========================================================================

    def _handle_start_auto_mode(self, action: Action) -> list[Effect]:
        effects = self._stop_skip_mode()
        self._auto_mode = True
        effects.append(Effect(START_AUTO_NEXT_TIMER, {"delay": action.payload.get("delay")}))
        return effects

    def _handle_stop_auto_mode(self, action: Action) -> list[Effect]:
        return self._stop_auto_mode()

    def _handle_toggle_auto_mode(self, action: Action) -> list[Effect]:
        if self._auto_mode:
            return self._stop_auto_mode()
        return self._handle_start_auto_mode(action)

    def _handle_start_skip_mode(self, action: Action) -> list[Effect]:
        effects = self._stop_auto_mode()
        self._skip_mode = True
        effects.append(Effect(START_SKIP_NEXT_TIMER))
        return effects

    def _handle_stop_skip_mode(self, action: Action) -> list[Effect]:
        return self._stop_skip_mode()

    def _handle_toggle_skip_mode(self, action: Action) -> list[Effect]:
        if self._skip_mode:
            return self._stop_skip_mode()
        return self._handle_start_skip_mode(action)

    def _stop_auto_mode(self) -> list[Effect]:
        if not self._auto_mode:
            return []
        self._auto_mode = False
        return [Effect(CLEAR_AUTO_NEXT_TIMER)]

    def _stop_skip_mode(self) -> list[Effect]:
        if not self._skip_mode:
            return []
        self._skip_mode = False
        return [Effect(CLEAR_SKIP_NEXT_TIMER)]

    def _advance_from_timer(self, kind: TimerKind):
        self.handle_action(ActionType.NEXT_LINE_FROM_SYSTEM.value, {"source": kind.value})

    def _active_step_position(self) -> StepPosition | None:
        if self._step_manager.mode is not PointerMode.READ:
            return None
        return self._step_manager.read_position

    # =========================================================================
    # Runtime state handlers
    # =========================================================================

    def _handle_set_runtime_variable(self, action: Action) -> list[Effect]:
        self._variables.update(deepcopy(action.payload))
        return [Effect(RENDER)]

    def _handle_update_variable(self, action: Action) -> list[Effect]:
        operations = _require(action.payload, "operations", action.name)
        if not isinstance(operations, list):
            raise ActionPayloadError(action.name, "operations must be a list")
        touched: set[str] = set()

        for operation in operations:
            variable_id = _require(operation, "variableId", action.name)
            op = operation.get("op", "set")
            value = operation.get("value")
            if op in ("increment", "decrement") and not isinstance(value, (int, float)):
                raise ActionPayloadError(action.name, f"{op} needs a numeric value")
            if op == "set":
                self._variables[variable_id] = value
            elif op == "increment":
                self._variables[variable_id] = self._variables.get(variable_id, 0) + value
            elif op == "decrement":
                self._variables[variable_id] = self._variables.get(variable_id, 0) - value
            else:
                raise ActionPayloadError(action.name, f"unknown op {op!r}")
            touched.add(variable_id)

        effects = [Effect(RENDER)]
        local_ids = set(self._story.default_variables("local"))
        if touched & local_ids:
            local = {key: self._variables[key] for key in touched & local_ids}
            stored = self._store.get(VARIABLES_KEY) or {}
            effects.append(Effect(SAVE_VARIABLES, {"variables": {**stored, **local}}))
        return effects

    def _handle_set_preset(self, action: Action) -> list[Effect]:
        self._set_preset(_require(action.payload, "presetId", action.name))
        return []

    def _set_preset(self, preset_id: str):
        self._story.get_preset(preset_id)
        self._preset_id = preset_id

    def _handle_select_choice(self, action: Action) -> list[Effect]:
        choice_id = _require(action.payload, "choiceId", action.name)
        nested = action.payload.get("actions") or {}
        if not isinstance(nested, Mapping):
            raise ActionPayloadError(action.name, "actions must be an object")
        self._step_manager.seen.add_choice(choice_id)
        effects = []
        for name, payload in nested.items():
            effects.extend(self._run(Action.parse(name, payload)))
        effects.append(Effect(RENDER))
        return effects

    def _handle_toggle_dialogue_ui_hidden(self, action: Action) -> list[Effect]:
        self._dialogue_ui_hidden = not self._dialogue_ui_hidden
        return [Effect(RENDER)]

    def _handle_push_layered_view(self, action: Action) -> list[Effect]:
        _require(action.payload, "viewId", action.name)
        self._layered_views.append(deepcopy(action.payload))
        return [Effect(RENDER)]

    def _handle_pop_layered_view(self, action: Action) -> list[Effect]:
        if not self._layered_views:
            return []
        self._layered_views.pop()
        return [Effect(RENDER)]

    # =========================================================================
    # Save slots
    # =========================================================================

    def _handle_save_vn_data(self, action: Action) -> list[Effect]:
        slot_index = _require(action.payload, "slotIndex", action.name)
        slot = {
            "id": uuid.uuid4().hex[:8],
            "slotIndex": slot_index,
            "savedAt": time.time(),
            "variables": deepcopy(self._variables),
            **self._step_manager.to_save_data(),
        }
        save_data = [s for s in self._stored_save_data() if s.get("slotIndex") != slot_index]
        save_data.append(slot)
        return [Effect(SAVE_VN_DATA, {"saveData": save_data})]

    def _handle_load_vn_data(self, action: Action) -> list[Effect]:
        slot_index = _require(action.payload, "slotIndex", action.name)
        matches = [s for s in self._stored_save_data() if s.get("slotIndex") == slot_index]
        if not matches:
            logger.warning("No save data found for slot index %s", slot_index)
            return []

        slot = matches[-1]
        self._step_manager.restore(slot)
        if "variables" in slot:
            self._variables = deepcopy(slot["variables"])
        return [Effect(RENDER)]

    def _stored_save_data(self) -> list[dict[str, Any]]:
        # Re-read on every use: other sessions of the story share the store
        return list(self._store.get(SAVE_DATA_KEY) or [])

    # =========================================================================
    # Effects
    # =========================================================================

    def _register_effects(self):
        self._effects.register(RENDER, self._render)
        self._effects.register(
            START_AUTO_NEXT_TIMER,
            lambda payload: self._scheduler.arm_auto((payload or {}).get("delay")),
        )
        self._effects.register(
            CLEAR_AUTO_NEXT_TIMER, lambda payload: self._scheduler.disarm(TimerKind.AUTO)
        )
        self._effects.register(START_SKIP_NEXT_TIMER, lambda payload: self._scheduler.arm_skip())
        self._effects.register(
            CLEAR_SKIP_NEXT_TIMER, lambda payload: self._scheduler.disarm(TimerKind.SKIP)
        )
        self._effects.register(
            SAVE_VN_DATA, lambda payload: self._store.set(SAVE_DATA_KEY, payload["saveData"])
        )
        self._effects.register(
            SAVE_VARIABLES, lambda payload: self._store.set(VARIABLES_KEY, payload["variables"])
        )

    def _follow_signals(self):
        """
        Apply control signals of the step about to be shown.

        goToSectionScene moves the pointer before anything is drawn; a
        chain of redirects longer than max_redirects is a NavigationLoopError.
        Signals are not followed while browsing history, so earlier steps
        stay viewable.
        """
        hops = 0
        while self._step_manager.mode is not PointerMode.HISTORY:
            state = derive(self._step_manager.get_active_steps())
            if state.preset is not None:
                self._set_preset(_require(state.preset, "presetId", ActionType.SET_PRESET.value))
            if state.go_to_section_scene is None:
                return
            if hops >= self._max_redirects:
                raise NavigationLoopError(
                    f"goToSectionScene redirected more than {self._max_redirects} times"
                )
            hops += 1
            self._go_to_section_scene(
                state.go_to_section_scene, ActionType.GO_TO_SECTION_SCENE.value
            )

    def _render(self, payload: Any = None):
        state = derive(self._step_manager.get_active_steps())
        elements = self._generate(
            state=state,
            resources=self._story.resources,
            resolve_file=self._resolve_file,
            screen=self._story.screen,
            ui=self._story.ui,
            variables=self.variables,
            dialogue_ui_hidden=self._dialogue_ui_hidden,
        )
        result = RenderResult(
            id=str(uuid.uuid4()),
            state=state.to_dict(),
            elements=elements.elements,
            transitions=elements.transitions,
            scope_changed=self._effects.render_scope_changed,
            system=self._system_snapshot(),
        )
        self._render_result = result

        for listener in list(self._listeners):
            listener(result)

        if self._step_manager.mode is PointerMode.READ:
            self._scheduler.sync_step(self._step_manager.read_position, self._step_manager.read_step)
        else:
            self._scheduler.sync_step(None, None)

    def _system_snapshot(self) -> dict[str, Any]:
        position = self._step_manager.current_position
        return {
            "mode": self._step_manager.mode.value,
            "sectionId": position.section_id if position else None,
            "stepId": position.step_id if position else None,
            "presetId": self._preset_id,
            "autoMode": self._auto_mode,
            "skipMode": self._skip_mode,
            "dialogueUIHidden": self._dialogue_ui_hidden,
            "layeredViews": deepcopy(self._layered_views),
            "variables": deepcopy(self._variables),
        }

    @staticmethod
    def _parse_mode(mode: Any, action_name: str) -> PointerMode | None:
        if mode is None:
            return None
        try:
            return PointerMode(mode)
        except ValueError:
            raise ActionPayloadError(action_name, f"unknown mode {mode!r}") from None


def _require(payload: Any, key: str, action_name: str) -> Any:
    """Fetch a required payload field."""
    if not isinstance(payload, dict) or key not in payload:
        raise ActionPayloadError(action_name, f"missing {key!r}")
    return payload[key]
