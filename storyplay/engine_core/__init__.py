"""
Engine Core - Deterministic story progression.

The core is the runtime that:
1. Folds a section's step prefix into a PresentationState
2. Tracks where the reader is (pointers, history, seen steps)
3. Parses named actions
4. Deduplicates and runs side effects
5. Turns elapsed time into timed advancement
"""

from .state import PresentationState
from .reducer import Reducer, apply_step, derive
from .pointer import PointerMode, StepPointer, StepPosition
from .seen import SeenSections
from .history import History, HistoryEntry
from .step_manager import StepManager
from .action import Action, ActionType, parse_action_type
from .effects import Effect, EffectDispatcher, RenderScope, deduplicate
from .scheduler import (
    AdvancementScheduler,
    ManualTickSource,
    Tick,
    TickSource,
    TimerKind,
    TimerState,
)

__all__ = [
    "PresentationState",
    "Reducer",
    "apply_step",
    "derive",
    "PointerMode",
    "StepPointer",
    "StepPosition",
    "SeenSections",
    "History",
    "HistoryEntry",
    "StepManager",
    "Action",
    "ActionType",
    "parse_action_type",
    "Effect",
    "EffectDispatcher",
    "RenderScope",
    "deduplicate",
    "AdvancementScheduler",
    "ManualTickSource",
    "Tick",
    "TickSource",
    "TimerKind",
    "TimerState",
]
