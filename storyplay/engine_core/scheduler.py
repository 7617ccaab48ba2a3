"""
Advancement Scheduler - Turns elapsed frame time into "advance" requests.

Three timers share one tick source:
- AUTO: auto-play, fires every AUTO_DELAY_MS (or a payload override)
- SKIP: fast-skip, fires every SKIP_DELAY_MS and keeps overshoot so
  rapid skipping stays evenly paced
- STEP: a step's own autoNext delay; one-shot, and bound to the step
  that armed it

Each timer kind has one TimerState owned here. Arming an armed timer
detaches its previous callback first, so the tick source never holds two
callbacks for the same kind. A STEP timer checks on every tick that its
step is still the active one and disarms itself without firing if not.
"""

from __future__ import annotations
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Callable

from .pointer import StepPosition
from ..story.index import DEFAULT_AUTO_NEXT_DELAY_MS, Step

logger = logging.getLogger(__name__)

AUTO_DELAY_MS = 1000
SKIP_DELAY_MS = 30
STEP_DELAY_MS = DEFAULT_AUTO_NEXT_DELAY_MS


@dataclass(frozen=True)
class Tick:
    """One frame's worth of elapsed time."""
    delta_ms: float


TickCallback = Callable[[Tick], None]


class TickSource(ABC):
    """Delivers a Tick once per frame to every registered callback."""

    @abstractmethod
    def add(self, callback: TickCallback):
        pass

    @abstractmethod
    def remove(self, callback: TickCallback):
        pass


class ManualTickSource(TickSource):
    """
    Tick source driven by explicit tick() calls.

    Used by sessions that are advanced by their host (HTTP, CLI, tests).
    A callback removed during a tick is not invoked later in that tick.
    """

    def __init__(self):
        self._listeners: list[TickCallback] = []

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def add(self, callback: TickCallback):
        self._listeners.append(callback)

    def remove(self, callback: TickCallback):
        if callback in self._listeners:
            self._listeners.remove(callback)

    def tick(self, delta_ms: float):
        tick = Tick(delta_ms=delta_ms)
        for callback in list(self._listeners):
            if callback in self._listeners:
                callback(tick)


class TimerKind(Enum):
    AUTO = "auto"
    SKIP = "skip"
    STEP = "step"


DEFAULT_THRESHOLDS = {
    TimerKind.AUTO: AUTO_DELAY_MS,
    TimerKind.SKIP: SKIP_DELAY_MS,
    TimerKind.STEP: STEP_DELAY_MS,
}


@dataclass
class TimerState:
    """Elapsed time and registration for one timer kind."""
    kind: TimerKind
    threshold_ms: float
    elapsed_ms: float = 0.0
    callback: TickCallback | None = None
    armed_for: StepPosition | None = None

    @property
    def armed(self) -> bool:
        return self.callback is not None


class AdvancementScheduler:
    """
    Arms, disarms and ticks the advancement timers.

    `advance` is called with the firing TimerKind; `active_position`
    reports the step currently on screen for the stale-timer check.
    """

    def __init__(
        self,
        tick_source: TickSource,
        advance: Callable[[TimerKind], None],
        active_position: Callable[[], StepPosition | None],
    ):
        self._tick_source = tick_source
        self._advance = advance
        self._active_position = active_position
        self._timers: dict[TimerKind, TimerState] = {
            kind: TimerState(kind=kind, threshold_ms=threshold)
            for kind, threshold in DEFAULT_THRESHOLDS.items()
        }

    def timer(self, kind: TimerKind) -> TimerState:
        return self._timers[kind]

    def is_armed(self, kind: TimerKind) -> bool:
        return self._timers[kind].armed

    def arm_auto(self, delay_ms: float | None = None):
        self._arm(TimerKind.AUTO, AUTO_DELAY_MS if delay_ms is None else delay_ms)

    def arm_skip(self):
        self._arm(TimerKind.SKIP, SKIP_DELAY_MS)

    def arm_step(self, position: StepPosition, delay_ms: float | None = None):
        self._arm(
            TimerKind.STEP,
            STEP_DELAY_MS if delay_ms is None else delay_ms,
            armed_for=position,
        )

    def disarm(self, kind: TimerKind):
        """Detach a timer from the tick source. Safe to call when not armed."""
        timer = self._timers[kind]
        if timer.callback is not None:
            self._tick_source.remove(timer.callback)
        timer.callback = None
        timer.elapsed_ms = 0.0
        timer.armed_for = None

    def disarm_all(self):
        for kind in TimerKind:
            self.disarm(kind)

    def sync_step(self, position: StepPosition | None, step: Step | None):
        """
        Match the STEP timer to the step now on screen.

        A timer already armed for this position keeps its elapsed time,
        so re-rendering the same step does not restart the countdown.
        """
        if position is None or step is None or step.auto_next is None:
            self.disarm(TimerKind.STEP)
            return
        timer = self._timers[TimerKind.STEP]
        if timer.armed and timer.armed_for == position:
            return
        self.arm_step(position, step.auto_next.delay)

    def _arm(self, kind: TimerKind, threshold_ms: float, armed_for: StepPosition | None = None):
        self.disarm(kind)
        timer = self._timers[kind]
        timer.threshold_ms = threshold_ms
        timer.armed_for = armed_for
        timer.callback = partial(self._on_tick, kind)
        self._tick_source.add(timer.callback)

    def _on_tick(self, kind: TimerKind, tick: Tick):
        timer = self._timers[kind]
        if timer.callback is None:
            return

        if timer.armed_for is not None and self._active_position() != timer.armed_for:
            logger.debug("Disarming stale %s timer armed for %s", kind.value, timer.armed_for)
            self.disarm(kind)
            return

        timer.elapsed_ms += tick.delta_ms
        if timer.elapsed_ms < timer.threshold_ms:
            return

        if kind is TimerKind.SKIP:
            timer.elapsed_ms -= timer.threshold_ms
        else:
            timer.elapsed_ms = 0.0
        if kind is TimerKind.STEP:
            self.disarm(kind)

        logger.debug("%s timer fired", kind.value)
        self._advance(kind)
