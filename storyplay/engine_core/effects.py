"""
Effect Dispatcher - Deduplicated side-effect execution.

Actions never perform side effects directly. They return Effect
requests, and one dispatch pass:
1. Keeps only the last request per effect name
2. Runs the handlers in the order names were first requested
3. Snapshots the render scope before a render runs, so the next
   cycle can tell whether the story position or overlays changed
4. Ignores names with no handler (newer story data, older engine)
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable

logger = logging.getLogger(__name__)

RENDER = "render"


@dataclass(frozen=True)
class Effect:
    """A named side-effect request emitted by an action."""
    name: str
    payload: Any = None


@dataclass(frozen=True)
class RenderScope:
    """What a render depends on beyond the presentation state."""
    mode: str
    section_id: str | None
    step_id: str | None
    layered_view_count: int = 0


EffectHandler = Callable[[Any], None]


class EffectDispatcher:
    """
    Runs effect handlers by name.

    Usage:
        dispatcher = EffectDispatcher(scope_provider=engine.render_scope)
        dispatcher.register("render", on_render)
        dispatcher.dispatch([Effect("render"), Effect("render", 2)])  # one call, payload 2
    """

    def __init__(self, scope_provider: Callable[[], RenderScope] | None = None):
        self._handlers: dict[str, EffectHandler] = {}
        self._scope_provider = scope_provider
        self.last_render_scope: RenderScope | None = None
        self.previous_render_scope: RenderScope | None = None

    def register(self, name: str, handler: EffectHandler):
        self._handlers[name] = handler

    def has_handler(self, name: str) -> bool:
        return name in self._handlers

    @property
    def render_scope_changed(self) -> bool:
        """Whether the latest render happened in a different scope than the one before."""
        return self.previous_render_scope != self.last_render_scope

    def dispatch(self, effects: Iterable[Effect]):
        for effect in deduplicate(effects):
            handler = self._handlers.get(effect.name)
            if handler is None:
                logger.debug("Ignoring effect with no handler: %s", effect.name)
                continue
            if effect.name == RENDER and self._scope_provider is not None:
                self.previous_render_scope = self.last_render_scope
                self.last_render_scope = self._scope_provider()
            handler(effect.payload)


def deduplicate(effects: Iterable[Effect]) -> list[Effect]:
    """Last occurrence per name wins; names keep their first-seen order."""
    by_name: dict[str, Effect] = {}
    for effect in effects:
        by_name[effect.name] = effect
    return list(by_name.values())
