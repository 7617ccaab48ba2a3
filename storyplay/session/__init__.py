"""
Session Module - Play-throughs and the engine that drives them.

A session represents one play-through of a story:
- Created when a reader starts playing
- Owns an Engine and the tick source that drives its timers
- Destroyed when the reader leaves

Sessions are in-memory; only save slots and local variables persist.
"""

from .engine import Engine, RenderResult, ACTIONS_EVENT
from .manager import SessionManager, Session, SessionState

__all__ = [
    "Engine",
    "RenderResult",
    "ACTIONS_EVENT",
    "SessionManager",
    "Session",
    "SessionState",
]
