"""
Session Manager - Creates and manages play sessions.

LIFECYCLE:
1. A story is registered and indexed once
2. A session is created per play-through: its own Engine, tick source
   and a store shared by every session of the same story
3. During play the host forwards events, actions and ticks
4. The session ends, its timers are stopped and it is forgotten

PERSISTENCE RULES:
- Sessions are in-memory only
- Save slots and local variables go through the story's store, so they
  outlive the session that wrote them
"""

from __future__ import annotations
import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from ..engine_core.scheduler import ManualTickSource
from ..persistence.store import KeyValueStore, MemoryStore
from ..story.index import StoryIndex
from .engine import Engine

logger = logging.getLogger(__name__)

StoreFactory = Callable[[str], KeyValueStore]


class SessionState(Enum):
    """State of a play session."""
    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


@dataclass
class Session:
    """
    One play-through of a story.

    The tick source is manual: the host advances time explicitly,
    typically once per frame or per HTTP tick request.
    """
    session_id: str
    story_id: str
    engine: Engine
    tick_source: ManualTickSource
    created_at: float
    last_activity: float = 0.0
    state: SessionState = SessionState.ACTIVE
    metadata: dict[str, Any] = field(default_factory=dict)

    def is_active(self) -> bool:
        return self.state is SessionState.ACTIVE

    def touch(self):
        self.last_activity = time.time()

    def tick(self, delta_ms: float):
        """Advance session time, firing any due timers."""
        self.touch()
        self.tick_source.tick(delta_ms)


class SessionManager:
    """
    Manages play sessions.

    Responsibilities:
    - Create sessions for indexed stories
    - Hand each story one persistent store
    - Track and clean up sessions

    Usage:
        manager = SessionManager()
        session = manager.create_session(story, story_id="demo")
        session.engine.handle_event("LeftClick")
    """

    def __init__(self, store_factory: StoreFactory | None = None):
        self._sessions: dict[str, Session] = {}
        self._store_factory = store_factory
        self._stores: dict[str, KeyValueStore] = {}

    def store_for(self, story_id: str) -> KeyValueStore:
        """The store shared by every session of a story."""
        store = self._stores.get(story_id)
        if store is None:
            store = self._store_factory(story_id) if self._store_factory else MemoryStore()
            self._stores[story_id] = store
        return store

    def create_session(
        self,
        story: StoryIndex,
        story_id: str = "default",
        metadata: dict[str, Any] | None = None,
    ) -> Session:
        """
        Create a session and render its first step.

        Args:
            story: Indexed story data
            story_id: Key for the story's persistent store
            metadata: Free-form host data kept on the session
        """
        session_id = str(uuid.uuid4())
        tick_source = ManualTickSource()
        engine = Engine(story, tick_source=tick_source, store=self.store_for(story_id))

        now = time.time()
        session = Session(
            session_id=session_id,
            story_id=story_id,
            engine=engine,
            tick_source=tick_source,
            created_at=now,
            last_activity=now,
            metadata=metadata or {},
        )
        engine.init()

        self._sessions[session_id] = session
        logger.info("Created session %s for story %s", session_id, story_id)
        return session

    def get_session(self, session_id: str) -> Session | None:
        """Get a session by ID."""
        return self._sessions.get(session_id)

    def end_session(self, session_id: str, reason: str = "completed") -> bool:
        """
        End a session and stop its timers.

        Returns False if no such session exists.
        """
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False

        if reason == "completed":
            session.state = SessionState.COMPLETED
        else:
            session.state = SessionState.ABANDONED
        session.engine.close()
        logger.info("Ended session %s (%s)", session_id, reason)
        return True

    def list_active_sessions(self) -> list[str]:
        """List IDs of active sessions."""
        return [
            sid for sid, session in self._sessions.items()
            if session.is_active()
        ]

    def cleanup_stale_sessions(self, max_idle_seconds: int = 3600) -> list[str]:
        """
        End sessions idle for longer than max_idle_seconds.

        Returns the IDs that were removed.
        """
        current_time = time.time()
        stale = [
            session_id
            for session_id, session in self._sessions.items()
            if current_time - session.last_activity > max_idle_seconds
        ]
        for session_id in stale:
            self.end_session(session_id, reason="stale")
        return stale
