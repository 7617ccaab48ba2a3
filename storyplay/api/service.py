"""
API Service - Business logic layer between API and engine.

The service:
1. Registers and indexes story data
2. Manages play sessions
3. Forwards events, actions and ticks to a session's engine
4. Formats responses

This layer is framework-agnostic (can be used with FastAPI, Flask, etc.).
A missing session or story comes back as an ErrorResponse; engine errors
(NotFoundError, UnknownActionError, ActionPayloadError,
NavigationLoopError) propagate to the caller.
"""

from __future__ import annotations
import uuid
from dataclasses import dataclass, field

from .schemas import (
    # Requests
    RegisterStoryRequest,
    CreateSessionRequest,
    EventRequest,
    ActionRequest,
    TickRequest,
    # Responses
    RegisterStoryResponse,
    SessionResponse,
    ErrorResponse,
    # Shared
    PositionInfo,
    RenderInfo,
    # Enums
    ErrorCode,
    SessionStatus,
)
from ..session import SessionManager, Session, RenderResult
from ..story import StoryIndex, validate_story


@dataclass
class APIService:
    """
    Main API service for story players.

    Usage:
        service = APIService()

        # Register a story
        story = service.register_story(RegisterStoryRequest(data=story_data))

        # Start playing
        session = service.create_session(CreateSessionRequest(story_id=story.story_id))

        # Click through
        service.handle_event(session.session_id, EventRequest(event="LeftClick"))
    """
    session_manager: SessionManager = field(default_factory=SessionManager)

    # Indexed stories by ID
    _stories: dict[str, StoryIndex] = field(default_factory=dict)

    def register_story(self, request: RegisterStoryRequest) -> RegisterStoryResponse:
        """
        Validate and index story data.

        Returns story_id that can be used to create sessions.
        """
        result = validate_story(request.data)
        if not result.valid:
            return RegisterStoryResponse(
                success=False,
                warnings=result.warnings,
                errors=result.errors,
            )

        story = StoryIndex.from_dict(request.data)
        story_id = request.story_id or uuid.uuid4().hex[:12]
        self._stories[story_id] = story

        return RegisterStoryResponse(
            success=True,
            story_id=story_id,
            section_count=len(story.sections),
            step_count=sum(len(section.steps) for section in story.sections.values()),
            warnings=result.warnings,
        )

    def get_story(self, story_id: str) -> StoryIndex | None:
        return self._stories.get(story_id)

    def create_session(self, request: CreateSessionRequest) -> SessionResponse | ErrorResponse:
        """
        Start a play session and render its first step.
        """
        story = self._stories.get(request.story_id)
        if story is None:
            return ErrorResponse(
                error=f"Story {request.story_id} not found",
                error_code=ErrorCode.STORY_NOT_FOUND,
            )

        session = self.session_manager.create_session(story, story_id=request.story_id)
        return self._session_to_response(session)

    def get_session(self, session_id: str) -> SessionResponse | ErrorResponse:
        """
        Get session status with the latest render.
        """
        session = self.session_manager.get_session(session_id)
        if not session:
            return _session_not_found()
        return self._session_to_response(session)

    def get_render(self, session_id: str) -> RenderInfo | ErrorResponse:
        """
        Get the latest render of a session.
        """
        session = self.session_manager.get_session(session_id)
        if not session:
            return _session_not_found()
        return _render_to_info(session.engine.render_result)

    def handle_event(self, session_id: str, request: EventRequest) -> SessionResponse | ErrorResponse:
        """
        Send an inbound event to a session's engine.
        """
        session = self.session_manager.get_session(session_id)
        if not session:
            return _session_not_found()

        session.touch()
        session.engine.handle_event(request.event, request.payload)
        return self._session_to_response(session)

    def handle_action(self, session_id: str, request: ActionRequest) -> SessionResponse | ErrorResponse:
        """
        Run one named action on a session's engine.
        """
        session = self.session_manager.get_session(session_id)
        if not session:
            return _session_not_found()

        session.touch()
        session.engine.handle_action(request.action, request.payload)
        return self._session_to_response(session)

    def tick(self, session_id: str, request: TickRequest) -> SessionResponse | ErrorResponse:
        """
        Advance a session's time so due timers fire.
        """
        session = self.session_manager.get_session(session_id)
        if not session:
            return _session_not_found()

        for _ in range(request.count):
            session.tick(request.delta_ms)
        return self._session_to_response(session)

    def end_session(self, session_id: str, reason: str = "user_ended") -> bool:
        """
        End a play session.
        """
        return self.session_manager.end_session(session_id, reason)

    def list_sessions(self) -> list[str]:
        """
        List active session IDs.
        """
        return self.session_manager.list_active_sessions()

    # =========================================================================
    # Helper methods
    # =========================================================================

    def _session_to_response(self, session: Session) -> SessionResponse:
        """Convert Session to SessionResponse."""
        engine = session.engine
        scope = engine.render_scope()
        return SessionResponse(
            session_id=session.session_id,
            story_id=session.story_id,
            status=SessionStatus(session.state.value),
            position=PositionInfo(
                mode=scope.mode,
                section_id=scope.section_id,
                step_id=scope.step_id,
            ),
            preset_id=engine.preset_id,
            auto_mode=engine.auto_mode,
            skip_mode=engine.skip_mode,
            created_at=session.created_at,
            render=_render_to_info(engine.render_result),
        )


def _session_not_found() -> ErrorResponse:
    return ErrorResponse(
        error="Session not found",
        error_code=ErrorCode.SESSION_NOT_FOUND,
    )


def _render_to_info(result: RenderResult | None) -> RenderInfo | None:
    if result is None:
        return None
    return RenderInfo(
        render_id=result.id,
        state=result.state,
        elements=result.elements,
        transitions=result.transitions,
        scope_changed=result.scope_changed,
        system=result.system,
    )
