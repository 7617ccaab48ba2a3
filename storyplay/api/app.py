"""
FastAPI Application - REST API for story players.

Endpoints:
    GET    /api/v1/health                   Health check
    POST   /api/v1/stories                  Register story data
    POST   /api/v1/sessions                 Start a play session
    GET    /api/v1/sessions                 List active sessions
    GET    /api/v1/sessions/{id}            Get session status
    DELETE /api/v1/sessions/{id}            End session
    GET    /api/v1/sessions/{id}/render     Get the latest render
    POST   /api/v1/sessions/{id}/events     Send an inbound event
    POST   /api/v1/sessions/{id}/actions    Run a named action
    POST   /api/v1/sessions/{id}/tick       Advance session time

Play Flow:
    1. POST /stories validates and indexes the story
    2. POST /sessions renders the first step
    3. The player forwards renderer events (LeftClick, ...) to /events
    4. The player reports elapsed frame time to /tick so auto, skip
       and per-step timers can fire

All responses are JSON with explicit Pydantic schemas.
"""

from pathlib import Path
from typing import Annotated, Optional, Union

from ..config import ALLOWED_ORIGINS, STORYPLAY_SAVE_DIR
from ..errors import (
    ActionPayloadError,
    NavigationLoopError,
    NotFoundError,
    StoryplayError,
    UnknownActionError,
)


def create_app(service=None):
    """
    Create the FastAPI application.

    Args:
        service: Optional APIService instance (creates new if not provided)

    Returns:
        FastAPI application instance
    """
    try:
        from fastapi import FastAPI, Query
        from fastapi.middleware.cors import CORSMiddleware
        from fastapi.responses import JSONResponse
    except ImportError:
        raise ImportError(
            "FastAPI not installed. Install with: pip install fastapi uvicorn"
        )

    from .service import APIService
    from .schemas import (
        # Request models
        RegisterStoryRequest,
        CreateSessionRequest,
        EventRequest,
        ActionRequest,
        TickRequest,
        # Response models
        RegisterStoryResponse,
        SessionResponse,
        RenderInfo,
        ErrorResponse,
        SessionListResponse,
        EndSessionResponse,
        HealthResponse,
        # Enums
        ErrorCode,
    )
    from ..persistence import FileStore
    from ..session import SessionManager
    from .. import __version__

    app = FastAPI(
        title="Storyplay Engine API",
        description="""
Narrative progression runtime for interactive story players.

## Play Flow

1. `POST /stories` with authored story data
2. `POST /sessions` with the returned `story_id`
3. Forward renderer events to `POST /sessions/{id}/events`
4. Report elapsed time to `POST /sessions/{id}/tick`

## Error Codes

| Code | Description |
|------|-------------|
| `INVALID_STORY` | Story data failed validation |
| `STORY_NOT_FOUND` | Story ID was never registered |
| `SESSION_NOT_FOUND` | Session does not exist |
| `NOT_FOUND` | Section, step or preset id does not exist |
| `UNKNOWN_ACTION` | Action name is not known |
| `INVALID_PAYLOAD` | Action payload is missing fields or has bad values |
| `NAVIGATION_LOOP` | goToSectionScene redirects never settle |
        """,
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    # CORS for browser players
    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Service instance
    if STORYPLAY_SAVE_DIR:
        session_manager = SessionManager(
            store_factory=lambda story_id: FileStore(Path(STORYPLAY_SAVE_DIR) / story_id)
        )
    else:
        session_manager = SessionManager()
    api_service = service or APIService(session_manager=session_manager)

    # =========================================================================
    # Error helpers
    # =========================================================================

    def make_error_response(
        error_code: ErrorCode,
        message: str,
        status_code: int = 400,
        details: Optional[dict] = None,
    ) -> JSONResponse:
        """Create a standardized error response."""
        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(
                error=message,
                error_code=error_code,
                details=details,
            ).model_dump(mode="json"),
        )

    def engine_error_response(error: StoryplayError) -> JSONResponse:
        """Map an engine error to its HTTP status and error code."""
        if isinstance(error, NotFoundError):
            return make_error_response(ErrorCode.NOT_FOUND, str(error), status_code=404)
        if isinstance(error, UnknownActionError):
            return make_error_response(
                ErrorCode.UNKNOWN_ACTION, str(error), status_code=422,
                details={"action": error.name},
            )
        if isinstance(error, ActionPayloadError):
            return make_error_response(
                ErrorCode.INVALID_PAYLOAD, str(error), status_code=422,
                details={"action": error.action},
            )
        if isinstance(error, NavigationLoopError):
            return make_error_response(ErrorCode.NAVIGATION_LOOP, str(error), status_code=409)
        return make_error_response(ErrorCode.INTERNAL_ERROR, str(error), status_code=500)

    def service_error_response(response: ErrorResponse) -> JSONResponse:
        """Missing sessions and stories are 404s."""
        return make_error_response(response.error_code, response.error, status_code=404)

    # =========================================================================
    # Story Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/stories",
        response_model=RegisterStoryResponse,
        responses={400: {"model": ErrorResponse, "description": "Invalid story data"}},
        tags=["Stories"],
        summary="Register story data",
    )
    async def register_story(request: RegisterStoryRequest) -> Union[RegisterStoryResponse, JSONResponse]:
        """
        Validate and index story data.

        Returns a `story_id` that can be used to start sessions.
        """
        response = api_service.register_story(request)
        if not response.success:
            return make_error_response(
                ErrorCode.INVALID_STORY,
                "Story data failed validation",
                details={"errors": response.errors, "warnings": response.warnings},
            )
        return response

    # =========================================================================
    # Session Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/sessions",
        response_model=SessionResponse,
        responses={404: {"model": ErrorResponse, "description": "Unknown story_id"}},
        tags=["Sessions"],
        summary="Start a play session",
    )
    async def create_session(request: CreateSessionRequest) -> Union[SessionResponse, JSONResponse]:
        """Start a session at the story's first step."""
        try:
            response = api_service.create_session(request)
        except StoryplayError as e:
            return engine_error_response(e)
        if isinstance(response, ErrorResponse):
            return service_error_response(response)
        return response

    @app.get(
        "/api/v1/sessions",
        response_model=SessionListResponse,
        tags=["Sessions"],
        summary="List active sessions",
    )
    async def list_sessions() -> SessionListResponse:
        """List all active session IDs."""
        sessions = api_service.list_sessions()
        return SessionListResponse(sessions=sessions, count=len(sessions))

    @app.get(
        "/api/v1/sessions/{session_id}",
        response_model=SessionResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Sessions"],
        summary="Get session status",
    )
    async def get_session(session_id: str) -> Union[SessionResponse, JSONResponse]:
        """Get the current position, modes and latest render of a session."""
        response = api_service.get_session(session_id)
        if isinstance(response, ErrorResponse):
            return service_error_response(response)
        return response

    @app.delete(
        "/api/v1/sessions/{session_id}",
        response_model=EndSessionResponse,
        tags=["Sessions"],
        summary="End a play session",
    )
    async def end_session(
        session_id: str,
        reason: Annotated[str, Query(description="Reason for ending")] = "user_ended",
    ) -> EndSessionResponse:
        """End a session and stop its timers."""
        success = api_service.end_session(session_id, reason)
        return EndSessionResponse(success=success, session_id=session_id)

    # =========================================================================
    # Play Endpoints
    # =========================================================================

    @app.get(
        "/api/v1/sessions/{session_id}/render",
        response_model=RenderInfo,
        responses={404: {"model": ErrorResponse}},
        tags=["Play"],
        summary="Get the latest render",
    )
    async def get_render(session_id: str) -> Union[RenderInfo, JSONResponse]:
        """Latest presentation state and render elements."""
        response = api_service.get_render(session_id)
        if isinstance(response, ErrorResponse):
            return service_error_response(response)
        return response

    @app.post(
        "/api/v1/sessions/{session_id}/events",
        response_model=SessionResponse,
        responses={
            404: {"model": ErrorResponse},
            422: {"model": ErrorResponse, "description": "Unknown action or bad payload"},
        },
        tags=["Play"],
        summary="Send an inbound event",
    )
    async def send_event(session_id: str, request: EventRequest) -> Union[SessionResponse, JSONResponse]:
        """
        Send a renderer event.

        The current preset's eventsMap decides which actions run; the
        `Actions` event runs the batch in `payload.actions`.
        """
        try:
            response = api_service.handle_event(session_id, request)
        except StoryplayError as e:
            return engine_error_response(e)
        if isinstance(response, ErrorResponse):
            return service_error_response(response)
        return response

    @app.post(
        "/api/v1/sessions/{session_id}/actions",
        response_model=SessionResponse,
        responses={
            404: {"model": ErrorResponse},
            422: {"model": ErrorResponse, "description": "Unknown action or bad payload"},
        },
        tags=["Play"],
        summary="Run a named action",
    )
    async def run_action(session_id: str, request: ActionRequest) -> Union[SessionResponse, JSONResponse]:
        """Run one action, e.g. `nextStep` or `startAutoMode`."""
        try:
            response = api_service.handle_action(session_id, request)
        except StoryplayError as e:
            return engine_error_response(e)
        if isinstance(response, ErrorResponse):
            return service_error_response(response)
        return response

    @app.post(
        "/api/v1/sessions/{session_id}/tick",
        response_model=SessionResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Play"],
        summary="Advance session time",
    )
    async def tick(session_id: str, request: TickRequest) -> Union[SessionResponse, JSONResponse]:
        """Deliver `count` ticks of `delta_ms` each to the session's timers."""
        try:
            response = api_service.tick(session_id, request)
        except StoryplayError as e:
            return engine_error_response(e)
        if isinstance(response, ErrorResponse):
            return service_error_response(response)
        return response

    # =========================================================================
    # System Endpoints
    # =========================================================================

    @app.get(
        "/api/v1/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        """Health check endpoint for load balancers."""
        return HealthResponse(
            status="healthy",
            service="storyplay-engine",
            version=__version__,
        )

    @app.get("/", tags=["System"])
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Storyplay Engine API",
            "version": __version__,
            "docs": "/api/docs",
            "health": "/api/v1/health",
        }

    return app


# For running directly: uvicorn storyplay.api.app:app
app = create_app()
