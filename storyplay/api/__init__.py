"""
API Module - HTTP interface for story players.

Exposes the engine via REST API. A player:
1. Registers story data
2. Starts a play session
3. Forwards renderer events and elapsed time
4. Draws the render elements it gets back

All play state is session-scoped; only save slots and local variables
are persisted.
"""

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
from .service import APIService
from .app import create_app

__all__ = [
    # Requests
    "RegisterStoryRequest",
    "CreateSessionRequest",
    "EventRequest",
    "ActionRequest",
    "TickRequest",
    # Responses
    "RegisterStoryResponse",
    "SessionResponse",
    "ErrorResponse",
    # Shared
    "PositionInfo",
    "RenderInfo",
    # Enums
    "ErrorCode",
    "SessionStatus",
    # Service
    "APIService",
    "create_app",
]
