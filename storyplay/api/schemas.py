"""
Pydantic Schemas for API - Request/response models for OpenAPI.

These models define the contract between a story player front end and
the engine. Story data, presentation state and render elements are
free-form JSON and are typed as dicts.

Error Codes:
- SESSION_NOT_FOUND: Session does not exist or has ended
- STORY_NOT_FOUND: Story ID was never registered
- INVALID_STORY: Story data failed validation
- NOT_FOUND: A section, step or preset id does not exist in the story
- UNKNOWN_ACTION: Action name is not known to the engine
- INVALID_PAYLOAD: Action payload is missing fields or has bad values
- NAVIGATION_LOOP: goToSectionScene redirects never settle
"""

from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, Field


# =============================================================================
# Enums
# =============================================================================

class SessionStatus(str, Enum):
    """Session status values."""
    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class ErrorCode(str, Enum):
    """Structured error codes."""
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    STORY_NOT_FOUND = "STORY_NOT_FOUND"
    INVALID_STORY = "INVALID_STORY"
    NOT_FOUND = "NOT_FOUND"
    UNKNOWN_ACTION = "UNKNOWN_ACTION"
    INVALID_PAYLOAD = "INVALID_PAYLOAD"
    NAVIGATION_LOOP = "NAVIGATION_LOOP"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# =============================================================================
# Shared Models
# =============================================================================

class PositionInfo(BaseModel):
    """Where the engine currently is."""
    mode: str = Field(description="read, menu or history")
    section_id: Optional[str] = None
    step_id: Optional[str] = None


class RenderInfo(BaseModel):
    """One render of the story."""
    render_id: str
    state: dict[str, Any] = Field(default_factory=dict, description="Populated presentation slots")
    elements: list[dict[str, Any]] = Field(default_factory=list)
    transitions: list[dict[str, Any]] = Field(default_factory=list)
    scope_changed: bool = True
    system: dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# Request Models
# =============================================================================

class RegisterStoryRequest(BaseModel):
    """Request to register story data for play."""
    data: dict[str, Any] = Field(..., description="Authored story data")
    story_id: Optional[str] = Field(
        None,
        pattern=r"^[A-Za-z0-9_-]{1,64}$",
        description="Stable ID; generated when omitted",
    )


class CreateSessionRequest(BaseModel):
    """Request to start a play session."""
    story_id: str = Field(..., description="ID returned when the story was registered")


class EventRequest(BaseModel):
    """An inbound event such as LeftClick, or the Actions batch event."""
    event: str = Field(..., description="Event name mapped through the current preset")
    payload: Optional[dict[str, Any]] = Field(None, description="Event payload")


class ActionRequest(BaseModel):
    """A single named action."""
    action: str = Field(..., description="Action name, e.g. nextStep")
    payload: Optional[dict[str, Any]] = Field(None, description="Action payload")


class TickRequest(BaseModel):
    """Advance session time."""
    delta_ms: float = Field(..., ge=0, description="Elapsed milliseconds")
    count: int = Field(1, ge=1, le=10000, description="Number of ticks of delta_ms")


# =============================================================================
# Response Models
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    details: Optional[dict[str, Any]] = Field(None, description="Additional error context")
    api_version: str = Field("v1", description="API version")


class RegisterStoryResponse(BaseModel):
    """Response from registering a story."""
    success: bool
    story_id: Optional[str] = None
    section_count: int = 0
    step_count: int = 0
    warnings: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    api_version: str = "v1"


class SessionResponse(BaseModel):
    """Response containing session information."""
    session_id: str
    story_id: str
    status: SessionStatus
    position: PositionInfo
    preset_id: Optional[str] = None
    auto_mode: bool = False
    skip_mode: bool = False
    created_at: float = 0.0
    render: Optional[RenderInfo] = None
    api_version: str = "v1"


class SessionListResponse(BaseModel):
    """Response listing active sessions."""
    sessions: list[str]
    count: int


class EndSessionResponse(BaseModel):
    """Response after ending a session."""
    success: bool
    session_id: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
