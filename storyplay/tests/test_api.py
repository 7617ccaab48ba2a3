"""
Tests for API layer.

Tests:
- API service methods
- Session lifecycle via API
- HTTP status codes and error codes
"""

import pytest

from ..api.schemas import (
    ActionRequest,
    CreateSessionRequest,
    ErrorCode,
    ErrorResponse,
    EventRequest,
    RegisterStoryRequest,
    SessionStatus,
    TickRequest,
)
from ..api.service import APIService
from ..errors import UnknownActionError


class TestAPIService:
    """Tests for APIService."""

    @pytest.fixture
    def service(self):
        """Create a fresh API service."""
        return APIService()

    @pytest.fixture
    def session_id(self, service, story_data):
        """Register the sample story and start a session."""
        service.register_story(RegisterStoryRequest(data=story_data, story_id="demo"))
        return service.create_session(CreateSessionRequest(story_id="demo")).session_id

    def test_register_story(self, service, story_data):
        response = service.register_story(RegisterStoryRequest(data=story_data, story_id="demo"))

        assert response.success
        assert response.story_id == "demo"
        assert response.section_count == 3
        assert response.step_count == 9
        assert service.get_story("demo") is not None

    def test_register_story_generates_id(self, service, story_data):
        response = service.register_story(RegisterStoryRequest(data=story_data))
        assert response.success
        assert len(response.story_id) == 12

    def test_register_invalid_story(self, service):
        response = service.register_story(RegisterStoryRequest(data={"story": {"scenes": {}}}))

        assert not response.success
        assert response.story_id is None
        assert response.errors

    def test_create_session(self, service, session_id):
        response = service.get_session(session_id)

        assert response.status == SessionStatus.ACTIVE
        assert response.story_id == "demo"
        assert response.position.step_id == "intro-1"
        assert response.preset_id == "read"
        assert response.render.state["dialogue"]["text"] == "Hello."

    def test_create_session_unknown_story(self, service):
        response = service.create_session(CreateSessionRequest(story_id="missing"))
        assert isinstance(response, ErrorResponse)
        assert response.error_code == ErrorCode.STORY_NOT_FOUND

    def test_handle_event(self, service, session_id):
        response = service.handle_event(session_id, EventRequest(event="LeftClick"))
        assert response.position.step_id == "intro-2"

    def test_handle_action(self, service, session_id):
        response = service.handle_action(
            session_id,
            ActionRequest(action="goToSectionScene", payload={"sectionId": "park"}),
        )
        assert response.position.section_id == "park"
        assert response.render.system["sectionId"] == "park"

    def test_engine_errors_propagate(self, service, session_id):
        with pytest.raises(UnknownActionError):
            service.handle_action(session_id, ActionRequest(action="fly"))

    def test_tick_runs_count_ticks(self, service, session_id):
        service.handle_action(session_id, ActionRequest(action="startAutoMode"))

        response = service.tick(session_id, TickRequest(delta_ms=500, count=4))

        assert response.auto_mode
        assert response.position.step_id == "intro-3"

    def test_get_render(self, service, session_id):
        render = service.get_render(session_id)
        assert render.system["stepId"] == "intro-1"
        assert [e["id"] for e in render.elements][0] == "bg-screen"

    def test_missing_session(self, service):
        for response in (
            service.get_session("nope"),
            service.get_render("nope"),
            service.handle_event("nope", EventRequest(event="LeftClick")),
            service.handle_action("nope", ActionRequest(action="nextStep")),
            service.tick("nope", TickRequest(delta_ms=16)),
        ):
            assert isinstance(response, ErrorResponse)
            assert response.error_code == ErrorCode.SESSION_NOT_FOUND

    def test_end_session(self, service, session_id):
        assert service.list_sessions() == [session_id]
        assert service.end_session(session_id)
        assert service.list_sessions() == []
        assert not service.end_session(session_id)


class TestHTTPEndpoints:
    """Tests for the FastAPI app."""

    @pytest.fixture
    def client(self):
        from fastapi.testclient import TestClient
        from ..api.app import create_app

        return TestClient(create_app(APIService()))

    @pytest.fixture
    def session_id(self, client, story_data):
        client.post("/api/v1/stories", json={"data": story_data, "story_id": "demo"})
        response = client.post("/api/v1/sessions", json={"story_id": "demo"})
        assert response.status_code == 200
        return response.json()["session_id"]

    def test_health(self, client):
        response = client.get("/api/v1/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_register_invalid_story(self, client):
        response = client.post("/api/v1/stories", json={"data": {"story": {"scenes": {}}}})

        assert response.status_code == 400
        body = response.json()
        assert body["error_code"] == "INVALID_STORY"
        assert body["details"]["errors"]

    def test_register_bad_story_id(self, client, story_data):
        response = client.post("/api/v1/stories", json={"data": story_data, "story_id": "a/b"})
        assert response.status_code == 422

    def test_unknown_story(self, client):
        response = client.post("/api/v1/sessions", json={"story_id": "missing"})
        assert response.status_code == 404
        assert response.json()["error_code"] == "STORY_NOT_FOUND"

    def test_play_flow(self, client, session_id):
        response = client.post(f"/api/v1/sessions/{session_id}/events", json={"event": "LeftClick"})
        assert response.status_code == 200
        assert response.json()["position"]["step_id"] == "intro-2"

        client.post(f"/api/v1/sessions/{session_id}/events", json={"event": "LeftClick"})
        response = client.post(
            f"/api/v1/sessions/{session_id}/tick", json={"delta_ms": 100, "count": 5}
        )
        assert response.json()["position"]["step_id"] == "intro-4"

        render = client.get(f"/api/v1/sessions/{session_id}/render").json()
        assert render["state"]["dialogue"]["text"] == "Off we go."

    def test_actions_event_batch(self, client, session_id):
        response = client.post(
            f"/api/v1/sessions/{session_id}/events",
            json={"event": "Actions", "payload": {"actions": {"goToSectionScene": {"sectionId": "park"}}}},
        )
        assert response.json()["position"]["section_id"] == "park"

    def test_unknown_action(self, client, session_id):
        response = client.post(f"/api/v1/sessions/{session_id}/actions", json={"action": "fly"})

        assert response.status_code == 422
        body = response.json()
        assert body["error_code"] == "UNKNOWN_ACTION"
        assert body["details"] == {"action": "fly"}

    def test_unknown_section(self, client, session_id):
        response = client.post(
            f"/api/v1/sessions/{session_id}/actions",
            json={"action": "goToSectionScene", "payload": {"sectionId": "nowhere"}},
        )
        assert response.status_code == 404
        assert response.json()["error_code"] == "NOT_FOUND"

    def test_invalid_payload(self, client, session_id):
        response = client.post(
            f"/api/v1/sessions/{session_id}/actions",
            json={"action": "pushLayeredView", "payload": {}},
        )
        assert response.status_code == 422
        assert response.json()["error_code"] == "INVALID_PAYLOAD"

    def test_non_object_action_payload(self, client, session_id):
        response = client.post(
            f"/api/v1/sessions/{session_id}/events",
            json={"event": "Actions", "payload": {"actions": {"nextStep": True}}},
        )
        assert response.status_code == 422
        assert response.json()["error_code"] == "INVALID_PAYLOAD"

    def test_register_malformed_story(self, client, story_data):
        story_data["story"]["scenes"]["scene-intro"]["sections"]["intro"]["steps"].append("oops")

        response = client.post("/api/v1/stories", json={"data": story_data})

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_STORY"

    def test_session_lifecycle(self, client, session_id):
        listed = client.get("/api/v1/sessions").json()
        assert listed == {"sessions": [session_id], "count": 1}

        response = client.delete(f"/api/v1/sessions/{session_id}")
        assert response.json() == {"success": True, "session_id": session_id}

        response = client.get(f"/api/v1/sessions/{session_id}")
        assert response.status_code == 404
        assert response.json()["error_code"] == "SESSION_NOT_FOUND"

    def test_missing_session_events(self, client):
        response = client.post("/api/v1/sessions/nope/events", json={"event": "LeftClick"})
        assert response.status_code == 404
