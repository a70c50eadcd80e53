"""
Tests for apsara/server.py.

HTTP endpoints go through the FastAPI TestClient. For the WebSocket relay
the Gemini Live session class is replaced with a stub so no network is used.
"""

from dataclasses import replace
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from apsara.modality import Modality
from apsara.server import create_app


class StubLiveSession:
    instances: list["StubLiveSession"] = []

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.modality = kwargs["modality"]
        self.connected = False
        self.on_message = None
        self.on_error = None
        self.on_close = None
        self.send_audio = AsyncMock()
        self.send_video = AsyncMock()
        self.send_text = AsyncMock()
        self.send_tool_responses = AsyncMock()
        StubLiveSession.instances.append(self)

    async def connect(self):
        self.connected = True

    async def disconnect(self):
        self.connected = False


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def live_app(settings, monkeypatch):
    StubLiveSession.instances = []
    monkeypatch.setattr("apsara.server.LiveSession", StubLiveSession)
    return create_app(replace(settings, gemini_api_key="test-key"))


class TestHealthEndpoint:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "service": "Apsara Live Backend"}

    def test_module_level_app_exists(self):
        from apsara.server import app

        assert app is not None


class TestToolEndpoints:

    def test_get_tools(self, client, app):
        data = client.get("/api/tools").json()

        assert data["success"] is True
        assert len(data["tools"]) == len(app.state.registry)

    def test_update_enabled_flags(self, client, app):
        response = client.post("/api/tools/update", json={"tools": {"read_file": True, "open_url": False}})

        assert response.status_code == 200
        tools = {t["id"]: t for t in response.json()["tools"]}
        assert tools["read_file"]["enabled"] is True
        assert tools["open_url"]["enabled"] is False
        assert app.state.registry.is_enabled("read_file")

    def test_update_order_and_async(self, client):
        response = client.post(
            "/api/tools/update",
            json={"order": ["change_theme"], "asyncSettings": {"change_theme": True}},
        )

        tools = response.json()["tools"]
        assert tools[0]["id"] == "change_theme"
        assert tools[0]["async"] is True

    def test_update_image_model(self, client, app):
        response = client.post("/api/tools/update", json={"imageModel": "pro"})

        assert response.status_code == 200
        assert app.state.registry.image_model == "pro"

    def test_invalid_image_model(self, client, app):
        response = client.post("/api/tools/update", json={"imageModel": "ultra"})

        assert response.status_code == 400
        assert app.state.registry.image_model == "flash"


class TestEmailEndpoints:

    def test_send_test_email(self, client, app):
        app.state.mailer.send = AsyncMock(return_value={"success": True, "messageId": "<x>"})

        response = client.post("/test-email", json={"message": "ping"})

        assert response.json()["success"] is True
        assert app.state.mailer.send.await_args.args[0] == "ping"

    def test_email_image_requires_fields(self, client, app):
        app.state.mailer.send = AsyncMock()

        response = client.post("/api/email-image", json={"filename": "a.png"})

        assert response.status_code == 400
        app.state.mailer.send.assert_not_awaited()

    def test_email_image(self, client, app):
        app.state.mailer.send = AsyncMock(return_value={"success": True, "messageId": "<x>"})

        response = client.post("/api/email-image", json={"base64Image": "aW1n", "filename": "fox.png"})

        assert response.status_code == 200
        args = app.state.mailer.send.await_args.args
        assert args[2:] == ("aW1n", "fox.png", "image/png")


class TestWebSocketWithoutKey:

    @pytest.mark.parametrize("path", ["/", "/ws"])
    def test_sends_error_then_answers_interrupt(self, client, path):
        with client.websocket_connect(path) as websocket:
            error = websocket.receive_json()
            assert error["type"] == "error"
            assert "GEMINI_API_KEY" in error["error"]

            websocket.send_json({"type": "audio", "data": "AAAA"})
            websocket.send_json({"type": "interrupt"})

            assert websocket.receive_json()["type"] == "interrupted"


class TestWebSocketRelay:

    def test_session_opened_with_registry_state(self, live_app):
        live_app.state.registry.set_enabled({"open_url": False})
        client = TestClient(live_app)

        with client.websocket_connect("/") as websocket:
            status = websocket.receive_json()

        assert status == {"type": "status", "status": "connected", "modality": "AUDIO"}
        kwargs = StubLiveSession.instances[0].kwargs
        assert kwargs["api_key"] == "test-key"
        assert kwargs["declarations"] == live_app.state.registry.get_declarations()
        assert "Apsara" in kwargs["system_instruction"]

    def test_audio_relayed_and_malformed_frames_ignored(self, live_app):
        client = TestClient(live_app)

        with client.websocket_connect("/ws") as websocket:
            websocket.receive_json()
            websocket.send_text("this is not json")
            websocket.send_json(["not", "an", "object"])
            websocket.send_json({"type": "audio", "data": "AAAA"})
            websocket.send_json({"type": "interrupt"})

            assert websocket.receive_json()["type"] == "interrupted"

        StubLiveSession.instances[0].send_audio.assert_awaited_once_with("AAAA")

    def test_set_modality_opens_text_session(self, live_app):
        client = TestClient(live_app)

        with client.websocket_connect("/") as websocket:
            websocket.receive_json()
            websocket.send_json({"type": "set_modality", "modality": "TEXT"})

            assert websocket.receive_json() == {"type": "modality_changed", "modality": "TEXT"}
            assert websocket.receive_json() == {"type": "status", "status": "connected", "modality": "TEXT"}

            websocket.send_json({"type": "text", "text": "hello"})
            websocket.send_json({"type": "interrupt"})
            websocket.receive_json()

        first, second = StubLiveSession.instances
        assert first.modality is Modality.AUDIO
        assert first.connected is False
        assert second.modality is Modality.TEXT
        second.send_text.assert_awaited_once_with("hello")
