"""Shared fixtures for the Apsara Live backend tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from apsara.config import Settings
from apsara.email_tools import Mailer
from apsara.image_tools import ImageGenerator
from apsara.memory_store import MemoryStore
from apsara.registry import ToolRegistry
from apsara.tool_handler import ToolContext, ToolExecutor


@pytest.fixture
def settings(tmp_path):
    return Settings(
        gemini_api_key="",
        email_user="assistant@example.com",
        email_app_password="app-password",
        email_recipient="owner@example.com",
        memory_file=tmp_path / "data" / "memories.json",
        generated_images_dir=tmp_path / "images",
        debug_frames_dir=tmp_path / "frames",
        shell_timeout_seconds=5.0,
        modality_switch_delay_seconds=0.0,
    )


@pytest.fixture
def registry():
    return ToolRegistry.with_defaults()


@pytest.fixture
def mailer():
    mock = MagicMock(spec=Mailer)
    mock.send = AsyncMock(
        return_value={"success": True, "messageId": "<1@apsara.local>", "recipient": "owner@example.com"}
    )
    return mock


@pytest.fixture
def images():
    mock = MagicMock(spec=ImageGenerator)
    mock.generate = AsyncMock(
        return_value={
            "success": True,
            "base64Image": "aW1hZ2U=",
            "filename": "image_1.png",
            "filepath": "/tmp/image_1.png",
            "model": "gemini-2.5-flash-image",
            "aspectRatio": "1:1",
            "imageSize": "1K",
            "fileSize": 5,
            "mimeType": "image/png",
        }
    )
    return mock


@pytest.fixture
def tool_context(settings, mailer, images):
    return ToolContext(
        settings=settings,
        memory=MemoryStore(settings.memory_file),
        mailer=mailer,
        images=images,
    )


@pytest.fixture
def executor(registry, tool_context):
    return ToolExecutor(registry, tool_context)


class FakeUpstream:
    """Stands in for LiveSession behind a SessionBridge."""

    def __init__(self, modality, fail=False):
        self.modality = modality
        self.fail = fail
        self.connected = False
        self.send_audio = AsyncMock()
        self.send_video = AsyncMock()
        self.send_text = AsyncMock()
        self.send_tool_responses = AsyncMock()

    async def connect(self):
        if self.fail:
            raise ConnectionError(f"{self.modality.value} session refused")
        self.connected = True

    async def disconnect(self):
        self.connected = False


class FakeUpstreamFactory:
    def __init__(self):
        self.created = []
        self.failing = set()

    def __call__(self, modality):
        session = FakeUpstream(modality, fail=modality in self.failing)
        self.created.append(session)
        return session


@pytest.fixture
def upstream_factory():
    return FakeUpstreamFactory()
