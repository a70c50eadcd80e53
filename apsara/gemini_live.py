"""
Gemini Live Session Manager.

Wraps the google-genai Live API to provide a clean interface for
managing one upstream session with callbacks for messages and errors.
"""

import asyncio
import base64
import inspect
import logging
from typing import Any, Callable, Optional

from google import genai
from google.genai import types

from apsara.config import DEFAULT_LIVE_MODEL, DEFAULT_VOICE
from apsara.modality import Modality

logger = logging.getLogger(__name__)

INPUT_AUDIO_MIME_TYPE = "audio/pcm;rate=16000"


def to_live_tools(declarations: list[dict[str, Any]]) -> list[types.Tool]:
    """Convert registry declarations into Live API tool objects."""
    tools: list[types.Tool] = []
    functions: list[types.FunctionDeclaration] = []
    for declaration in declarations:
        if "google_search" in declaration:
            tools.append(types.Tool(google_search=types.GoogleSearch()))
            continue
        functions.append(
            types.FunctionDeclaration(
                name=declaration["name"],
                description=declaration.get("description", ""),
                parameters_json_schema=declaration.get("parameters") or {"type": "object", "properties": {}},
                behavior=(
                    types.Behavior.NON_BLOCKING
                    if declaration.get("behavior") == "NON_BLOCKING"
                    else None
                ),
            )
        )
    if functions:
        tools.append(types.Tool(function_declarations=functions))
    return tools


class LiveSession:
    """
    Manages a Gemini Live API session with callback-based event handling.

    Usage:
        session = LiveSession(api_key=..., modality=Modality.AUDIO)
        session.on_message = my_message_handler

        async with session:
            await session.send_audio(base64_audio)
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_LIVE_MODEL,
        modality: Modality = Modality.AUDIO,
        system_instruction: str = "",
        declarations: Optional[list[dict[str, Any]]] = None,
        voice: str = DEFAULT_VOICE,
        thinking_budget: int = 1024,
        client: Optional[genai.Client] = None,
    ):
        if not modality.is_terminal:
            raise ValueError("A session must be opened in AUDIO or TEXT modality")

        self.api_key = api_key
        self.model = model
        self.modality = modality
        self.system_instruction = system_instruction
        self.declarations = declarations or []
        self.voice = voice
        self.thinking_budget = thinking_budget
        self._client = client

        # Internal connection state
        self._context_manager = None
        self._session = None
        self._receive_task: Optional[asyncio.Task] = None
        self._connected = False

        # Callbacks (all optional)
        self.on_message: Optional[Callable[[types.LiveServerMessage], Any]] = None
        self.on_error: Optional[Callable[[str], Any]] = None
        self.on_close: Optional[Callable[[str], Any]] = None

    @property
    def connected(self) -> bool:
        return self._connected

    def build_config(self) -> types.LiveConnectConfig:
        """Session config for the current modality. Speech config only in AUDIO mode."""
        response_modality = types.Modality.AUDIO if self.modality is Modality.AUDIO else types.Modality.TEXT
        config: dict[str, Any] = {
            "response_modalities": [response_modality],
            "media_resolution": types.MediaResolution.MEDIA_RESOLUTION_HIGH,
            "tools": to_live_tools(self.declarations),
        }
        if self.system_instruction:
            config["system_instruction"] = types.Content(parts=[types.Part(text=self.system_instruction)])
        if self.thinking_budget > 0:
            config["thinking_config"] = types.ThinkingConfig(
                thinking_budget=self.thinking_budget,
                include_thoughts=True,
            )
        if self.modality is Modality.AUDIO:
            config["speech_config"] = types.SpeechConfig(
                voice_config=types.VoiceConfig(
                    prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=self.voice)
                )
            )
        return types.LiveConnectConfig(**config)

    async def connect(self) -> None:
        """Establish connection to the Live API."""
        if self._connected:
            return

        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)

        logger.info(
            "Connecting to Gemini Live: model=%s modality=%s tools=%d",
            self.model,
            self.modality.value,
            len(self.declarations),
        )
        self._context_manager = self._client.aio.live.connect(model=self.model, config=self.build_config())
        self._session = await self._context_manager.__aenter__()
        self._connected = True

        # Start event processing loop
        self._receive_task = asyncio.create_task(self._process_events())

    async def disconnect(self) -> None:
        """Close the Live API connection."""
        if self._receive_task:
            self._receive_task.cancel()
            try:
                await self._receive_task
            except asyncio.CancelledError:
                pass
            self._receive_task = None

        if self._context_manager:
            try:
                await self._context_manager.__aexit__(None, None, None)
            except Exception as e:
                logger.warning(f"Error closing Gemini session: {type(e).__name__}: {e}")
            self._context_manager = None
            self._session = None

        self._connected = False

    def _require_session(self):
        if not self._session:
            raise RuntimeError("Not connected. Call connect() first.")
        return self._session

    async def send_audio(self, audio_base64: str) -> None:
        """Send a base64 PCM16 16kHz audio chunk."""
        session = self._require_session()
        await session.send_realtime_input(
            audio=types.Blob(data=base64.b64decode(audio_base64), mime_type=INPUT_AUDIO_MIME_TYPE)
        )

    async def send_video(self, frame_base64: str, mime_type: str = "image/jpeg") -> None:
        """Send a base64 encoded screen or camera frame."""
        session = self._require_session()
        await session.send_realtime_input(
            video=types.Blob(data=base64.b64decode(frame_base64), mime_type=mime_type)
        )

    async def send_text(self, text: str) -> None:
        """Send a complete user turn."""
        session = self._require_session()
        await session.send_client_content(
            turns=types.Content(role="user", parts=[types.Part(text=text)]),
            turn_complete=True,
        )

    async def send_tool_responses(self, responses: list[dict[str, Any]]) -> None:
        """Send function results as ``{"id", "name", "response"}`` dicts."""
        session = self._require_session()
        await session.send_tool_response(
            function_responses=[
                types.FunctionResponse(id=r.get("id"), name=r["name"], response=r["response"])
                for r in responses
            ]
        )

    async def _process_events(self) -> None:
        """Process messages from the Live connection.

        ``receive()`` ends after each model turn, so it is re-entered until
        a pass yields nothing (connection closed).
        """
        reason = "Connection closed"
        try:
            while True:
                received = 0
                async for message in self._session.receive():
                    received += 1
                    if self.on_message:
                        await self._call_callback(self.on_message, message)
                if received == 0:
                    break
        except asyncio.CancelledError:
            raise
        except Exception as e:
            reason = str(e) or type(e).__name__
            logger.error(f"Gemini receive error: {type(e).__name__}: {e}")
            if self.on_error:
                await self._call_callback(self.on_error, reason)

        self._connected = False
        if self.on_close:
            await self._call_callback(self.on_close, reason)

    async def _call_callback(self, callback: Callable, *args) -> None:
        """Call a callback, handling both sync and async callbacks."""
        if inspect.iscoroutinefunction(callback):
            await callback(*args)
        else:
            callback(*args)

    # Async context manager support
    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()
        return False
