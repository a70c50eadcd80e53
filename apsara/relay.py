"""
Message relay between the client WebSocket and the upstream Live session.

Inbound client frames are forwarded when the modality policy allows it and
dropped with a warning otherwise. Upstream messages are reduced to the audio
or text payload for the current modality, tool calls are executed and their
results sent back upstream before the envelope goes to the client.
"""

import asyncio
import base64
import binascii
import itertools
import logging
import time
from collections import deque
from datetime import datetime
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

from apsara.bridge import SessionBridge
from apsara.logging_config import debug_enabled
from apsara.modality import FrameType, Modality, frame_allowed, parse_modality
from apsara.tool_handler import ToolExecutor

logger = logging.getLogger(__name__)

SendJson = Callable[[dict[str, Any]], Awaitable[None]]


class DebugFrameRecorder:
    """Keeps the last few screen and camera frames on disk for debugging."""

    def __init__(self, directory: Path, keep: int = 2, enabled: bool = True):
        self.directory = Path(directory)
        self.enabled = enabled
        self._recent: dict[str, deque] = {}
        self._keep = keep
        self._sequence = itertools.count()

    def save(self, kind: str, frame_base64: str) -> Optional[Path]:
        if not self.enabled:
            return None
        try:
            data = base64.b64decode(frame_base64)
            self.directory.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S")
            path = self.directory / f"{kind}_{stamp}_{next(self._sequence):05d}.jpg"
            path.write_bytes(data)
        except (binascii.Error, ValueError, OSError) as e:
            logger.error(f"Error saving {kind} frame: {e}")
            return None

        recent = self._recent.setdefault(kind, deque())
        recent.append(path)
        while len(recent) > self._keep:
            recent.popleft().unlink(missing_ok=True)
        return path


class MessageRelay:
    """Relays one client connection to its upstream session."""

    def __init__(
        self,
        bridge: SessionBridge,
        executor: ToolExecutor,
        send_json: SendJson,
        frame_recorder: Optional[DebugFrameRecorder] = None,
    ):
        self.bridge = bridge
        self.executor = executor
        self._send_json = send_json
        self.frame_recorder = frame_recorder
        self.dropped_frames = 0
        self._switch_task: Optional[asyncio.Task] = None

        self._frame_handlers: dict[FrameType, Callable[[dict[str, Any]], Awaitable[None]]] = {
            FrameType.AUDIO: self._forward_audio,
            FrameType.VIDEO: self._forward_video,
            FrameType.CAMERA: self._forward_camera,
            FrameType.TEXT: self._forward_text,
            FrameType.INTERRUPT: self._handle_interrupt,
            FrameType.SET_MODALITY: self._handle_set_modality,
        }

    async def send(self, payload: dict[str, Any]) -> None:
        """Send to the client; a closed socket is logged, not raised."""
        try:
            await self._send_json(payload)
        except Exception as e:
            logger.warning(f"Could not send {payload.get('type')} to client: {type(e).__name__}: {e}")

    # Client -> upstream

    async def handle_client_frame(self, frame: dict[str, Any]) -> None:
        raw_type = frame.get("type") if isinstance(frame, dict) else None
        try:
            frame_type = FrameType(raw_type)
        except ValueError:
            logger.warning("Ignoring client frame with unknown type: %r", raw_type)
            return

        state = self.bridge.state
        if not frame_allowed(frame_type, state):
            self.dropped_frames += 1
            logger.warning("REJECTED %s frame (current mode: %s)", frame_type.value, state.value)
            return

        await self._frame_handlers[frame_type](frame)

    def _upstream(self, frame_type: FrameType):
        session = self.bridge.session
        if session is None:
            self.dropped_frames += 1
            logger.warning("Dropping %s frame, no upstream session", frame_type.value)
        return session

    async def _forward_audio(self, frame: dict[str, Any]) -> None:
        data = frame.get("data")
        session = self._upstream(FrameType.AUDIO)
        if not data or session is None:
            return
        if debug_enabled("relay"):
            logger.debug("Forwarding audio to Gemini (%d chars)", len(data))
        try:
            await session.send_audio(data)
        except Exception as e:
            logger.error(f"Error sending audio to Gemini: {type(e).__name__}: {e}")

    async def _forward_frame(self, frame: dict[str, Any], frame_type: FrameType, kind: str) -> None:
        data = frame.get("data")
        session = self._upstream(frame_type)
        if not data or session is None:
            return
        if self.frame_recorder:
            self.frame_recorder.save(kind, data)
        if debug_enabled("relay"):
            logger.debug("Forwarding %s frame to Gemini", kind)
        try:
            await session.send_video(data, frame.get("mimeType") or "image/jpeg")
        except Exception as e:
            logger.error(f"Error sending {kind} frame to Gemini: {type(e).__name__}: {e}")

    async def _forward_video(self, frame: dict[str, Any]) -> None:
        await self._forward_frame(frame, FrameType.VIDEO, "screen")

    async def _forward_camera(self, frame: dict[str, Any]) -> None:
        await self._forward_frame(frame, FrameType.CAMERA, "camera")

    async def _forward_text(self, frame: dict[str, Any]) -> None:
        text = frame.get("text")
        session = self._upstream(FrameType.TEXT)
        if not text or session is None:
            return
        logger.info("Forwarding text to Gemini (%s mode)", self.bridge.state.value)
        try:
            await session.send_text(str(text))
        except Exception as e:
            logger.error(f"Error sending text to Gemini: {type(e).__name__}: {e}")

    async def _handle_interrupt(self, frame: dict[str, Any]) -> None:
        logger.info("Interrupt signal received")
        await self.send({"type": "interrupted", "timestamp": int(time.time() * 1000)})

    async def _handle_set_modality(self, frame: dict[str, Any]) -> None:
        try:
            target = parse_modality(frame.get("modality"))
        except ValueError as e:
            await self.send({"type": "error", "error": str(e)})
            return

        if self.bridge.switching:
            await self.send({"type": "error", "error": "Modality switch already in progress"})
            return

        # modality_changed must reach the client before the new session's status frame
        await self.send({"type": "modality_changed", "modality": target.value})
        task = self.bridge.request_switch(target)
        if task is not None:
            self._switch_task = asyncio.create_task(self._await_switch(task, target))

    async def _await_switch(self, task: asyncio.Task, target: Modality) -> None:
        try:
            await task
        except asyncio.CancelledError:
            raise
        except Exception as e:
            await self.send({"type": "error", "error": f"Failed to switch to {target.value}: {e}"})

    async def wait_for_switch(self) -> None:
        """Wait for a pending modality switch to finish (errors are already reported)."""
        if self._switch_task is not None:
            await asyncio.gather(self._switch_task, return_exceptions=True)

    # Upstream -> client

    async def handle_upstream_open(self, modality: Modality) -> None:
        await self.send({"type": "status", "status": "connected", "modality": modality.value})

    async def handle_upstream_error(self, error: str) -> None:
        logger.error("Gemini error: %s", error)
        await self.send({"type": "error", "error": error})

    async def handle_upstream_close(self, reason: str) -> None:
        logger.info("Gemini connection closed: %s", reason)
        await self.send({"type": "status", "status": "disconnected", "reason": reason})

    async def handle_upstream_message(self, message: Any) -> None:
        state = self.bridge.state
        audio_chunks: list[bytes] = []
        text_chunks: list[str] = []

        server_content = getattr(message, "server_content", None)
        model_turn = getattr(server_content, "model_turn", None) if server_content else None
        for part in (getattr(model_turn, "parts", None) or []):
            if getattr(part, "thought", None):
                if part.text:
                    logger.info("Gemini thought: %s", part.text)
                continue
            inline = getattr(part, "inline_data", None)
            if state is Modality.AUDIO and inline is not None and inline.data:
                if inline.mime_type and "audio" in inline.mime_type:
                    audio_chunks.append(inline.data)
            elif state is Modality.TEXT and part.text:
                text_chunks.append(part.text)

        tool_call = getattr(message, "tool_call", None)
        function_calls = getattr(tool_call, "function_calls", None) if tool_call else None
        if function_calls:
            await self._run_tool_calls(function_calls)

        audio_data = base64.b64encode(b"".join(audio_chunks)).decode("ascii") if audio_chunks else None
        text_data = "".join(text_chunks) if text_chunks else None
        if debug_enabled("relay") and (audio_data or text_data):
            logger.debug(
                "Relaying %s",
                f"audio ({len(audio_data)} chars)" if audio_data else f"text: {text_data[:100]}",
            )

        data = _serialize(message)
        data["data"] = audio_data
        data["text"] = text_data
        await self.send({"type": "gemini_message", "data": data})

    async def _run_tool_calls(self, function_calls: list[Any]) -> None:
        responses = []
        for fc in function_calls:
            args = dict(fc.args or {})
            result = await self.executor.handle_tool_call(fc.name, args)
            responses.append({"id": fc.id, "name": fc.name, "response": result})
            await self._emit_side_channel(fc.name, result)

        session = self.bridge.session
        if session is None:
            logger.warning("Tool results for %d call(s) lost, no upstream session", len(responses))
            return
        try:
            await session.send_tool_responses(responses)
        except Exception as e:
            logger.error(f"Error sending tool response to Gemini: {type(e).__name__}: {e}")

    async def _emit_side_channel(self, name: str, result: dict[str, Any]) -> None:
        if not result.get("success"):
            return
        if name == "generate_image" and result.get("base64Image"):
            logger.info("Broadcasting generated image to client")
            await self.send(
                {
                    "type": "generated_image",
                    "data": {
                        key: result.get(key)
                        for key in (
                            "base64Image",
                            "filename",
                            "filepath",
                            "model",
                            "aspectRatio",
                            "imageSize",
                            "fileSize",
                            "mimeType",
                        )
                    },
                }
            )
        elif name == "share_screen" and result.get("action") == "start_screen_share":
            await self.send({"type": "trigger_screen_share", "data": {"resolution": result.get("resolution")}})
        elif name == "share_camera" and result.get("action") == "start_camera":
            await self.send({"type": "trigger_camera_share", "data": {"resolution": result.get("resolution")}})
        elif name == "change_theme" and result.get("action") == "change_theme":
            await self.send({"type": "trigger_theme_change", "data": {"theme": result.get("theme")}})


def _serialize(message: Any) -> dict[str, Any]:
    """JSON-safe dict of an upstream message (bytes become base64)."""
    dump = getattr(message, "model_dump", None)
    if dump is None:
        return {}
    data = dump(mode="json", exclude_none=True)
    return data if isinstance(data, dict) else {}
