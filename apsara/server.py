"""
FastAPI server for the Apsara Live backend.

Provides:
- /health endpoint for health checks
- /api/tools endpoints to inspect and reconfigure the tool registry
- /test-email and /api/email-image helpers for the email tool
- / (alias /ws) WebSocket endpoint relaying a client to Gemini Live
"""

import json
import logging
import sys
import time
from typing import Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from apsara.bridge import SessionBridge
from apsara.config import ConfigurationError, Settings, load_settings
from apsara.email_tools import Mailer
from apsara.gemini_live import LiveSession
from apsara.image_tools import ImageGenerator
from apsara.logging_config import configure_logging
from apsara.memory_store import MemoryStore
from apsara.modality import Modality
from apsara.prompts import generate_system_prompt
from apsara.registry import ToolRegistry
from apsara.relay import DebugFrameRecorder, MessageRelay
from apsara.tool_handler import ToolContext, ToolExecutor

logger = logging.getLogger(__name__)

SERVICE_NAME = "Apsara Live Backend"


class ToolUpdateRequest(BaseModel):
    tools: Optional[dict[str, bool]] = None
    order: Optional[list[str]] = None
    asyncSettings: Optional[dict[str, bool]] = None
    imageModel: Optional[str] = None


class EmailTestRequest(BaseModel):
    message: Optional[str] = None


class EmailImageRequest(BaseModel):
    base64Image: Optional[str] = None
    filename: Optional[str] = None
    mimeType: Optional[str] = None


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application. State shared by all connections lives on ``app.state``."""
    settings = settings or load_settings()

    app = FastAPI(title="Apsara Live API")
    app.state.settings = settings
    app.state.registry = ToolRegistry.with_defaults()
    app.state.memory = MemoryStore(settings.memory_file)
    app.state.mailer = Mailer(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.allowed_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "ok", "service": SERVICE_NAME}

    @app.get("/api/tools")
    async def get_tools(request: Request):
        return {"success": True, "tools": request.app.state.registry.get_all()}

    @app.post("/api/tools/update")
    async def update_tools(update: ToolUpdateRequest, request: Request):
        """Reconfigure tools. Takes effect for upstream sessions opened afterwards."""
        registry: ToolRegistry = request.app.state.registry
        if update.imageModel is not None:
            try:
                registry.image_model = update.imageModel
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
        if update.tools:
            registry.set_enabled(update.tools)
        if update.asyncSettings:
            registry.set_async(update.asyncSettings)
        if update.order:
            registry.set_order(update.order)

        logger.info("Tool configuration updated: %d enabled", len(registry.enabled_ids()))
        return {
            "success": True,
            "tools": registry.get_all(),
            "message": "Tools updated. Changes apply to the next session.",
        }

    @app.post("/test-email")
    async def test_email(body: EmailTestRequest, request: Request):
        message = body.message or "This is a test email from Apsara Live."
        return await request.app.state.mailer.send(message, "Test email from the backend")

    @app.post("/api/email-image")
    async def email_image(body: EmailImageRequest, request: Request):
        if not body.base64Image or not body.filename:
            raise HTTPException(status_code=400, detail="Missing required fields: base64Image, filename")
        return await request.app.state.mailer.send(
            f"Generated image: {body.filename}",
            "Sent from the image gallery",
            body.base64Image,
            body.filename,
            body.mimeType or "image/png",
        )

    async def websocket_endpoint(websocket: WebSocket):
        """WebSocket endpoint relaying one client to one upstream session."""
        await websocket.accept()
        state = websocket.app.state

        if not state.settings.gemini_api_key:
            await _serve_without_upstream(websocket)
            return

        context = ToolContext(
            settings=state.settings,
            memory=state.memory,
            mailer=state.mailer,
            images=ImageGenerator(state.settings),
        )
        executor = ToolExecutor(state.registry, context)
        relay: Optional[MessageRelay] = None

        def make_session(modality: Modality) -> LiveSession:
            # Prompt and declarations reflect the registry at open time
            session = LiveSession(
                api_key=state.settings.gemini_api_key,
                model=state.settings.live_model,
                modality=modality,
                system_instruction=generate_system_prompt(state.registry, state.settings.assistant_owner),
                declarations=state.registry.get_declarations(),
                voice=state.settings.voice,
                thinking_budget=state.settings.thinking_budget,
            )
            session.on_message = relay.handle_upstream_message
            session.on_error = relay.handle_upstream_error
            session.on_close = relay.handle_upstream_close
            return session

        bridge = SessionBridge(make_session, switch_delay=state.settings.modality_switch_delay_seconds)
        relay = MessageRelay(
            bridge,
            executor,
            websocket.send_json,
            DebugFrameRecorder(state.settings.debug_frames_dir, enabled=state.settings.save_debug_frames),
        )
        bridge.on_open = relay.handle_upstream_open

        try:
            try:
                await bridge.start(Modality.AUDIO)
            except Exception as e:
                logger.error(f"Failed to connect to Gemini Live: {type(e).__name__}: {e}")
                await relay.send({"type": "error", "error": f"Failed to connect to Gemini Live: {e}"})

            while True:
                raw = await websocket.receive_text()
                try:
                    frame = json.loads(raw)
                except json.JSONDecodeError as e:
                    logger.warning(f"Ignoring malformed client frame: {e}")
                    continue
                if not isinstance(frame, dict):
                    logger.warning("Ignoring non-object client frame")
                    continue
                await relay.handle_client_frame(frame)

        except WebSocketDisconnect:
            logger.info("Client disconnected")
        except Exception as e:
            logger.error(f"WebSocket error: {type(e).__name__}: {e}")
        finally:
            await bridge.close()

    app.add_api_websocket_route("/", websocket_endpoint)
    app.add_api_websocket_route("/ws", websocket_endpoint)

    return app


async def _serve_without_upstream(websocket: WebSocket) -> None:
    """Without an API key only interrupts are answered."""
    await websocket.send_json(
        {"type": "error", "error": "Gemini API key not configured. Set GEMINI_API_KEY."}
    )
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                frame = json.loads(raw)
            except json.JSONDecodeError:
                continue
            if isinstance(frame, dict) and frame.get("type") == "interrupt":
                await websocket.send_json({"type": "interrupted", "timestamp": int(time.time() * 1000)})
    except WebSocketDisconnect:
        pass


def run() -> None:
    """Console entry point."""
    configure_logging()
    settings = load_settings()
    try:
        settings.require_api_key()
    except ConfigurationError as e:
        logger.error(str(e))
        sys.exit(1)

    logger.info("Starting %s on %s:%d", SERVICE_NAME, settings.host, settings.port)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


app = create_app()


if __name__ == "__main__":
    run()
