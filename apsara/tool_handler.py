"""Tool call executor routing Gemini Live function calls to tool implementations."""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

from apsara import file_tools, system_tools, ui_tools
from apsara.config import Settings
from apsara.email_tools import Mailer
from apsara.image_tools import ImageGenerator
from apsara.logging_config import debug_enabled, log_tool_call
from apsara.memory_store import MemoryStore
from apsara.registry import ToolRegistry
from apsara.screenshot_cache import LAST_SCREENSHOT_PLACEHOLDER, Screenshot, ScreenshotCache

# Configure logging
logger = logging.getLogger(__name__)

# OpenTelemetry tracing (optional)
tracer = None
try:
    if os.getenv("APPLICATIONINSIGHTS_CONNECTION_STRING") or os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT"):
        from opentelemetry import trace
        tracer = trace.get_tracer(__name__)
except ImportError:
    pass

Handler = Callable[[dict[str, Any]], Awaitable[dict[str, Any]]]


def _record_tool_event(tool: str, success: bool, **extra):
    """Record a telemetry span for a tool call."""
    if tracer:
        with tracer.start_as_current_span(f"tool.{tool}") as span:
            span.set_attribute("tool.name", tool)
            span.set_attribute("tool.success", success)
            for key, value in extra.items():
                span.set_attribute(f"tool.{key}", value)


@dataclass
class ToolContext:
    """Services the tools operate on. One per client connection."""

    settings: Settings
    memory: MemoryStore
    mailer: Mailer
    images: ImageGenerator
    screenshots: ScreenshotCache = field(default_factory=ScreenshotCache)

    @classmethod
    def create(cls, settings: Settings, memory: Optional[MemoryStore] = None) -> "ToolContext":
        return cls(
            settings=settings,
            memory=memory or MemoryStore(settings.memory_file),
            mailer=Mailer(settings),
            images=ImageGenerator(settings),
        )


def _missing(*names: str) -> dict[str, Any]:
    return {"success": False, "error": f"Missing required arguments: {', '.join(names)}"}


class ToolExecutor:
    """
    Executes tool calls requested by the model.

    ``handle_tool_call`` never raises: unknown or disabled tools and any
    exception from a tool come back as ``{"success": False, "error": ...}``.
    """

    def __init__(self, registry: ToolRegistry, context: ToolContext):
        self.registry = registry
        self.context = context
        self._handlers: dict[str, Handler] = {
            "send_email": self._handle_send_email,
            "take_screenshot": self._handle_take_screenshot,
            "screenshot_and_email": self._handle_screenshot_and_email,
            "copy_to_clipboard": self._handle_copy_to_clipboard,
            "get_clipboard_text": self._handle_get_clipboard_text,
            "paste_from_clipboard": self._handle_paste_from_clipboard,
            "store_memory": self._handle_store_memory,
            "retrieve_memories": self._handle_retrieve_memories,
            "clear_memories": self._handle_clear_memories,
            "read_file": self._handle_read_file,
            "browse_files": self._handle_browse_files,
            "create_file": self._handle_create_file,
            "edit_file": self._handle_edit_file,
            "move_file": self._handle_move_file,
            "rename_file": self._handle_rename_file,
            "delete_file": self._handle_delete_file,
            "open_url": self._handle_open_url,
            "generate_image": self._handle_generate_image,
            "computer_use": self._handle_computer_use,
            "share_screen": self._handle_share_screen,
            "share_camera": self._handle_share_camera,
            "change_theme": self._handle_change_theme,
        }

    @property
    def _timeout(self) -> float:
        return self.context.settings.shell_timeout_seconds

    async def handle_tool_call(self, name: str, arguments: Optional[dict[str, Any]]) -> dict[str, Any]:
        """
        Handle a function call from the Live API.

        Args:
            name: The name of the tool being called
            arguments: The arguments passed to the tool

        Returns:
            Structured response for the model to consume
        """
        arguments = arguments or {}
        if debug_enabled("tools"):
            logger.info("Tool call received: %s with arguments: %s", name, _summarize(arguments))

        handler = self._handlers.get(name)
        if handler is None or name not in self.registry:
            logger.warning("Unknown tool name: %s", name)
            return {"success": False, "error": f"Unknown tool: {name}"}

        if not self.registry.is_enabled(name):
            logger.warning("Rejected call to disabled tool: %s", name)
            return {"success": False, "error": f"Tool {name} is disabled"}

        try:
            async with log_tool_call(name) as ctx:
                result = await handler(arguments)
                if not result.get("success"):
                    ctx["status"] = "failed"
        except Exception as e:
            logger.error(f"Error executing {name}: {type(e).__name__}: {e}")
            _record_tool_event(name, False, error_type=type(e).__name__)
            return {"success": False, "error": str(e) or type(e).__name__}

        _record_tool_event(name, bool(result.get("success")))
        return result

    # Email and screenshots

    async def _handle_send_email(self, arguments: dict[str, Any]) -> dict[str, Any]:
        message = arguments.get("message")
        if not message or not isinstance(message, str):
            return _missing("message")

        sender_info = arguments.get("senderInfo") or ""
        attachment = arguments.get("fileBase64")
        filename = arguments.get("filename") or "attachment.bin"
        mime_type = arguments.get("mimeType") or "application/octet-stream"

        cached: Optional[Screenshot] = None
        if attachment == LAST_SCREENSHOT_PLACEHOLDER:
            cached = await self.context.screenshots.get()
            if cached is None:
                return {
                    "success": False,
                    "error": "No screenshot available. Take a screenshot first.",
                }
            attachment = cached.image_base64
            filename = cached.filename
            mime_type = cached.mime_type

        result = await self.context.mailer.send(message, sender_info, attachment, filename, mime_type)
        if result.get("success") and cached is not None:
            await self.context.screenshots.clear_if(cached)
        return result

    async def _handle_take_screenshot(self, arguments: dict[str, Any]) -> dict[str, Any]:
        result = await system_tools.take_screenshot(timeout=self._timeout)
        if result.get("success"):
            await self.context.screenshots.put(
                Screenshot(result["image"], result["filename"], result["mimeType"])
            )
            result["message"] = (
                "Screenshot captured. Use send_email with fileBase64='use_last_screenshot' to email it."
            )
        return result

    async def _handle_screenshot_and_email(self, arguments: dict[str, Any]) -> dict[str, Any]:
        message = arguments.get("message") or "Screenshot attached"
        sender_info = arguments.get("senderInfo") or ""

        shot = await system_tools.take_screenshot(timeout=self._timeout)
        if not shot.get("success"):
            return {"success": False, "error": f"Screenshot failed: {shot.get('error')}"}

        email = await self.context.mailer.send(
            message, sender_info, shot["image"], shot["filename"], shot["mimeType"]
        )
        if not email.get("success"):
            return {"success": False, "error": f"Email failed: {email.get('error')}"}

        # the cached screenshot belongs to take_screenshot and stays put
        return {
            "success": True,
            "message": "Screenshot captured and emailed successfully",
            "emailId": email.get("messageId"),
            "filename": shot["filename"],
        }

    # Clipboard

    async def _handle_copy_to_clipboard(self, arguments: dict[str, Any]) -> dict[str, Any]:
        text = arguments.get("text")
        if text is None or not isinstance(text, str):
            return _missing("text")
        return await system_tools.copy_to_clipboard(text, timeout=self._timeout)

    async def _handle_get_clipboard_text(self, arguments: dict[str, Any]) -> dict[str, Any]:
        return await system_tools.get_clipboard_text(timeout=self._timeout)

    async def _handle_paste_from_clipboard(self, arguments: dict[str, Any]) -> dict[str, Any]:
        return await system_tools.paste_from_clipboard(timeout=self._timeout)

    # Memory

    async def _handle_store_memory(self, arguments: dict[str, Any]) -> dict[str, Any]:
        content = arguments.get("content")
        if not content or not isinstance(content, str):
            return _missing("content")

        entry = self.context.memory.store(content, arguments.get("category"))
        return {
            "success": True,
            "message": "Memory stored successfully",
            "memoryId": entry["id"],
            "totalMemories": self.context.memory.count(),
        }

    async def _handle_retrieve_memories(self, arguments: dict[str, Any]) -> dict[str, Any]:
        query = arguments.get("query") or ""
        if not isinstance(query, str):
            return {"success": False, "error": "Argument query must be a string"}

        results = self.context.memory.retrieve(query)
        logger.info("Memory search for %r returned %d results", query, len(results))
        return {
            "success": True,
            "count": len(results),
            "memories": [
                {"content": m.get("content"), "category": m.get("category"), "createdAt": m.get("createdAt")}
                for m in results
            ],
        }

    async def _handle_clear_memories(self, arguments: dict[str, Any]) -> dict[str, Any]:
        category = arguments.get("category") or None
        removed = self.context.memory.clear(category)
        return {
            "success": True,
            "message": (
                f'Cleared {removed} memories from category "{category}"'
                if category
                else f"Cleared all {removed} memories"
            ),
            "remainingMemories": self.context.memory.count(),
        }

    # Files

    async def _handle_read_file(self, arguments: dict[str, Any]) -> dict[str, Any]:
        if not arguments.get("filePath"):
            return _missing("filePath")
        return file_tools.read_file(arguments["filePath"], bool(arguments.get("asBase64", False)))

    async def _handle_browse_files(self, arguments: dict[str, Any]) -> dict[str, Any]:
        return file_tools.browse_files(arguments.get("dirPath"))

    async def _handle_create_file(self, arguments: dict[str, Any]) -> dict[str, Any]:
        if not arguments.get("filePath"):
            return _missing("filePath")
        return file_tools.create_file(
            arguments["filePath"], arguments.get("content", ""), bool(arguments.get("overwrite", False))
        )

    async def _handle_edit_file(self, arguments: dict[str, Any]) -> dict[str, Any]:
        if not arguments.get("filePath") or arguments.get("content") is None:
            return _missing("filePath", "content")
        return file_tools.edit_file(arguments["filePath"], arguments["content"], arguments.get("mode") or "write")

    async def _handle_move_file(self, arguments: dict[str, Any]) -> dict[str, Any]:
        if not arguments.get("sourcePath") or not arguments.get("destinationPath"):
            return _missing("sourcePath", "destinationPath")
        return file_tools.move_file(arguments["sourcePath"], arguments["destinationPath"])

    async def _handle_rename_file(self, arguments: dict[str, Any]) -> dict[str, Any]:
        if not arguments.get("filePath") or not arguments.get("newName"):
            return _missing("filePath", "newName")
        return file_tools.rename_file(arguments["filePath"], arguments["newName"])

    async def _handle_delete_file(self, arguments: dict[str, Any]) -> dict[str, Any]:
        if not arguments.get("filePath"):
            return _missing("filePath")
        return file_tools.delete_file(arguments["filePath"], arguments.get("confirm") is True)

    # Browser, images and input simulation

    async def _handle_open_url(self, arguments: dict[str, Any]) -> dict[str, Any]:
        if not arguments.get("url"):
            return _missing("url")
        return await system_tools.open_url(str(arguments["url"]), timeout=self._timeout)

    async def _handle_generate_image(self, arguments: dict[str, Any]) -> dict[str, Any]:
        return await self.context.images.generate(
            arguments.get("prompt") or "",
            model=self.registry.image_model_name,
            aspect_ratio=arguments.get("aspectRatio") or "1:1",
            image_size=arguments.get("imageSize") or "1K",
        )

    async def _handle_computer_use(self, arguments: dict[str, Any]) -> dict[str, Any]:
        if not arguments.get("action"):
            return _missing("action")
        return await system_tools.computer_use(
            arguments["action"],
            x=arguments.get("x"),
            y=arguments.get("y"),
            text=arguments.get("text"),
            key=arguments.get("key"),
            direction=arguments.get("direction") or "down",
            amount=arguments.get("amount") or 3,
            timeout=self._timeout,
        )

    # UI side channels

    async def _handle_share_screen(self, arguments: dict[str, Any]) -> dict[str, Any]:
        return ui_tools.share_screen(arguments.get("resolution"))

    async def _handle_share_camera(self, arguments: dict[str, Any]) -> dict[str, Any]:
        return ui_tools.share_camera(arguments.get("resolution"))

    async def _handle_change_theme(self, arguments: dict[str, Any]) -> dict[str, Any]:
        return ui_tools.change_theme(arguments.get("theme"))


def _summarize(arguments: dict[str, Any]) -> dict[str, Any]:
    """Shorten long values (base64 payloads) for log lines."""
    return {
        key: (f"{value[:40]}... ({len(value)} chars)" if isinstance(value, str) and len(value) > 120 else value)
        for key, value in arguments.items()
    }
