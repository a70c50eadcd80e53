"""
Tool registry.

Holds the enabled/async state of every tool and derives the declaration list
sent in each upstream session handshake. One registry is owned by the
application and shared by all connections; it is never persisted, so a
restart reverts to the defaults in :mod:`apsara.tool_definitions`.
"""

import copy
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from apsara.tool_definitions import DEFAULT_TOOLS

logger = logging.getLogger(__name__)

IMAGE_MODELS = {
    "flash": "gemini-2.5-flash-image",
    "pro": "gemini-3-pro-image-preview",
}


@dataclass
class ToolDescriptor:
    id: str
    name: str
    description: str
    enabled: bool
    is_async: bool = False
    schema: Optional[dict[str, Any]] = None
    kind: str = "function"

    @property
    def is_builtin(self) -> bool:
        return self.kind == "builtin"


class ToolRegistry:
    """Ordered, mutable set of tool descriptors."""

    def __init__(self, descriptors: Iterable[ToolDescriptor], image_model: str = "flash"):
        self._tools: dict[str, ToolDescriptor] = {}
        for descriptor in descriptors:
            self._tools[descriptor.id] = descriptor
        self._image_model = "flash"
        self.image_model = image_model

    @classmethod
    def with_defaults(cls) -> "ToolRegistry":
        """Build a fresh registry from the static default table."""
        return cls(
            ToolDescriptor(
                id=entry["id"],
                name=entry["name"],
                description=entry["description"],
                enabled=entry["enabled"],
                is_async=entry.get("async", False),
                schema=copy.deepcopy(entry.get("schema")),
                kind=entry.get("kind", "function"),
            )
            for entry in DEFAULT_TOOLS
        )

    def __contains__(self, tool_id: str) -> bool:
        return tool_id in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def get(self, tool_id: str) -> Optional[ToolDescriptor]:
        return self._tools.get(tool_id)

    def is_enabled(self, tool_id: str) -> bool:
        descriptor = self._tools.get(tool_id)
        return bool(descriptor and descriptor.enabled)

    def enabled_ids(self) -> list[str]:
        return [t.id for t in self._tools.values() if t.enabled]

    @property
    def image_model(self) -> str:
        return self._image_model

    @image_model.setter
    def image_model(self, value: str) -> None:
        if value not in IMAGE_MODELS:
            raise ValueError(f"Unknown image model: {value}. Expected one of {sorted(IMAGE_MODELS)}")
        self._image_model = value

    @property
    def image_model_name(self) -> str:
        return IMAGE_MODELS[self._image_model]

    def get_all(self) -> list[dict[str, Any]]:
        """Registry state for the HTTP control surface, in current order."""
        tools = []
        for t in self._tools.values():
            item: dict[str, Any] = {
                "id": t.id,
                "name": t.name,
                "description": t.description,
                "enabled": t.enabled,
                "async": t.is_async,
            }
            if t.id == "generate_image":
                item["model"] = self._image_model
            tools.append(item)
        return tools

    def set_enabled(self, flags: Mapping[str, Any]) -> None:
        for tool_id, enabled in flags.items():
            descriptor = self._tools.get(tool_id)
            if descriptor is None:
                logger.warning("Ignoring enable flag for unknown tool: %s", tool_id)
                continue
            descriptor.enabled = bool(enabled)
        logger.info("Enabled tools: %s", ", ".join(self.enabled_ids()) or "none")

    def set_async(self, flags: Mapping[str, Any]) -> None:
        for tool_id, is_async in flags.items():
            descriptor = self._tools.get(tool_id)
            if descriptor is None:
                logger.warning("Ignoring async flag for unknown tool: %s", tool_id)
                continue
            descriptor.is_async = bool(is_async)

    def set_order(self, order: Iterable[str]) -> None:
        """Move the listed tools to the front in the given order."""
        ordered: dict[str, ToolDescriptor] = {}
        for tool_id in order:
            if tool_id in self._tools and tool_id not in ordered:
                ordered[tool_id] = self._tools[tool_id]
        for tool_id, descriptor in self._tools.items():
            if tool_id not in ordered:
                ordered[tool_id] = descriptor
        self._tools = ordered

    def get_declarations(self) -> list[dict[str, Any]]:
        """One declaration per enabled tool, in registry order.

        Function tools produce ``{name, description, parameters}`` plus
        ``behavior: NON_BLOCKING`` when flagged async; the builtin search tool
        produces ``{"google_search": {}}``.
        """
        declarations: list[dict[str, Any]] = []
        for t in self._tools.values():
            if not t.enabled:
                continue
            if t.is_builtin:
                declarations.append({"google_search": {}})
                continue
            declaration: dict[str, Any] = {
                "name": t.id,
                "description": t.description,
                "parameters": copy.deepcopy(t.schema) if t.schema else {"type": "object", "properties": {}},
            }
            if t.is_async:
                declaration["behavior"] = "NON_BLOCKING"
            declarations.append(declaration)
        return declarations
