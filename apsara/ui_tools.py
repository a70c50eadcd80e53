"""Tools that only instruct the widget UI; they have no local side effects."""

from typing import Any, Optional

from apsara.tool_definitions import RESOLUTIONS, THEMES

DEFAULT_RESOLUTION = "720p"


def _resolution(value: Optional[str]) -> str:
    return value if value in RESOLUTIONS else DEFAULT_RESOLUTION


def share_screen(resolution: Optional[str] = None) -> dict[str, Any]:
    return {
        "success": True,
        "action": "start_screen_share",
        "resolution": _resolution(resolution),
        "message": "Screen sharing requested. Frames will arrive once the user accepts.",
    }


def share_camera(resolution: Optional[str] = None) -> dict[str, Any]:
    return {
        "success": True,
        "action": "start_camera",
        "resolution": _resolution(resolution),
        "message": "Camera sharing requested. Frames will arrive once the user accepts.",
    }


def change_theme(theme: Optional[str]) -> dict[str, Any]:
    if theme not in THEMES:
        return {"success": False, "error": f"Unknown theme: {theme}. Available: {', '.join(THEMES)}"}
    return {"success": True, "action": "change_theme", "theme": theme}
