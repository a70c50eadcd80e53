"""
Desktop tools: screen capture, clipboard, browser and simulated input.

The screen is grabbed with mss, the clipboard goes through pyperclip and
mouse/keyboard input through pyautogui. Every blocking call is made via
:func:`apsara.shell.run_blocking`, so each one carries a deadline.
"""

import base64
import logging
import webbrowser
from datetime import datetime
from typing import Any, Optional
from urllib.parse import urlparse

import mss
import mss.tools
import pyperclip

from apsara.shell import DEFAULT_TIMEOUT_SECONDS, current_platform, run_blocking
from apsara.tool_definitions import COMPUTER_USE_ACTIONS

logger = logging.getLogger(__name__)

SUPPORTED_PLATFORMS = ("linux", "darwin", "win32")

UNSUPPORTED = {"success": False, "error": "Unsupported platform"}

POINTER_ACTIONS = ("click", "double_click", "right_click", "move")

# xdotool-style names the model tends to use, mapped to pyautogui key names
_KEY_ALIASES = {
    "return": "enter",
    "escape": "esc",
    "control": "ctrl",
    "cmd": "command",
    "super": "win",
    "page_up": "pageup",
    "page_down": "pagedown",
    "arrowup": "up",
    "arrowdown": "down",
    "arrowleft": "left",
    "arrowright": "right",
}


def _supported(platform: Optional[str]) -> bool:
    return (platform or current_platform()) in SUPPORTED_PLATFORMS


def _gui():
    # pyautogui opens the display connection at import time
    import pyautogui

    return pyautogui


def capture_screen_png() -> bytes:
    """Grab every monitor as one PNG image."""
    with mss.mss() as sct:
        shot = sct.grab(sct.monitors[0])
        return mss.tools.to_png(shot.rgb, shot.size)


def parse_key_combo(key: str, known_keys) -> list[str]:
    """Split ``ctrl+shift+t`` style combos into pyautogui key names.

    Raises:
        ValueError: empty combo or a key pyautogui does not know.
    """
    parts = [p.strip().lower() for p in (key or "").split("+") if p.strip()]
    if not parts:
        raise ValueError("key must not be empty")
    keys = [_KEY_ALIASES.get(p, p) for p in parts]
    unknown = [k for k in keys if k not in known_keys]
    if unknown:
        raise ValueError(f"Unknown key: {', '.join(unknown)}")
    return keys


def validate_computer_use(
    action: str,
    x: Optional[int] = None,
    y: Optional[int] = None,
    text: Optional[str] = None,
    key: Optional[str] = None,
    direction: str = "down",
    amount: int = 3,
) -> None:
    """
    Raises:
        ValueError: unknown action or missing arguments for it.
    """
    if action not in COMPUTER_USE_ACTIONS:
        raise ValueError(f"Unknown action: {action}. Expected one of {', '.join(COMPUTER_USE_ACTIONS)}")
    if action in POINTER_ACTIONS and (x is None or y is None):
        raise ValueError(f"Action {action} requires x and y coordinates")
    if action == "type" and not text:
        raise ValueError("Action type requires text")
    if action == "key" and not key:
        raise ValueError("Action key requires key")
    if direction not in ("up", "down"):
        raise ValueError("direction must be 'up' or 'down'")
    # non-numeric coordinates or amount raise here
    for value in (x, y, amount):
        if value is not None:
            int(value)


def perform_action(
    action: str,
    x: Optional[int] = None,
    y: Optional[int] = None,
    text: Optional[str] = None,
    key: Optional[str] = None,
    direction: str = "down",
    amount: int = 3,
) -> None:
    """Carry out one validated computer-use action. Blocks."""
    gui = _gui()
    point = (int(x), int(y)) if x is not None and y is not None else (None, None)

    if action == "click":
        gui.click(*point)
    elif action == "double_click":
        gui.doubleClick(*point)
    elif action == "right_click":
        gui.rightClick(*point)
    elif action == "move":
        gui.moveTo(*point)
    elif action == "type":
        gui.write(text, interval=0.02)
    elif action == "key":
        keys = parse_key_combo(key, gui.KEYBOARD_KEYS)
        if len(keys) == 1:
            gui.press(keys[0])
        else:
            gui.hotkey(*keys)
    elif action == "scroll":
        clicks = max(1, int(amount)) * (1 if direction == "up" else -1)
        gui.scroll(clicks, x=point[0], y=point[1])


def press_paste(platform: str) -> None:
    """Send the platform paste shortcut to the focused window. Blocks."""
    modifier = "command" if platform == "darwin" else "ctrl"
    _gui().hotkey(modifier, "v")


async def take_screenshot(timeout: float = DEFAULT_TIMEOUT_SECONDS, platform: Optional[str] = None) -> dict[str, Any]:
    """Capture the screen and return it base64 encoded."""
    if not _supported(platform):
        return dict(UNSUPPORTED)

    data = await run_blocking(capture_screen_png, timeout=timeout, label="screen capture")
    if not data:
        return {"success": False, "error": "Screen capture returned no image"}

    filename = f"screenshot_{datetime.now().strftime('%Y-%m-%dT%H-%M-%S')}.png"
    logger.info("Screenshot captured: %s (%d bytes)", filename, len(data))
    return {
        "success": True,
        "image": base64.b64encode(data).decode("ascii"),
        "mimeType": "image/png",
        "filename": filename,
    }


async def copy_to_clipboard(text: str, timeout: float = DEFAULT_TIMEOUT_SECONDS, platform: Optional[str] = None) -> dict[str, Any]:
    if not _supported(platform):
        return dict(UNSUPPORTED)
    await run_blocking(pyperclip.copy, text, timeout=timeout, label="clipboard copy")
    return {"success": True, "message": "Text copied to clipboard successfully"}


async def get_clipboard_text(timeout: float = DEFAULT_TIMEOUT_SECONDS, platform: Optional[str] = None) -> dict[str, Any]:
    if not _supported(platform):
        return dict(UNSUPPORTED)
    text = await run_blocking(pyperclip.paste, timeout=timeout, label="clipboard read")
    return {"success": True, "text": (text or "").strip()}


async def paste_from_clipboard(timeout: float = DEFAULT_TIMEOUT_SECONDS, platform: Optional[str] = None) -> dict[str, Any]:
    platform = platform or current_platform()
    if not _supported(platform):
        return dict(UNSUPPORTED)
    await run_blocking(press_paste, platform, timeout=timeout, label="paste")
    return {"success": True, "message": "Paste command executed successfully"}


def normalize_url(url: str) -> str:
    """Add a scheme when missing and reject anything but http(s)."""
    url = (url or "").strip()
    if not url:
        raise ValueError("URL must not be empty")
    if "://" not in url:
        url = f"https://{url}"
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"Only http and https URLs can be opened: {url}")
    return url


async def open_url(url: str, timeout: float = DEFAULT_TIMEOUT_SECONDS, platform: Optional[str] = None) -> dict[str, Any]:
    try:
        url = normalize_url(url)
    except ValueError as e:
        return {"success": False, "error": str(e)}

    if not _supported(platform):
        return dict(UNSUPPORTED)
    opened = await run_blocking(webbrowser.open, url, timeout=timeout, label="open browser")
    if not opened:
        return {"success": False, "error": "No web browser available"}
    return {"success": True, "message": f"Opened {url}", "url": url}


async def computer_use(
    action: str,
    x: Optional[int] = None,
    y: Optional[int] = None,
    text: Optional[str] = None,
    key: Optional[str] = None,
    direction: str = "down",
    amount: int = 3,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    platform: Optional[str] = None,
) -> dict[str, Any]:
    try:
        validate_computer_use(action, x, y, text, key, direction, amount)
    except (TypeError, ValueError) as e:
        return {"success": False, "error": str(e)}
    if not _supported(platform):
        return dict(UNSUPPORTED)

    await run_blocking(
        perform_action, action, x, y, text, key, direction, amount, timeout=timeout, label=f"computer_use {action}"
    )
    result: dict[str, Any] = {"success": True, "action": action}
    if x is not None and y is not None:
        result["x"], result["y"] = x, y
    return result
