"""Default tool table exposed to the Gemini Live model.

Each entry carries the metadata shown in the widget's tool selector, the
default enabled flag and the JSON parameter schema sent upstream.
"""

from typing import Any, Optional

THEMES = (
    "light",
    "dark",
    "nightly",
    "dracula",
    "monokai",
    "nord",
    "solarized-light",
    "solarized-dark",
)

RESOLUTIONS = ("480p", "720p", "1080p")

COMPUTER_USE_ACTIONS = (
    "click",
    "double_click",
    "right_click",
    "move",
    "type",
    "key",
    "scroll",
)


def _object(properties: dict[str, Any], required: Optional[list[str]] = None) -> dict[str, Any]:
    return {"type": "object", "properties": properties, "required": required or []}


def _string(description: str, **extra: Any) -> dict[str, Any]:
    return {"type": "string", "description": description, **extra}


DEFAULT_TOOLS: list[dict[str, Any]] = [
    {
        "id": "googleSearch",
        "kind": "builtin",
        "name": "Google Search",
        "description": "Real-time information from Google Search (news, weather, sports, latest updates).",
        "enabled": True,
        "schema": None,
    },
    {
        "id": "send_email",
        "name": "Send Email",
        "description": (
            "Send an email message to the owner. Can include an attachment. Use this when users "
            "want to contact the owner, leave a message, or share screenshots or files. "
            "Pass fileBase64='use_last_screenshot' to attach the most recent screenshot."
        ),
        "enabled": True,
        "schema": _object(
            {
                "message": _string("The message content to send"),
                "senderInfo": _string("Optional information about the sender (name, contact info)"),
                "fileBase64": _string(
                    "Optional base64 encoded attachment (without data URI prefix), "
                    "or 'use_last_screenshot'"
                ),
                "filename": _string("Optional filename for the attachment"),
                "mimeType": _string("Optional MIME type of the attachment"),
            },
            ["message"],
        ),
    },
    {
        "id": "take_screenshot",
        "name": "Take Screenshot",
        "description": (
            "Take a screenshot of the current screen. The image is kept so it can be emailed "
            "afterwards with send_email(fileBase64='use_last_screenshot')."
        ),
        "enabled": True,
        "schema": _object({}),
    },
    {
        "id": "screenshot_and_email",
        "name": "Screenshot & Email",
        "description": (
            "Take a screenshot and immediately email it to the owner in one step. Use this when "
            "the user says 'screenshot and email' or 'take a screenshot and send it'."
        ),
        "enabled": True,
        "schema": _object(
            {
                "message": _string("The email message to send with the screenshot"),
                "senderInfo": _string("Optional information about the sender or context"),
            }
        ),
    },
    {
        "id": "copy_to_clipboard",
        "name": "Copy to Clipboard",
        "description": "Copy text to the system clipboard.",
        "enabled": True,
        "schema": _object({"text": _string("The text to copy to clipboard")}, ["text"]),
    },
    {
        "id": "get_clipboard_text",
        "name": "Read Clipboard",
        "description": "Get the current text from the system clipboard.",
        "enabled": True,
        "schema": _object({}),
    },
    {
        "id": "paste_from_clipboard",
        "name": "Paste from Clipboard",
        "description": "Simulate a keyboard paste (Ctrl+V or Cmd+V) into the active application.",
        "enabled": True,
        "schema": _object({}),
    },
    {
        "id": "store_memory",
        "name": "Store Memory",
        "description": (
            "Store a memory or note for later retrieval, optionally with a category. Use this to "
            "remember important information or user preferences."
        ),
        "enabled": True,
        "schema": _object(
            {
                "content": _string("The content of the memory/note"),
                "category": _string("Optional category or tag for the memory"),
            },
            ["content"],
        ),
    },
    {
        "id": "retrieve_memories",
        "name": "Retrieve Memories",
        "description": "Retrieve stored memories. Can search by text or category.",
        "enabled": True,
        "schema": _object({"query": _string("Optional search query or category to filter memories")}),
    },
    {
        "id": "clear_memories",
        "name": "Clear Memories",
        "description": "Clear all memories or those in a specific category. Use with caution.",
        "enabled": True,
        "schema": _object({"category": _string("Optional category to clear (clears all if not specified)")}),
    },
    {
        "id": "read_file",
        "name": "Read File",
        "description": "Read a file from the filesystem, as text or as base64 for binary files.",
        "enabled": False,
        "schema": _object(
            {
                "filePath": _string("Absolute or ~-relative path of the file"),
                "asBase64": {"type": "boolean", "description": "Return the content base64 encoded"},
            },
            ["filePath"],
        ),
    },
    {
        "id": "browse_files",
        "name": "Browse Files",
        "description": "List files and directories in a folder with size and type details.",
        "enabled": False,
        "schema": _object({"dirPath": _string("Directory to list (default: home directory)")}),
    },
    {
        "id": "create_file",
        "name": "Create File",
        "description": "Create a new file with the given content.",
        "enabled": False,
        "schema": _object(
            {
                "filePath": _string("Path of the file to create"),
                "content": _string("Content to write"),
                "overwrite": {"type": "boolean", "description": "Replace the file if it already exists"},
            },
            ["filePath"],
        ),
    },
    {
        "id": "edit_file",
        "name": "Edit File",
        "description": "Edit an existing file by replacing its content or appending to it.",
        "enabled": False,
        "schema": _object(
            {
                "filePath": _string("Path of the file to edit"),
                "content": _string("Content to write or append"),
                "mode": _string("write or append", enum=["write", "append"]),
            },
            ["filePath", "content"],
        ),
    },
    {
        "id": "move_file",
        "name": "Move File",
        "description": "Move a file to a new location.",
        "enabled": False,
        "schema": _object(
            {
                "sourcePath": _string("Current path of the file"),
                "destinationPath": _string("New path (file path or existing directory)"),
            },
            ["sourcePath", "destinationPath"],
        ),
    },
    {
        "id": "rename_file",
        "name": "Rename File",
        "description": "Rename a file within its directory.",
        "enabled": False,
        "schema": _object(
            {
                "filePath": _string("Current path of the file"),
                "newName": _string("New file name (no directory part)"),
            },
            ["filePath", "newName"],
        ),
    },
    {
        "id": "delete_file",
        "name": "Delete File",
        "description": "Delete a file. ALWAYS ask the user for confirmation first, then call with confirm=true.",
        "enabled": False,
        "schema": _object(
            {
                "filePath": _string("Path of the file to delete"),
                "confirm": {"type": "boolean", "description": "Must be true after the user confirmed"},
            },
            ["filePath", "confirm"],
        ),
    },
    {
        "id": "open_url",
        "name": "Open URL",
        "description": "Open a website in the default browser.",
        "enabled": True,
        "schema": _object({"url": _string("The URL to open")}, ["url"]),
    },
    {
        "id": "generate_image",
        "name": "Generate Image",
        "description": "Generate an image from a text description.",
        "enabled": False,
        "schema": _object(
            {
                "prompt": _string("Detailed description of the image"),
                "aspectRatio": _string(
                    "Aspect ratio of the image",
                    enum=["1:1", "3:4", "4:3", "9:16", "16:9"],
                ),
                "imageSize": _string(
                    "Output resolution; 2K and 4K need the pro image model",
                    enum=["1K", "2K", "4K"],
                ),
            },
            ["prompt"],
        ),
    },
    {
        "id": "computer_use",
        "name": "Computer Use",
        "description": (
            "Control the mouse and keyboard using screen coordinates. Requires screen sharing. "
            "Origin (0,0) is the top-left corner. Always look at the screen before clicking."
        ),
        "enabled": False,
        "schema": _object(
            {
                "action": _string("Action to perform", enum=list(COMPUTER_USE_ACTIONS)),
                "x": {"type": "integer", "description": "X coordinate in pixels"},
                "y": {"type": "integer", "description": "Y coordinate in pixels"},
                "text": _string("Text to type (for action=type)"),
                "key": _string("Key or combination to press, e.g. 'Return' or 'ctrl+c' (for action=key)"),
                "direction": _string("Scroll direction", enum=["up", "down"]),
                "amount": {"type": "integer", "description": "Scroll steps (default 3)"},
            },
            ["action"],
        ),
    },
    {
        "id": "share_screen",
        "name": "Share Screen",
        "description": "Start sharing the user's screen with you.",
        "enabled": True,
        "schema": _object({"resolution": _string("Capture resolution", enum=list(RESOLUTIONS))}),
    },
    {
        "id": "share_camera",
        "name": "Share Camera",
        "description": "Start sharing the user's camera with you.",
        "enabled": True,
        "schema": _object({"resolution": _string("Capture resolution", enum=list(RESOLUTIONS))}),
    },
    {
        "id": "change_theme",
        "name": "Change Theme",
        "description": "Change the widget's UI theme.",
        "enabled": True,
        "schema": _object({"theme": _string("Theme name", enum=list(THEMES))}, ["theme"]),
    },
]
