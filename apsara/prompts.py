"""System instruction generated from the currently enabled tools."""

from apsara.registry import ToolRegistry

# Capability line per tool; tools sharing a line are listed together
_CAPABILITIES: list[tuple[tuple[str, ...], str]] = [
    (("googleSearch",), "Searching Google for real-time information (news, weather, sports, latest updates)"),
    (("send_email",), "Sending messages to {owner} via email (with attachments)"),
    (("take_screenshot",), "Taking screenshots of the current screen"),
    (("screenshot_and_email",), "Capturing and emailing screenshots to {owner}"),
    (("copy_to_clipboard",), "Copying text to the system clipboard"),
    (("get_clipboard_text",), "Reading text from the system clipboard"),
    (("paste_from_clipboard",), "Pasting clipboard content into the active application"),
    (("store_memory", "retrieve_memories"), "Storing and retrieving memories/notes for later use"),
    (("read_file", "browse_files"), "Reading local files and browsing directories"),
    (
        ("create_file", "edit_file", "move_file", "rename_file", "delete_file"),
        "Creating, editing, moving, renaming and deleting files",
    ),
    (("open_url",), "Opening websites in the browser"),
    (("generate_image",), "Generating images from text descriptions"),
    (("computer_use",), "Controlling the mouse and keyboard using screen coordinates (requires screen sharing)"),
    (("share_screen", "share_camera"), "Starting screen or camera sharing so you can see what the user sees"),
    (("change_theme",), "Changing the UI theme on request"),
]

_USAGE: dict[str, str] = {
    "send_email": "send_email: Send messages to {owner}; fileBase64='use_last_screenshot' attaches the last screenshot",
    "take_screenshot": "take_screenshot: Capture the current screen (just capture, don't email)",
    "screenshot_and_email": "screenshot_and_email: COMBINED operation, takes a screenshot AND emails it in one step",
    "copy_to_clipboard": "copy_to_clipboard: Copy text for easy pasting",
    "get_clipboard_text": "get_clipboard_text: Read what's currently in the clipboard, then explain it naturally",
    "paste_from_clipboard": "paste_from_clipboard: Simulate Ctrl+V/Cmd+V to insert clipboard content",
    "store_memory": "store_memory: Save important information, notes or user preferences",
    "retrieve_memories": "retrieve_memories: Search and recall stored memories",
    "clear_memories": "clear_memories: Delete memories (use with caution)",
    "read_file": "read_file: Read a file (asBase64=true for binary files or email attachments)",
    "browse_files": "browse_files: List files and directories with details",
    "create_file": "create_file: Create new files with content",
    "edit_file": "edit_file: Edit existing files (mode write or append)",
    "move_file": "move_file: Move files to new locations",
    "rename_file": "rename_file: Rename files in the same directory",
    "delete_file": "delete_file: Delete files (ALWAYS ask the user first, then pass confirm=true)",
    "open_url": "open_url: Open URLs in the default browser",
    "generate_image": "generate_image: Create images from text descriptions",
    "computer_use": (
        "computer_use: Control mouse & keyboard. Actions: click, double_click, right_click, move, type, key, "
        "scroll. Origin (0,0) = top-left. ALWAYS look at the screen before clicking"
    ),
    "share_screen": "share_screen: Share the user's screen with you (optional resolution)",
    "share_camera": "share_camera: Share the user's camera with you (optional resolution)",
    "change_theme": (
        "change_theme: Change the UI theme (light, dark, nightly, dracula, monokai, nord, "
        "solarized-light, solarized-dark)"
    ),
    "googleSearch": "Google Search: Automatic real-time information retrieval, always cite sources",
}

_BASE_CAPABILITIES = [
    "Real-time voice conversations with natural interruption handling",
    "Viewing camera and screen share - you can see what users show you",
]


def generate_system_prompt(registry: ToolRegistry, owner: str = "the owner") -> str:
    """Build the system instruction for the next upstream session."""
    enabled = set(registry.enabled_ids())

    capabilities = list(_BASE_CAPABILITIES)
    for tool_ids, line in _CAPABILITIES:
        if enabled.intersection(tool_ids):
            capabilities.append(line.format(owner=owner))

    usage = [f"- {_USAGE[tool_id].format(owner=owner)}" for tool_id in registry.enabled_ids() if tool_id in _USAGE]
    usage_section = "\n\n**Available Tools:**\n" + "\n".join(usage) if usage else ""

    guidance = [
        "Be conversational and friendly",
        "Respond in English unless the user asks for another language",
        "When users show you something via camera or screen share, look at it and describe what matters",
        "Provide detailed but concise information",
    ]
    if "send_email" in enabled:
        guidance.append(f"If someone wants to contact {owner}, offer to send a message via email")
    if "delete_file" in enabled:
        guidance.append("Never delete a file without explicit confirmation from the user")

    capability_lines = "\n".join(f"- {c}" for c in capabilities)
    guidance_lines = "\n".join(f"- {g}" for g in guidance)
    return (
        f"You are Apsara, an advanced AI voice assistant built for {owner}. "
        "You are friendly, helpful and conversational. When greeting users or introducing yourself, "
        "be warm and professional.\n\n"
        f"**Your Capabilities:**\n{capability_lines}\n\n"
        f"**How to interact with users:**\n{guidance_lines}"
        f"{usage_section}"
    )
