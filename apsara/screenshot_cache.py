"""Single-slot holder for the most recent screenshot of a connection."""

import asyncio
from dataclasses import dataclass
from typing import Optional

# Placeholder the model passes to send_email to attach the cached screenshot
LAST_SCREENSHOT_PLACEHOLDER = "use_last_screenshot"


@dataclass(frozen=True)
class Screenshot:
    image_base64: str
    filename: str
    mime_type: str = "image/png"


class ScreenshotCache:
    """Last write wins. Owned by one connection's tool context."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._screenshot: Optional[Screenshot] = None

    async def put(self, screenshot: Screenshot) -> None:
        async with self._lock:
            self._screenshot = screenshot

    async def get(self) -> Optional[Screenshot]:
        async with self._lock:
            return self._screenshot

    async def clear(self) -> None:
        async with self._lock:
            self._screenshot = None

    async def clear_if(self, screenshot: Screenshot) -> bool:
        """Clear only if ``screenshot`` is still the cached one."""
        async with self._lock:
            if self._screenshot is screenshot:
                self._screenshot = None
                return True
            return False
