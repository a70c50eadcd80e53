"""Image generation through the Gemini image models."""

import base64
import logging
import mimetypes
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from google import genai
from google.genai import types

from apsara.config import Settings

logger = logging.getLogger(__name__)

ASPECT_RATIOS = ("1:1", "3:4", "4:3", "9:16", "16:9")
IMAGE_SIZES = ("1K", "2K", "4K")

# Models that accept an output resolution; the rest always render at 1K
SIZED_MODELS = frozenset({"gemini-3-pro-image-preview"})


class ImageGenerator:
    """Generates an image from a prompt and saves it to disk."""

    def __init__(self, settings: Settings, client: Optional[genai.Client] = None):
        self.settings = settings
        self._client = client

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=self.settings.require_api_key())
        return self._client

    async def generate(
        self, prompt: str, model: str, aspect_ratio: str = "1:1", image_size: str = "1K"
    ) -> dict[str, Any]:
        if not prompt or not prompt.strip():
            return {"success": False, "error": "Missing required argument: prompt"}
        if aspect_ratio not in ASPECT_RATIOS:
            aspect_ratio = "1:1"
        if image_size not in IMAGE_SIZES or model not in SIZED_MODELS:
            image_size = "1K"

        image_config = types.ImageConfig(aspect_ratio=aspect_ratio)
        if model in SIZED_MODELS:
            image_config = types.ImageConfig(aspect_ratio=aspect_ratio, image_size=image_size)

        logger.info("Generating image with %s (%s, %s): %s", model, aspect_ratio, image_size, prompt[:80])
        response = await self.client.aio.models.generate_content(
            model=model,
            contents=prompt,
            config=types.GenerateContentConfig(
                response_modalities=["TEXT", "IMAGE"],
                image_config=image_config,
            ),
        )

        image_part = None
        for candidate in response.candidates or []:
            content = candidate.content
            for part in (content.parts if content and content.parts else []):
                if part.inline_data and part.inline_data.data:
                    image_part = part.inline_data
                    break
            if image_part:
                break

        if image_part is None:
            return {"success": False, "error": "The model did not return an image", "text": response.text}

        mime_type = image_part.mime_type or "image/png"
        extension = mimetypes.guess_extension(mime_type) or ".png"
        output_dir = Path(self.settings.generated_images_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        filename = f"image_{datetime.now().strftime('%Y%m%d_%H%M%S_%f')}{extension}"
        filepath = output_dir / filename
        filepath.write_bytes(image_part.data)

        logger.info("Image saved to %s (%d bytes)", filepath, len(image_part.data))
        return {
            "success": True,
            "base64Image": base64.b64encode(image_part.data).decode("ascii"),
            "filename": filename,
            "filepath": str(filepath.resolve()),
            "model": model,
            "aspectRatio": aspect_ratio,
            "imageSize": image_size,
            "fileSize": len(image_part.data),
            "mimeType": mime_type,
        }
