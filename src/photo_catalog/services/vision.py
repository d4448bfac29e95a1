"""Photo captioning with a vision model."""

import base64
import json
import logging
from dataclasses import dataclass
from typing import Protocol

from photo_catalog.domain.photos import PhotoCaption

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 60
DESCRIPTION_MAX_LENGTH = 160
ELLIPSIS = "..."
FALLBACK_DESCRIPTION = "AI-generated description for this photo"

CAPTION_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "title": {"type": "string"},
        "description": {"type": "string"},
    },
    "required": ["title", "description"],
    "additionalProperties": False,
}

CAPTION_PROMPT = f"""Please analyze this image and generate SEO-optimized metadata \
for a photo sharing platform.

REQUIREMENTS:
- Title: Maximum {TITLE_MAX_LENGTH} characters, compelling and descriptive
- Description: Maximum {DESCRIPTION_MAX_LENGTH} characters, engaging and informative

Look at the main subjects, colors, lighting, mood, composition, any visible \
text and the background. Be specific about what you see.

Respond with a JSON object in this exact format:
{{"title": "Your title here", "description": "Your description here"}}"""


class VisionClient(Protocol):
    """Interface for a vision/completion model."""

    async def complete(
        self, *, image_data_url: str, prompt: str, schema: dict[str, object]
    ) -> str:
        """Return the model's raw text answer for an image and instructions."""


@dataclass
class CaptionService:
    """Builds the caption request and sanitizes the model output."""

    client: VisionClient

    async def describe(self, image_bytes: bytes, photo_id: str) -> PhotoCaption:
        """Generate a title and description for an image."""
        raw = await self.client.complete(
            image_data_url=to_data_url(image_bytes),
            prompt=CAPTION_PROMPT,
            schema=CAPTION_SCHEMA,
        )
        return parse_caption(raw, photo_id)


def parse_caption(raw: str, photo_id: str) -> PhotoCaption:
    """Parse model output, falling back to placeholders on malformed JSON."""
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning(
            "Vision output is not JSON, using placeholder caption",
            extra={"photo_id": photo_id, "raw": raw[:500]},
        )
        return _fallback_caption(photo_id)
    if not isinstance(payload, dict):
        payload = {}
    title = str(payload.get("title") or "").strip()
    description = str(payload.get("description") or "").strip()
    if not title or not description:
        logger.warning(
            "Vision output lacks title or description, using placeholder caption",
            extra={"photo_id": photo_id},
        )
        return _fallback_caption(photo_id)
    return PhotoCaption(
        title=truncate(title, TITLE_MAX_LENGTH),
        description=truncate(description, DESCRIPTION_MAX_LENGTH),
    )


def truncate(text: str, limit: int) -> str:
    """Cut text to at most `limit` characters, marking the cut with an ellipsis."""
    if len(text) <= limit:
        return text
    return text[: limit - len(ELLIPSIS)] + ELLIPSIS


def _fallback_caption(photo_id: str) -> PhotoCaption:
    return PhotoCaption(
        title=f"AI Generated Title for {photo_id}",
        description=FALLBACK_DESCRIPTION,
    )


def to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL for image input."""
    mime_type = _detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def _detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes.startswith((b"GIF87a", b"GIF89a")):
        return "image/gif"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
