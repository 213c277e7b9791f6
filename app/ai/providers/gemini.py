"""Gemini image provider using the google-genai SDK."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from typing import Any, Final

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from app.ai.providers.base import PermanentGenerationError, TransientGenerationError
from app.config import Settings
from app.services.references import ReferenceInput

logger = logging.getLogger(__name__)

_TRANSIENT_STATUS_CODES: Final[frozenset[int]] = frozenset({429, 500, 502, 503, 504})
_TRANSIENT_MARKERS: Final[tuple[str, ...]] = ("UNKNOWN", "UNAVAILABLE", "overloaded", "Rpc failed", "RESOURCE_EXHAUSTED")
# A status code only counts when it leads the message or follows a status/code/HTTP label.
_TRANSIENT_STATUS_RE: Final[re.Pattern[str]] = re.compile(r"(?:^\s*|\b(?:status(?: code)?|code|HTTP(?:/[\d.]+)?)\s*[:=]?\s*)(?:429|50[0-4])\b", re.IGNORECASE)

EDIT_PROMPT_TEMPLATE: Final[str] = (
  "Edit this thumbnail. INSTRUCTION: {instruction}.\n"
  "Maintain the current aspect ratio and consistent character likeness.\n"
  "Boost saturation and contrast where necessary to make it look 'viral'.\n"
  "Keep the typographic layout and horizontal separation if applicable.\n"
  "Adjust the background dynamically if requested.\n"
  "IMPORTANT: Keep the person looking photorealistic, not AI-generated."
)


def classify_provider_error(exc: BaseException) -> TransientGenerationError | PermanentGenerationError:
  """Map an SDK or transport failure onto the transient/permanent taxonomy."""
  if isinstance(exc, TransientGenerationError | PermanentGenerationError):
    return exc
  if isinstance(exc, genai_errors.APIError):
    if exc.code in _TRANSIENT_STATUS_CODES:
      return TransientGenerationError(f"Gemini returned {exc.code}: {exc.message}")
    return PermanentGenerationError(f"Gemini returned {exc.code}: {exc.message}")
  # Connection resets and timeouts never reached the model.
  if isinstance(exc, httpx.TransportError):
    return TransientGenerationError(f"Gemini transport error: {exc}")
  message = str(exc)
  if _TRANSIENT_STATUS_RE.search(message) or any(marker in message for marker in _TRANSIENT_MARKERS):
    return TransientGenerationError(message)
  return PermanentGenerationError(message or type(exc).__name__)


def _extract_image(response: Any) -> bytes:
  """Return the first inline image payload of a response."""
  for candidate in response.candidates or []:
    content = getattr(candidate, "content", None)
    for part in getattr(content, "parts", None) or []:
      inline = getattr(part, "inline_data", None)
      if inline is not None and inline.data:
        return inline.data
  raise PermanentGenerationError("No image data in response")


class GeminiImageGenerator:
  """Image generator backed by a Gemini image model."""

  def __init__(self, model: str, api_key: str) -> None:
    self.model: str = model
    self._client = genai.Client(api_key=api_key)

  async def generate(self, prompt: str, reference_images: Sequence[ReferenceInput], output_class: str) -> bytes:
    """Generate one image; reference images precede the prompt text."""
    parts = [types.Part.from_bytes(data=image.data, mime_type=image.mime_type) for image in reference_images]
    parts.append(types.Part.from_text(text=prompt))
    config = types.GenerateContentConfig(response_modalities=["TEXT", "IMAGE"], image_config=types.ImageConfig(aspect_ratio=output_class))
    logger.info("Gemini image generation model=%s output_class=%s references=%d", self.model, output_class, len(reference_images))
    return await self._call(contents=[types.Content(role="user", parts=parts)], config=config)

  async def edit(self, base_image: bytes, instruction: str) -> bytes:
    """Edit an existing image with a natural-language instruction."""
    parts = [types.Part.from_bytes(data=base_image, mime_type="image/webp"), types.Part.from_text(text=EDIT_PROMPT_TEMPLATE.format(instruction=instruction))]
    config = types.GenerateContentConfig(response_modalities=["TEXT", "IMAGE"])
    logger.info("Gemini image edit model=%s", self.model)
    return await self._call(contents=[types.Content(role="user", parts=parts)], config=config)

  async def _call(self, *, contents: list[types.Content], config: types.GenerateContentConfig) -> bytes:
    try:
      response = await self._client.aio.models.generate_content(model=self.model, contents=contents, config=config)
    except Exception as exc:  # noqa: BLE001
      raise classify_provider_error(exc) from exc
    return _extract_image(response)


def build_image_generator(settings: Settings) -> GeminiImageGenerator:
  """Create the configured image generator."""
  if not settings.gemini_api_key:
    raise ValueError("GEMINI_API_KEY environment variable is required")
  return GeminiImageGenerator(settings.gemini_image_model, api_key=settings.gemini_api_key)
