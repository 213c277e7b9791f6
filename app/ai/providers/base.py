"""Image generation capability contract and its error taxonomy."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from app.services.references import ReferenceInput


class GenerationError(RuntimeError):
  """Base class for failures reported by an image generator."""


class TransientGenerationError(GenerationError):
  """Failure worth retrying: overload, rate limiting, or an upstream 5xx."""


class PermanentGenerationError(GenerationError):
  """Failure that will not succeed on retry: bad request, safety block, or no image returned."""


class ImageGenerator(Protocol):
  """Generates and edits images; raises TransientGenerationError or PermanentGenerationError."""

  async def generate(self, prompt: str, reference_images: Sequence[ReferenceInput], output_class: str) -> bytes:
    """Generate one image for the prompt in the requested aspect ratio."""

  async def edit(self, base_image: bytes, instruction: str) -> bytes:
    """Apply a natural-language edit to an existing image."""
