"""Provider implementations."""

from app.ai.providers.base import GenerationError, ImageGenerator, PermanentGenerationError, TransientGenerationError
from app.ai.providers.gemini import GeminiImageGenerator, build_image_generator

__all__ = ["GenerationError", "ImageGenerator", "PermanentGenerationError", "TransientGenerationError", "GeminiImageGenerator", "build_image_generator"]
