"""Retry logic with bounded exponential backoff for transient generation failures."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from app.ai.providers.base import TransientGenerationError

T = TypeVar("T")
logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


def backoff_delays(max_attempts: int, base_delay_seconds: float, max_delay_seconds: float = 30.0) -> list[float]:
  """Return the waits between attempts: base, 2*base, 4*base, ... capped at max_delay_seconds."""
  return [min(base_delay_seconds * (2**index), max_delay_seconds) for index in range(max(max_attempts - 1, 0))]


async def retry_with_backoff(func: Callable[[], Awaitable[T]], *, max_attempts: int, base_delay_seconds: float, operation: str, sleep: Sleep = asyncio.sleep) -> T:
  """
  Execute func, retrying only TransientGenerationError.

  Delays: base, 2*base, 4*base between attempts (2s, 4s with defaults).
  Permanent errors and exhausted attempts propagate to the caller.
  """
  delays = backoff_delays(max_attempts, base_delay_seconds)
  attempt = 0
  while True:
    attempt += 1
    try:
      return await func()
    except TransientGenerationError as exc:
      if attempt >= max_attempts:
        logger.error("%s failed after %d attempts: %s", operation, attempt, exc)
        raise
      delay = delays[attempt - 1]
      logger.warning("%s attempt %d/%d failed with transient error: %s. Retrying in %.1fs...", operation, attempt, max_attempts, exc, delay)
      await sleep(delay)
