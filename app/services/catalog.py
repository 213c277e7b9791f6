"""TTL cache for catalog lookups that change rarely but are read on every generation."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable

from app.storage.catalog_repo import Catalog, CatalogRepository

logger = logging.getLogger(__name__)


class CatalogCache:
  """Hold the last loaded catalog until it is older than ttl_seconds."""

  def __init__(self, repo: CatalogRepository, *, ttl_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
    self._repo = repo
    self._ttl_seconds = ttl_seconds
    self._clock = clock
    self._catalog: Catalog | None = None
    self._loaded_at: float | None = None
    self._lock = asyncio.Lock()

  def _is_fresh(self) -> bool:
    return self._catalog is not None and self._loaded_at is not None and (self._clock() - self._loaded_at) < self._ttl_seconds

  async def get(self) -> Catalog:
    """Return the cached catalog, reloading it once expired."""
    if self._is_fresh():
      return self._catalog  # type: ignore[return-value]
    async with self._lock:
      # Another waiter may have refreshed while we were blocked.
      if self._is_fresh():
        return self._catalog  # type: ignore[return-value]
      catalog = await self._repo.load_catalog()
      self._catalog = catalog
      self._loaded_at = self._clock()
      logger.info("Catalog loaded styles=%d expressions=%d categories=%d", len(catalog.styles), len(catalog.expressions), len(catalog.categories))
      return catalog

  def invalidate(self) -> None:
    self._catalog = None
    self._loaded_at = None
