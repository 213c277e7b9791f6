from __future__ import annotations

import pytest

from app.services.catalog import CatalogCache


class _Ticker:
  def __init__(self) -> None:
    self.now = 1000.0

  def __call__(self) -> float:
    return self.now


@pytest.mark.anyio
async def test_catalog_is_served_from_cache_until_the_ttl_expires(catalog_repo) -> None:
  ticker = _Ticker()
  cache = CatalogCache(catalog_repo, ttl_seconds=300, clock=ticker)

  first = await cache.get()
  ticker.now += 299
  second = await cache.get()

  assert first is second
  assert catalog_repo.loads == 1

  ticker.now += 1
  await cache.get()
  assert catalog_repo.loads == 2


@pytest.mark.anyio
async def test_invalidate_forces_a_reload(catalog_repo) -> None:
  cache = CatalogCache(catalog_repo, ttl_seconds=300, clock=_Ticker())

  await cache.get()
  cache.invalidate()
  await cache.get()

  assert catalog_repo.loads == 2


@pytest.mark.anyio
async def test_catalog_lookups(catalog) -> None:
  loaded = await catalog.get()

  assert [style.key for style in loaded.styles][:2] == ["cinematic_drama", "hyper_vibrant"]
  assert loaded.expression("shock").primary_emotion == "Wide-eyed disbelief"
  assert loaded.expression("missing") is None
  assert loaded.expression(None) is None
