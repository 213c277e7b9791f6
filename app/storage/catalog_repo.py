"""Storage interfaces for the style / expression / content-category catalog and reference inputs."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Protocol


@dataclass(frozen=True)
class StyleRecord:
  key: str
  name: str
  description: str
  display_order: int = 0


@dataclass(frozen=True)
class ExpressionRecord:
  key: str
  name: str
  primary_emotion: str
  face_details: str
  eye_details: str
  intensity: int = 3
  display_order: int = 0


@dataclass(frozen=True)
class CategoryRecord:
  key: str
  name: str
  description: str | None = None
  display_order: int = 0


@dataclass(frozen=True)
class Catalog:
  """Active catalog entries, each list ordered by display order."""

  styles: list[StyleRecord] = field(default_factory=list)
  expressions: list[ExpressionRecord] = field(default_factory=list)
  categories: list[CategoryRecord] = field(default_factory=list)

  def expression(self, key: str | None) -> ExpressionRecord | None:
    return next((item for item in self.expressions if item.key == key), None)

  def category(self, key: str | None) -> CategoryRecord | None:
    return next((item for item in self.categories if item.key == key), None)


@dataclass(frozen=True)
class ReferenceImageRecord:
  id: int
  user_id: uuid.UUID
  storage_ref: str
  secure_url: str
  mime_type: str


class CatalogRepository(Protocol):
  """Repository contract for catalog lookups."""

  async def load_catalog(self) -> Catalog:
    """Load all active catalog entries."""


class ReferenceRepository(Protocol):
  """Repository contract for per-user reference inputs."""

  async def list_reference_images(self, user_id: uuid.UUID, reference_ids: list[int]) -> list[ReferenceImageRecord]:
    """Return the user's reference images among reference_ids."""

  async def get_default_anchor(self, user_id: uuid.UUID) -> str | None:
    """Return the anchor text of the user's active default character profile."""
