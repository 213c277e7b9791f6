"""Resolve the reference images and character anchor a job generates against."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from app.services.storage_client import AssetStorage, StorageError
from app.storage.catalog_repo import ReferenceRepository

logger = logging.getLogger(__name__)


class ReferenceInputUnavailableError(RuntimeError):
  """Raised when a job's reference inputs cannot be resolved or fetched."""


@dataclass(frozen=True)
class ReferenceInput:
  """Reference image bytes scoped to a single job."""

  data: bytes
  mime_type: str


class ReferenceResolver:
  """Load a user's reference images from storage and pick their character anchor."""

  def __init__(self, repo: ReferenceRepository, storage: AssetStorage) -> None:
    self._repo = repo
    self._storage = storage

  async def resolve_images(self, user_id: uuid.UUID, reference_ids: list[int]) -> list[ReferenceInput]:
    """Fetch every requested reference image; any miss aborts the job."""
    if not reference_ids:
      return []
    records = await self._repo.list_reference_images(user_id, reference_ids)
    if not records:
      raise ReferenceInputUnavailableError("No reference images found. Upload at least one reference image.")
    found = {record.id for record in records}
    missing = [ref_id for ref_id in reference_ids if ref_id not in found]
    if missing:
      raise ReferenceInputUnavailableError(f"Reference images not found: {missing}")

    inputs: list[ReferenceInput] = []
    for record in records:
      try:
        data = await self._storage.download(record.storage_ref)
      except StorageError as exc:
        raise ReferenceInputUnavailableError(f"Failed to fetch reference image {record.id}: {exc}") from exc
      inputs.append(ReferenceInput(data=data, mime_type=record.mime_type or "image/png"))
    logger.info("Resolved %d reference images for user_id=%s", len(inputs), user_id)
    return inputs

  async def resolve_anchor(self, user_id: uuid.UUID, explicit_anchor: str | None) -> str | None:
    """Prefer the caller's anchor, then the user's default profile; None means the built-in default."""
    if explicit_anchor and explicit_anchor.strip():
      return explicit_anchor.strip()
    return await self._repo.get_default_anchor(user_id)
