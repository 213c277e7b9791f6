"""Storage interfaces for generated assets."""

from __future__ import annotations

import datetime
import uuid
from dataclasses import dataclass
from typing import Protocol

import msgspec


class AssetRecord(msgspec.Struct, frozen=True):
  """Generated asset row as seen by services and API responses."""

  id: int
  subject_id: str
  user_id: uuid.UUID
  output_class: str
  style_key: str
  generation_order: int
  version: int
  parent_asset_id: int | None
  refinement_instruction: str | None
  is_selected: bool
  storage_ref: str
  url: str
  secure_url: str
  byte_size: int | None
  width: int | None
  height: int | None
  format: str | None
  topic: str | None
  created_at: datetime.datetime


@dataclass(frozen=True)
class AssetDraft:
  """Fields for a new asset row; the repository assigns id, selection, and timestamps.

  Subject ids are caller-supplied strings, so a subject is always identified by (user_id, subject_id).
  """

  subject_id: str
  user_id: uuid.UUID
  output_class: str
  style_key: str
  generation_order: int
  storage_ref: str
  url: str
  secure_url: str
  byte_size: int | None = None
  width: int | None = None
  height: int | None = None
  format: str | None = None
  topic: str | None = None
  version: int = 1
  parent_asset_id: int | None = None
  refinement_instruction: str | None = None


@dataclass(frozen=True)
class AssetDeletion:
  """Outcome of deleting a single asset row."""

  deleted: AssetRecord
  promoted_asset_id: int | None


@dataclass(frozen=True)
class ClassClearance:
  """Outcome of clearing one output class of a subject."""

  removed: list[AssetRecord]
  promoted_asset_id: int | None


class AssetsRepository(Protocol):
  """Repository contract for asset persistence."""

  async def get_asset(self, asset_id: int) -> AssetRecord | None:
    """Fetch an asset by identifier."""

  async def insert_asset(self, draft: AssetDraft, *, select_if_unselected: bool) -> AssetRecord:
    """Insert an asset, marking it selected only when requested and the owner's subject has no selected asset."""

  async def list_for_subject(self, user_id: uuid.UUID, subject_id: str, *, output_class: str | None = None) -> list[AssetRecord]:
    """Return the owner's assets of a subject, newest first."""

  async def list_by_ids(self, asset_ids: list[int]) -> list[AssetRecord]:
    """Return the existing assets among asset_ids ordered by generation order."""

  async def select_asset(self, user_id: uuid.UUID, subject_id: str, asset_id: int) -> bool:
    """Clear the owner's selection for the subject and select asset_id in one transaction."""

  async def delete_asset(self, asset_id: int) -> AssetDeletion | None:
    """Delete one row; when it was selected, promote the newest remaining asset of the same owner and subject."""

  async def delete_for_subject_class(self, user_id: uuid.UUID, subject_id: str, output_class: str) -> ClassClearance:
    """Delete the owner's assets of a subject in one output class, promoting a survivor when the selection was removed."""
