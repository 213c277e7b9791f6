"""Asset lifecycle: persistence of job output, refinement lineage, selection, deletion, regeneration."""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Protocol

from app.ai.backoff import Sleep, retry_with_backoff
from app.ai.providers.base import ImageGenerator
from app.jobs.models import GenerationRequest, VariantSpec
from app.services.quotas import QuotaResolver
from app.services.storage_client import AssetStorage, StorageError, UploadMetadata
from app.storage.assets_repo import AssetDraft, AssetRecord, AssetsRepository
from app.storage.jobs_repo import JobsRepository
from app.utils.ids import generate_nanoid

logger = logging.getLogger(__name__)


class AssetNotFoundError(LookupError):
  """Raised when an asset does not exist or belongs to another user."""


class RegenerationInProgressError(RuntimeError):
  """Raised when a regenerate request overlaps a pending or processing job for the same key."""

  def __init__(self, job_id: str) -> None:
    super().__init__(f"A generation job is already running for this subject and output class ({job_id}).")
    self.job_id = job_id


class JobSubmitter(Protocol):
  async def submit(self, user_id: uuid.UUID, request: GenerationRequest) -> str:
    """Create a pending job and schedule it; return the job id."""


def build_object_name(*, user_id: uuid.UUID, subject_id: str, output_class: str, style_key: str, suffix: str = "") -> str:
  """Return a unique, readable storage object name for an asset."""
  class_tag = output_class.replace(":", "x")
  return f"assets/{user_id}/{subject_id}/{style_key}_{class_tag}{suffix}_{generate_nanoid()}.webp"


class AssetService:
  """Own every write to generated assets."""

  def __init__(
    self,
    repo: AssetsRepository,
    storage: AssetStorage,
    generator: ImageGenerator,
    *,
    max_assets_per_class: int = 4,
    max_attempts: int = 3,
    base_delay_seconds: float = 2.0,
    sleep: Sleep = asyncio.sleep,
  ) -> None:
    self._repo = repo
    self._storage = storage
    self._generator = generator
    self._max_assets_per_class = max_assets_per_class
    self._max_attempts = max_attempts
    self._base_delay_seconds = base_delay_seconds
    self._sleep = sleep

  @property
  def max_assets_per_class(self) -> int:
    return self._max_assets_per_class

  async def create_from_job(self, *, user_id: uuid.UUID, subject_id: str, output_class: str, variant: VariantSpec, index: int, image: bytes, topic: str | None) -> AssetRecord:
    """
    Upload a variant's image and persist it as generation_order index+1.

    How/Why:
      - Only the first variant of a batch may become selected, and only when the subject has no selected asset.
      - Older assets beyond the per-class retention bound are removed before the insert.
    """
    object_name = build_object_name(user_id=user_id, subject_id=subject_id, output_class=output_class, style_key=variant.key)
    stored = await self._storage.upload(image, UploadMetadata(user_id=str(user_id), subject_id=subject_id, output_class=output_class, object_name=object_name))
    await self._enforce_retention(user_id, subject_id, output_class)
    draft = AssetDraft(
      subject_id=subject_id,
      user_id=user_id,
      output_class=output_class,
      style_key=variant.key,
      generation_order=index + 1,
      storage_ref=stored.ref,
      url=stored.url,
      secure_url=stored.secure_url,
      byte_size=stored.bytes,
      width=stored.width,
      height=stored.height,
      format=stored.format,
      topic=topic,
    )
    try:
      record = await self._repo.insert_asset(draft, select_if_unselected=(index == 0))
    except Exception:
      await self._delete_ref(stored.ref)
      raise
    logger.info("Asset stored asset_id=%s subject_id=%s output_class=%s order=%d selected=%s", record.id, subject_id, output_class, record.generation_order, record.is_selected)
    return record

  async def refine(self, asset_id: int, user_id: uuid.UUID, instruction: str) -> AssetRecord:
    """Edit an asset into a new version; the parent stays untouched and no quota is consumed."""
    normalized = (instruction or "").strip()
    if not normalized:
      raise ValueError("Refinement instruction must not be empty.")
    parent = await self._owned_asset(asset_id, user_id)

    base_image = await self._storage.download(parent.storage_ref)
    edited = await retry_with_backoff(lambda: self._generator.edit(base_image, normalized), max_attempts=self._max_attempts, base_delay_seconds=self._base_delay_seconds, operation=f"refine asset {asset_id}", sleep=self._sleep)

    version = parent.version + 1
    object_name = build_object_name(user_id=user_id, subject_id=parent.subject_id, output_class=parent.output_class, style_key=parent.style_key, suffix=f"_refined_v{version}")
    stored = await self._storage.upload(edited, UploadMetadata(user_id=str(user_id), subject_id=parent.subject_id, output_class=parent.output_class, object_name=object_name))
    draft = AssetDraft(
      subject_id=parent.subject_id,
      user_id=user_id,
      output_class=parent.output_class,
      style_key=parent.style_key,
      generation_order=parent.generation_order,
      storage_ref=stored.ref,
      url=stored.url,
      secure_url=stored.secure_url,
      byte_size=stored.bytes,
      width=stored.width,
      height=stored.height,
      format=stored.format,
      topic=parent.topic,
      version=version,
      parent_asset_id=parent.id,
      refinement_instruction=normalized,
    )
    record = await self._repo.insert_asset(draft, select_if_unselected=False)
    logger.info("Asset refined parent_id=%s new_id=%s version=%d", parent.id, record.id, record.version)
    return record

  async def select(self, asset_id: int, user_id: uuid.UUID) -> AssetRecord:
    """Make asset_id the only selected asset of its subject."""
    asset = await self._owned_asset(asset_id, user_id)
    if not await self._repo.select_asset(asset.user_id, asset.subject_id, asset.id):
      raise AssetNotFoundError(str(asset_id))
    return asset

  async def delete(self, asset_id: int, user_id: uuid.UUID) -> int | None:
    """Delete an asset and its payload; return the id promoted to selected, if any."""
    asset = await self._owned_asset(asset_id, user_id)
    return await self._delete_record(asset)

  async def list_assets(self, subject_id: str, user_id: uuid.UUID) -> list[AssetRecord]:
    """Return the user's assets for a subject, newest first."""
    return await self._repo.list_for_subject(user_id, subject_id)

  async def list_job_assets(self, asset_ids: list[int]) -> list[AssetRecord]:
    return await self._repo.list_by_ids(asset_ids)

  async def regenerate(self, user_id: uuid.UUID, request: GenerationRequest, *, quota: QuotaResolver, jobs: JobsRepository, submitter: JobSubmitter) -> str:
    """
    Replace a subject's assets in one output class with a fresh batch.

    How/Why:
      - Admission is checked first; a denied request deletes nothing.
      - Overlapping regenerations for the same key are rejected rather than queued.
      - Clearing the selected asset hands the selection to the newest asset left in the other output class.
    """
    await quota.require_quota(user_id, request.output_class)
    active = await jobs.find_active_job(user_id=user_id, subject_id=request.subject_id, output_class=request.output_class)
    if active is not None:
      raise RegenerationInProgressError(active.job_id)

    cleared = await self._repo.delete_for_subject_class(user_id, request.subject_id, request.output_class)
    for record in cleared.removed:
      await self._delete_payload(record)
    logger.info("Regenerate cleared %d assets subject_id=%s output_class=%s promoted=%s", len(cleared.removed), request.subject_id, request.output_class, cleared.promoted_asset_id)
    return await submitter.submit(user_id, request)

  async def _owned_asset(self, asset_id: int, user_id: uuid.UUID) -> AssetRecord:
    asset = await self._repo.get_asset(asset_id)
    if asset is None or asset.user_id != user_id:
      raise AssetNotFoundError(str(asset_id))
    return asset

  async def _delete_record(self, asset: AssetRecord) -> int | None:
    await self._delete_payload(asset)
    deletion = await self._repo.delete_asset(asset.id)
    if deletion is None:
      return None
    if deletion.promoted_asset_id is not None:
      logger.info("Selection moved to asset_id=%s after deleting asset_id=%s", deletion.promoted_asset_id, asset.id)
    return deletion.promoted_asset_id

  async def _delete_payload(self, asset: AssetRecord) -> None:
    await self._delete_ref(asset.storage_ref)

  async def _delete_ref(self, ref: str) -> None:
    try:
      await self._storage.delete(ref)
    except StorageError:
      # Orphaned payloads are acceptable; the row removal must still happen.
      logger.warning("Storage delete failed for ref=%s", ref, exc_info=True)

  async def _enforce_retention(self, user_id: uuid.UUID, subject_id: str, output_class: str) -> None:
    existing = await self._repo.list_for_subject(user_id, subject_id, output_class=output_class)
    overflow = len(existing) - self._max_assets_per_class + 1
    if overflow <= 0:
      return
    # list_for_subject is newest first, so the oldest sit at the tail.
    for asset in existing[-overflow:]:
      logger.info("Pruning asset_id=%s to keep %d per output class", asset.id, self._max_assets_per_class)
      await self._delete_record(asset)
