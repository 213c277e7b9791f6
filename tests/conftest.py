"""Shared in-memory doubles for the generation pipeline."""

from __future__ import annotations

import os

# Settings are loaded at import time by app.main; give them the one required value.
os.environ.setdefault("STUDIO_ALLOWED_ORIGINS", "http://localhost:3000")

import datetime  # noqa: E402
import uuid  # noqa: E402
from collections.abc import Callable  # noqa: E402
from dataclasses import dataclass, field, replace  # noqa: E402

import msgspec  # noqa: E402
import pytest  # noqa: E402

from app.jobs.models import ACTIVE_STATUSES, GenerationJobRecord  # noqa: E402
from app.jobs.orchestrator import JobOrchestrator  # noqa: E402
from app.services.assets import AssetService  # noqa: E402
from app.services.catalog import CatalogCache  # noqa: E402
from app.services.jobs import GenerationService  # noqa: E402
from app.services.quotas import QuotaResolver  # noqa: E402
from app.services.references import ReferenceResolver  # noqa: E402
from app.services.storage_client import StorageError, StoredObject, UploadMetadata  # noqa: E402
from app.services.usage_ledger import UsageLedger  # noqa: E402
from app.storage.assets_repo import AssetDeletion, AssetDraft, AssetRecord, ClassClearance  # noqa: E402
from app.storage.catalog_repo import Catalog, CategoryRecord, ExpressionRecord, ReferenceImageRecord, StyleRecord  # noqa: E402
from app.storage.quota_repo import AdminGrantRecord, TierLimitRecord  # noqa: E402
from app.storage.usage_repo import UsageTotals  # noqa: E402

START = datetime.datetime(2026, 3, 14, 12, 0, tzinfo=datetime.UTC)
OUTPUT_CLASS = "16:9"


@pytest.fixture
def anyio_backend() -> str:
  return "asyncio"


class FakeClock:
  """Settable UTC clock."""

  def __init__(self, now: datetime.datetime = START) -> None:
    self.now = now

  def __call__(self) -> datetime.datetime:
    return self.now

  def advance(self, **kwargs: float) -> None:
    self.now = self.now + datetime.timedelta(**kwargs)


class InMemoryUsageRepo:
  def __init__(self) -> None:
    self.rows: dict[tuple[uuid.UUID, str, datetime.date], dict[str, object]] = {}
    self.increments: list[dict[str, object]] = []
    self.fail_reads = False

  async def increment(self, *, user_id: uuid.UUID, output_class: str, period_start: datetime.date, period_end: datetime.date, iteration_delta: int, asset_delta: int) -> None:
    self.increments.append({"user_id": user_id, "output_class": output_class, "period_start": period_start, "iteration_delta": iteration_delta, "asset_delta": asset_delta})
    row = self.rows.setdefault((user_id, output_class, period_start), {"period_end": period_end, "iterations_used": 0, "assets_generated": 0})
    row["iterations_used"] = int(row["iterations_used"]) + iteration_delta
    row["assets_generated"] = int(row["assets_generated"]) + asset_delta

  async def sum_usage(self, *, user_id: uuid.UUID, output_class: str, since: datetime.date | None) -> UsageTotals:
    if self.fail_reads:
      raise RuntimeError("usage store unavailable")
    iterations = 0
    assets = 0
    for (row_user, row_class, period_start), row in self.rows.items():
      if row_user != user_id or row_class != output_class:
        continue
      if since is not None and period_start < since:
        continue
      iterations += int(row["iterations_used"])
      assets += int(row["assets_generated"])
    return UsageTotals(iterations_used=iterations, assets_generated=assets)


class InMemoryQuotaRepo:
  def __init__(self) -> None:
    self.tiers: dict[uuid.UUID, str] = {}
    self.limits: dict[tuple[str, str], TierLimitRecord] = {}
    self.grants: list[AdminGrantRecord] = []

  def set_limit(self, tier: str, max_iterations: int, *, is_unlimited: bool = False, resets_monthly: bool = True, output_classes: tuple[str, ...] = ("16:9", "9:16")) -> None:
    for output_class in output_classes:
      self.limits[(tier, output_class)] = TierLimitRecord(subscription_tier=tier, output_class=output_class, max_iterations=max_iterations, is_unlimited=is_unlimited, resets_monthly=resets_monthly)

  def add_grant(self, user_id: uuid.UUID, *, grant_type: str = "beta", is_active: bool = True, expires_at: datetime.datetime | None = None) -> None:
    self.grants.append(AdminGrantRecord(id=len(self.grants) + 1, user_id=user_id, grant_type=grant_type, is_active=is_active, expires_at=expires_at, created_at=START))

  async def get_user_tier(self, user_id: uuid.UUID) -> str | None:
    return self.tiers.get(user_id)

  async def get_tier_limit(self, tier: str, output_class: str) -> TierLimitRecord | None:
    return self.limits.get((tier, output_class))

  async def get_active_grant(self, user_id: uuid.UUID, *, now: datetime.datetime) -> AdminGrantRecord | None:
    active = [grant for grant in self.grants if grant.user_id == user_id and grant.is_active and (grant.expires_at is None or grant.expires_at > now)]
    active.sort(key=lambda grant: grant.created_at, reverse=True)
    return active[0] if active else None


class InMemoryJobsRepo:
  """Jobs repo that keeps every progress write so tests can inspect the sequence."""

  def __init__(self) -> None:
    self.records: dict[str, GenerationJobRecord] = {}
    self.progress_history: dict[str, list[int]] = {}

  async def create_job(self, record: GenerationJobRecord) -> None:
    self.records[record.job_id] = record
    self.progress_history[record.job_id] = [record.progress]

  async def get_job(self, job_id: str) -> GenerationJobRecord | None:
    return self.records.get(job_id)

  async def claim_job(self, job_id: str, *, started_at: datetime.datetime) -> GenerationJobRecord | None:
    record = self.records.get(job_id)
    if record is None or record.status != "pending":
      return None
    record = replace(record, status="processing", started_at=started_at)
    self.records[job_id] = record
    return record

  async def update_job(self, job_id: str, **kwargs: object) -> GenerationJobRecord | None:
    record = self.records.get(job_id)
    if record is None:
      return None
    # Merge updates onto the latest record to mimic persistence behavior.
    record = replace(record, **{key: value for key, value in kwargs.items() if value is not None})
    self.records[job_id] = record
    if kwargs.get("progress") is not None:
      self.progress_history[job_id].append(int(kwargs["progress"]))  # type: ignore[arg-type]
    return record

  async def find_active_job(self, *, user_id: uuid.UUID, subject_id: str, output_class: str) -> GenerationJobRecord | None:
    for record in self.records.values():
      if record.user_id == user_id and record.subject_id == subject_id and record.output_class == output_class and record.status in ACTIVE_STATUSES:
        return record
    return None


def _same_subject(row: AssetRecord, user_id: uuid.UUID, subject_id: str) -> bool:
  return row.user_id == user_id and row.subject_id == subject_id


class InMemoryAssetsRepo:
  def __init__(self) -> None:
    self.rows: dict[int, AssetRecord] = {}
    self._next_id = 1
    self.fail_inserts = False

  async def get_asset(self, asset_id: int) -> AssetRecord | None:
    return self.rows.get(asset_id)

  async def insert_asset(self, draft: AssetDraft, *, select_if_unselected: bool) -> AssetRecord:
    if self.fail_inserts:
      raise RuntimeError("insert failed")
    is_selected = select_if_unselected and not self.selected(draft.subject_id, owner=draft.user_id)
    asset_id = self._next_id
    self._next_id += 1
    record = AssetRecord(
      id=asset_id,
      subject_id=draft.subject_id,
      user_id=draft.user_id,
      output_class=draft.output_class,
      style_key=draft.style_key,
      generation_order=draft.generation_order,
      version=draft.version,
      parent_asset_id=draft.parent_asset_id,
      refinement_instruction=draft.refinement_instruction,
      is_selected=is_selected,
      storage_ref=draft.storage_ref,
      url=draft.url,
      secure_url=draft.secure_url,
      byte_size=draft.byte_size,
      width=draft.width,
      height=draft.height,
      format=draft.format,
      topic=draft.topic,
      # Strictly increasing so newest-first ordering is deterministic.
      created_at=START + datetime.timedelta(seconds=asset_id),
    )
    self.rows[asset_id] = record
    return record

  async def list_for_subject(self, user_id: uuid.UUID, subject_id: str, *, output_class: str | None = None) -> list[AssetRecord]:
    rows = [row for row in self.rows.values() if _same_subject(row, user_id, subject_id) and (output_class is None or row.output_class == output_class)]
    return sorted(rows, key=lambda row: (row.created_at, row.id), reverse=True)

  async def list_by_ids(self, asset_ids: list[int]) -> list[AssetRecord]:
    rows = [self.rows[asset_id] for asset_id in asset_ids if asset_id in self.rows]
    return sorted(rows, key=lambda row: (row.generation_order, row.id))

  async def select_asset(self, user_id: uuid.UUID, subject_id: str, asset_id: int) -> bool:
    target = self.rows.get(asset_id)
    if target is None or not _same_subject(target, user_id, subject_id):
      return False
    for row in list(self.rows.values()):
      if _same_subject(row, user_id, subject_id):
        self.rows[row.id] = msgspec.structs.replace(row, is_selected=row.id == asset_id)
    return True

  async def delete_asset(self, asset_id: int) -> AssetDeletion | None:
    row = self.rows.pop(asset_id, None)
    if row is None:
      return None
    promoted = None
    if row.is_selected:
      promoted = await self._promote_newest(row.user_id, row.subject_id)
    return AssetDeletion(deleted=row, promoted_asset_id=promoted)

  async def delete_for_subject_class(self, user_id: uuid.UUID, subject_id: str, output_class: str) -> ClassClearance:
    removed = [row for row in self.rows.values() if _same_subject(row, user_id, subject_id) and row.output_class == output_class]
    for row in removed:
      del self.rows[row.id]
    promoted = None
    if any(row.is_selected for row in removed):
      promoted = await self._promote_newest(user_id, subject_id)
    return ClassClearance(removed=removed, promoted_asset_id=promoted)

  async def _promote_newest(self, user_id: uuid.UUID, subject_id: str) -> int | None:
    remaining = await self.list_for_subject(user_id, subject_id)
    if not remaining:
      return None
    self.rows[remaining[0].id] = msgspec.structs.replace(remaining[0], is_selected=True)
    return remaining[0].id

  def selected(self, subject_id: str, *, owner: uuid.UUID | None = None) -> list[AssetRecord]:
    return [row for row in self.rows.values() if row.subject_id == subject_id and row.is_selected and (owner is None or row.user_id == owner)]


class FakeStorage:
  def __init__(self) -> None:
    self.objects: dict[str, bytes] = {}
    self.deleted: list[str] = []
    self.fail_uploads = False
    self.fail_deletes = False
    self.fail_downloads = False

  async def upload(self, data: bytes, metadata: UploadMetadata) -> StoredObject:
    if self.fail_uploads:
      raise StorageError("upload failed")
    ref = metadata.object_name
    self.objects[ref] = data
    url = f"https://storage.test/{ref}"
    return StoredObject(ref=ref, url=url, secure_url=url, bytes=len(data), width=1280, height=720, format="webp")

  async def download(self, ref: str) -> bytes:
    if self.fail_downloads or ref not in self.objects:
      raise StorageError(f"missing object {ref}")
    return self.objects[ref]

  async def delete(self, ref: str) -> None:
    if self.fail_deletes:
      raise StorageError("delete failed")
    self.deleted.append(ref)
    self.objects.pop(ref, None)


@dataclass
class FakeGenerator:
  """Image generator whose results are scripted per call; unscripted calls succeed."""

  script: list[object] = field(default_factory=list)
  prompts: list[str] = field(default_factory=list)
  reference_counts: list[int] = field(default_factory=list)
  edits: list[str] = field(default_factory=list)

  async def generate(self, prompt: str, reference_images: list, output_class: str) -> bytes:
    self.prompts.append(prompt)
    self.reference_counts.append(len(reference_images))
    outcome = self.script.pop(0) if self.script else f"image-{len(self.prompts)}".encode()
    if isinstance(outcome, BaseException):
      raise outcome
    return outcome  # type: ignore[return-value]

  async def edit(self, base_image: bytes, instruction: str) -> bytes:
    self.edits.append(instruction)
    outcome = self.script.pop(0) if self.script else b"edited:" + base_image
    if isinstance(outcome, BaseException):
      raise outcome
    return outcome  # type: ignore[return-value]


STYLES = [
  StyleRecord(key="cinematic_drama", name="Cinematic Drama", description="High contrast, deep shadows.", display_order=1),
  StyleRecord(key="hyper_vibrant", name="Hyper-Vibrant Pop", description="Maximum saturation, neon accents.", display_order=2),
  StyleRecord(key="clean_studio", name="Clean & Studio", description="Solid bold background.", display_order=3),
  StyleRecord(key="gritty_mystery", name="Gritty & Mystery", description="Raw textures, heavy atmosphere.", display_order=4),
]


class FakeCatalogRepo:
  def __init__(self) -> None:
    self.loads = 0
    self.catalog = Catalog(
      styles=list(STYLES),
      expressions=[ExpressionRecord(key="shock", name="Shocking/Expose", primary_emotion="Wide-eyed disbelief", face_details="Raised eyebrows, open mouth", eye_details="Widened", intensity=3, display_order=1)],
      categories=[CategoryRecord(key="news", name="News/Commentary", display_order=3)],
    )

  async def load_catalog(self) -> Catalog:
    self.loads += 1
    return self.catalog


class FakeReferenceRepo:
  def __init__(self) -> None:
    self.images: list[ReferenceImageRecord] = []
    self.anchors: dict[uuid.UUID, str] = {}

  async def list_reference_images(self, user_id: uuid.UUID, reference_ids: list[int]) -> list[ReferenceImageRecord]:
    return [image for image in self.images if image.user_id == user_id and image.id in reference_ids]

  async def get_default_anchor(self, user_id: uuid.UUID) -> str | None:
    return self.anchors.get(user_id)


class RecordingSleep:
  def __init__(self) -> None:
    self.delays: list[float] = []

  async def __call__(self, delay: float) -> None:
    self.delays.append(delay)


class RecordingEnqueuer:
  """Captures scheduled job ids; tests drive execution through process_job."""

  def __init__(self) -> None:
    self.job_ids: list[str] = []
    self.fail = False

  async def enqueue(self, job_id: str) -> None:
    if self.fail:
      raise RuntimeError("queue unavailable")
    self.job_ids.append(job_id)


@pytest.fixture
def user_id() -> uuid.UUID:
  return uuid.UUID("6f1c2b8e-3d7a-4e59-9a0b-1c2d3e4f5a6b")


@pytest.fixture
def clock() -> FakeClock:
  return FakeClock()


@pytest.fixture
def usage_repo() -> InMemoryUsageRepo:
  return InMemoryUsageRepo()


@pytest.fixture
def ledger(usage_repo: InMemoryUsageRepo, clock: FakeClock) -> UsageLedger:
  return UsageLedger(usage_repo, clock=clock)


@pytest.fixture
def quota_repo(user_id: uuid.UUID) -> InMemoryQuotaRepo:
  repo = InMemoryQuotaRepo()
  repo.tiers[user_id] = "basic"
  repo.set_limit("free", 1, resets_monthly=False)
  repo.set_limit("basic", 3)
  repo.set_limit("enterprise", 0, is_unlimited=True, resets_monthly=False)
  return repo


@pytest.fixture
def quota(quota_repo: InMemoryQuotaRepo, ledger: UsageLedger, clock: FakeClock) -> QuotaResolver:
  return QuotaResolver(quota_repo, ledger, grant_iterations_limit=10, clock=clock)


@pytest.fixture
def jobs_repo() -> InMemoryJobsRepo:
  return InMemoryJobsRepo()


@pytest.fixture
def assets_repo() -> InMemoryAssetsRepo:
  return InMemoryAssetsRepo()


@pytest.fixture
def storage() -> FakeStorage:
  return FakeStorage()


@pytest.fixture
def generator() -> FakeGenerator:
  return FakeGenerator()


@pytest.fixture
def sleeper() -> RecordingSleep:
  return RecordingSleep()


@pytest.fixture
def catalog_repo() -> FakeCatalogRepo:
  return FakeCatalogRepo()


@pytest.fixture
def catalog(catalog_repo: FakeCatalogRepo) -> CatalogCache:
  return CatalogCache(catalog_repo, ttl_seconds=300)


@pytest.fixture
def reference_repo() -> FakeReferenceRepo:
  return FakeReferenceRepo()


@pytest.fixture
def references(reference_repo: FakeReferenceRepo, storage: FakeStorage) -> ReferenceResolver:
  return ReferenceResolver(reference_repo, storage)


@pytest.fixture
def enqueuer() -> RecordingEnqueuer:
  return RecordingEnqueuer()


@pytest.fixture
def asset_service(assets_repo: InMemoryAssetsRepo, storage: FakeStorage, generator: FakeGenerator, sleeper: RecordingSleep) -> AssetService:
  return AssetService(assets_repo, storage, generator, max_assets_per_class=4, max_attempts=3, base_delay_seconds=2.0, sleep=sleeper)


@pytest.fixture
def orchestrator(
  jobs_repo: InMemoryJobsRepo, asset_service: AssetService, ledger: UsageLedger, references: ReferenceResolver, catalog: CatalogCache, generator: FakeGenerator, enqueuer: RecordingEnqueuer, sleeper: RecordingSleep, clock: FakeClock
) -> JobOrchestrator:
  return JobOrchestrator(jobs_repo, asset_service, ledger, references, catalog, generator, enqueuer, max_attempts=3, base_delay_seconds=2.0, sleep=sleeper, clock=clock)


@pytest.fixture
def generation_service(quota: QuotaResolver, orchestrator: JobOrchestrator, asset_service: AssetService, jobs_repo: InMemoryJobsRepo, catalog: CatalogCache) -> GenerationService:
  return GenerationService(quota=quota, orchestrator=orchestrator, assets=asset_service, jobs=jobs_repo, catalog=catalog)


@pytest.fixture
def seed_asset(assets_repo: InMemoryAssetsRepo, storage: FakeStorage, user_id: uuid.UUID) -> Callable[..., object]:
  """Insert an asset row plus its stored payload."""

  async def _seed(subject_id: str = "video-1", *, output_class: str = OUTPUT_CLASS, order: int = 1, select: bool = False, owner: uuid.UUID | None = None) -> AssetRecord:
    ref = f"assets/{subject_id}/{output_class}/{order}-{len(storage.objects)}.webp"
    storage.objects[ref] = b"payload"
    draft = AssetDraft(subject_id=subject_id, user_id=owner or user_id, output_class=output_class, style_key="cinematic_drama", generation_order=order, storage_ref=ref, url=f"https://storage.test/{ref}", secure_url=f"https://storage.test/{ref}")
    return await assets_repo.insert_asset(draft, select_if_unselected=select)

  return _seed
