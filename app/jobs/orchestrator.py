"""Generation job orchestration: submission, the sequential variant loop, and status reads."""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field

from app.ai.backoff import Sleep, retry_with_backoff
from app.ai.prompts import PromptInputs, build_generation_prompt
from app.ai.providers.base import ImageGenerator
from app.jobs.models import GenerationJobRecord, GenerationRequest, JobStatus, VariantSpec
from app.jobs.progress import in_flight_progress
from app.services.assets import AssetService
from app.services.catalog import CatalogCache
from app.services.references import ReferenceInput, ReferenceInputUnavailableError, ReferenceResolver
from app.services.tasks.interface import TaskEnqueuer
from app.services.usage_ledger import Clock, UsageLedger, utc_now
from app.storage.assets_repo import AssetRecord
from app.storage.catalog_repo import ExpressionRecord
from app.storage.jobs_repo import JobsRepository
from app.utils.ids import generate_job_id

logger = logging.getLogger(__name__)


class JobNotFoundError(LookupError):
  """Raised when a job does not exist or belongs to another user."""


@dataclass(frozen=True)
class JobStatusView:
  """Caller-facing snapshot of a job."""

  job_id: str
  status: JobStatus
  progress: int
  current_variant: str | None
  assets: list[AssetRecord] = field(default_factory=list)
  errors: list[dict[str, str]] = field(default_factory=list)


@dataclass
class _LoopState:
  asset_ids: list[int] = field(default_factory=list)
  errors: list[dict[str, str]] = field(default_factory=list)
  usage_recorded: bool = False


class JobOrchestrator:
  """Create jobs, run their variant loops detached from the caller, and report status."""

  def __init__(
    self,
    jobs: JobsRepository,
    assets: AssetService,
    ledger: UsageLedger,
    references: ReferenceResolver,
    catalog: CatalogCache,
    generator: ImageGenerator,
    enqueuer: TaskEnqueuer,
    *,
    max_attempts: int = 3,
    base_delay_seconds: float = 2.0,
    sleep: Sleep = asyncio.sleep,
    clock: Clock = utc_now,
  ) -> None:
    self._jobs = jobs
    self._assets = assets
    self._ledger = ledger
    self._references = references
    self._catalog = catalog
    self._generator = generator
    self._enqueuer = enqueuer
    self._max_attempts = max_attempts
    self._base_delay_seconds = base_delay_seconds
    self._sleep = sleep
    self._clock = clock

  async def submit(self, user_id: uuid.UUID, request: GenerationRequest) -> str:
    """Persist a pending job, schedule it, and return its id without waiting for execution."""
    job_id = generate_job_id()
    record = GenerationJobRecord(job_id=job_id, user_id=user_id, subject_id=request.subject_id, output_class=request.output_class, request=request.to_json(), status="pending", created_at=self._clock())
    await self._jobs.create_job(record)
    try:
      await self._enqueuer.enqueue(job_id)
    except Exception as exc:
      logger.error("Failed to schedule job %s", job_id, exc_info=True)
      await self._jobs.update_job(job_id, status="failed", progress=100, errors=[{"variant": "*", "error": f"Scheduling failed: {exc}"}], completed_at=self._clock())
      raise
    logger.info("Job %s submitted user_id=%s subject_id=%s output_class=%s variants=%d", job_id, user_id, request.subject_id, request.output_class, len(request.variant_specs))
    return job_id

  async def process_job(self, job_id: str) -> None:
    """Claim a pending job and run it to a terminal state."""
    job = await self._jobs.claim_job(job_id, started_at=self._clock())
    if job is None:
      logger.warning("Job %s was not pending; skipping.", job_id)
      return
    state = _LoopState()
    try:
      await self._run(job, state)
    except Exception as exc:  # noqa: BLE001
      # Never leave a job stuck in processing because of a crash in this process.
      # Assets stored before the crash still count, so the outcome follows them.
      status: JobStatus = "completed" if state.asset_ids else "failed"
      logger.error("Job %s crashed; marking %s.", job_id, status, exc_info=True)
      state.errors.append({"variant": "*", "error": f"{type(exc).__name__}: {exc}"})
      if status == "completed" and not state.usage_recorded:
        await self._record_usage(job, state)
      await self._finish(job, status, state)

  async def get_job_status(self, job_id: str, user_id: uuid.UUID) -> JobStatusView:
    job = await self._jobs.get_job(job_id)
    if job is None or job.user_id != user_id:
      raise JobNotFoundError(job_id)
    assets = await self._assets.list_job_assets(job.generated_asset_ids)
    return JobStatusView(job_id=job.job_id, status=job.status, progress=job.progress, current_variant=job.current_variant, assets=assets, errors=list(job.errors))

  async def _run(self, job: GenerationJobRecord, state: _LoopState) -> None:
    request = GenerationRequest.from_json(job.request)
    specs = request.variant_specs
    if not specs:
      state.errors.append({"variant": "*", "error": "No variants requested"})
      await self._finish(job, "failed", state)
      return

    try:
      references = await self._references.resolve_images(job.user_id, request.reference_ids)
      anchor = await self._references.resolve_anchor(job.user_id, request.character_anchor)
    except ReferenceInputUnavailableError as exc:
      logger.warning("Job %s aborted before generation: %s", job.job_id, exc)
      state.errors.append({"variant": "*", "error": str(exc)})
      await self._finish(job, "failed", state)
      return

    catalog = await self._catalog.get()
    expression = catalog.expression(request.expression_key)
    total = len(specs)
    for index, spec in enumerate(specs):
      await self._jobs.update_job(job.job_id, progress=in_flight_progress(index, total), current_variant=spec.key)
      try:
        asset = await self._generate_variant(job, request, spec, index, references, anchor, expression)
      except Exception as exc:  # noqa: BLE001
        logger.error("Job %s variant %s (%d/%d) failed: %s", job.job_id, spec.key, index + 1, total, exc)
        state.errors.append({"variant": spec.key, "error": str(exc) or type(exc).__name__})
        continue
      state.asset_ids.append(asset.id)
      await self._jobs.update_job(job.job_id, generated_asset_ids=list(state.asset_ids), progress=in_flight_progress(index + 1, total))
      logger.info("Job %s variant %s (%d/%d) stored as asset %s", job.job_id, spec.key, index + 1, total, asset.id)

    status: JobStatus = "completed" if state.asset_ids else "failed"
    if status == "completed":
      await self._record_usage(job, state)
    await self._finish(job, status, state)

  async def _generate_variant(self, job: GenerationJobRecord, request: GenerationRequest, spec: VariantSpec, index: int, references: list[ReferenceInput], anchor: str | None, expression: ExpressionRecord | None) -> AssetRecord:
    prompt = build_generation_prompt(
      PromptInputs(topic=request.topic, output_class=request.output_class, style_description=spec.description, sub_topic=request.sub_topic, category_key=request.category_key, expression=expression, character_anchor=anchor)
    )
    image = await retry_with_backoff(
      lambda: self._generator.generate(prompt, references, request.output_class),
      max_attempts=self._max_attempts,
      base_delay_seconds=self._base_delay_seconds,
      operation=f"job {job.job_id} variant {spec.key}",
      sleep=self._sleep,
    )
    return await self._assets.create_from_job(user_id=job.user_id, subject_id=job.subject_id, output_class=job.output_class, variant=spec, index=index, image=image, topic=request.topic)

  async def _record_usage(self, job: GenerationJobRecord, state: _LoopState) -> None:
    state.usage_recorded = True
    try:
      await self._ledger.increment(job.user_id, job.output_class, iteration_delta=1, asset_delta=len(state.asset_ids))
    except Exception:  # noqa: BLE001
      # Usage accounting is best-effort; the generated assets stand.
      logger.error("Failed to record usage for job %s", job.job_id, exc_info=True)

  async def _finish(self, job: GenerationJobRecord, status: JobStatus, state: _LoopState) -> None:
    await self._jobs.update_job(job.job_id, status=status, progress=100, generated_asset_ids=list(state.asset_ids), errors=list(state.errors), completed_at=self._clock())
    logger.info("Job %s %s with %d assets and %d errors", job.job_id, status, len(state.asset_ids), len(state.errors))
