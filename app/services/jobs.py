"""Caller-facing generation service: the single entry point routes talk to."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from app.ai.providers import ImageGenerator, build_image_generator
from app.config import Settings
from app.jobs.models import GenerationRequest, VariantSpec
from app.jobs.orchestrator import JobOrchestrator, JobStatusView
from app.services.assets import AssetService
from app.services.catalog import CatalogCache
from app.services.quotas import OUTPUT_CLASSES, QuotaResolver, UsageSummary
from app.services.references import ReferenceResolver
from app.services.storage_client import AssetStorage, build_storage_client
from app.services.tasks.factory import get_task_enqueuer
from app.services.tasks.inprocess import InProcessEnqueuer
from app.services.tasks.interface import TaskEnqueuer
from app.services.usage_ledger import UsageLedger
from app.storage.assets_repo import AssetRecord
from app.storage.catalog_repo import Catalog
from app.storage.jobs_repo import JobsRepository
from app.storage.postgres_assets_repo import PostgresAssetsRepository
from app.storage.postgres_catalog_repo import PostgresCatalogRepository, PostgresReferenceRepository
from app.storage.postgres_jobs_repo import PostgresJobsRepository
from app.storage.postgres_quota_repo import PostgresQuotaRepository
from app.storage.postgres_usage_repo import PostgresUsageRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationOptions:
  """Caller input for generate / regenerate before variants are resolved against the catalog."""

  subject_id: str
  output_class: str
  style_keys: list[str] | None = None
  reference_ids: list[int] | None = None
  topic: str = ""
  sub_topic: str | None = None
  expression_key: str | None = None
  category_key: str | None = None
  character_anchor: str | None = None


class GenerationService:
  """Compose quota admission, job submission, and asset operations."""

  def __init__(self, *, quota: QuotaResolver, orchestrator: JobOrchestrator, assets: AssetService, jobs: JobsRepository, catalog: CatalogCache) -> None:
    self.quota = quota
    self.orchestrator = orchestrator
    self.assets = assets
    self.jobs = jobs
    self.catalog = catalog

  async def build_request(self, options: GenerationOptions) -> GenerationRequest:
    """
    Resolve style keys into variant specs.

    How/Why:
      - Omitted style keys mean every active catalog style, in display order.
      - An explicit empty list is kept so the job fails with zero variants.
      - Explicit lists longer than the per-class retention bound are rejected; the catalog default is truncated to it.
    """
    if options.output_class not in OUTPUT_CLASSES:
      raise ValueError(f"Unsupported output class: {options.output_class}")
    catalog = await self.catalog.get()
    if options.style_keys is None:
      specs = [VariantSpec(key=style.key, description=style.description, name=style.name) for style in catalog.styles]
    else:
      by_key = {style.key: style for style in catalog.styles}
      unknown = [key for key in options.style_keys if key not in by_key]
      if unknown:
        raise ValueError(f"Unknown style keys: {', '.join(unknown)}")
      specs = [VariantSpec(key=key, description=by_key[key].description, name=by_key[key].name) for key in options.style_keys]
    # A batch larger than the retention bound would prune its own earlier variants.
    limit = self.assets.max_assets_per_class
    if len(specs) > limit:
      if options.style_keys is not None:
        raise ValueError(f"At most {limit} styles per batch; got {len(specs)}.")
      logger.warning("Catalog has %d active styles; using the first %d for subject_id=%s", len(specs), limit, options.subject_id)
      specs = specs[:limit]
    return GenerationRequest(
      subject_id=options.subject_id,
      output_class=options.output_class,
      variant_specs=specs,
      reference_ids=list(options.reference_ids or []),
      topic=options.topic,
      sub_topic=options.sub_topic,
      expression_key=options.expression_key,
      category_key=options.category_key,
      character_anchor=options.character_anchor,
    )

  async def submit_generation(self, user_id: uuid.UUID, request: GenerationRequest) -> str:
    """Admit the request against quota and hand it to the orchestrator; returns the job id."""
    await self.quota.require_quota(user_id, request.output_class)
    return await self.orchestrator.submit(user_id, request)

  async def regenerate(self, user_id: uuid.UUID, request: GenerationRequest) -> str:
    return await self.assets.regenerate(user_id, request, quota=self.quota, jobs=self.jobs, submitter=self.orchestrator)

  async def get_job_status(self, job_id: str, user_id: uuid.UUID) -> JobStatusView:
    return await self.orchestrator.get_job_status(job_id, user_id)

  async def refine_asset(self, asset_id: int, user_id: uuid.UUID, instruction: str) -> AssetRecord:
    return await self.assets.refine(asset_id, user_id, instruction)

  async def select_asset(self, asset_id: int, user_id: uuid.UUID) -> AssetRecord:
    return await self.assets.select(asset_id, user_id)

  async def delete_asset(self, asset_id: int, user_id: uuid.UUID) -> int | None:
    return await self.assets.delete(asset_id, user_id)

  async def list_assets(self, subject_id: str, user_id: uuid.UUID) -> list[AssetRecord]:
    return await self.assets.list_assets(subject_id, user_id)

  async def get_usage_summary(self, user_id: uuid.UUID) -> UsageSummary:
    return await self.quota.usage_summary(user_id)

  async def get_catalog(self) -> Catalog:
    return await self.catalog.get()


@dataclass
class ServiceBundle:
  """Runtime objects created at startup and kept on app.state."""

  service: GenerationService
  storage: AssetStorage
  enqueuer: TaskEnqueuer


def build_generation_service(settings: Settings, *, storage: AssetStorage | None = None, generator: ImageGenerator | None = None, enqueuer: TaskEnqueuer | None = None) -> ServiceBundle:
  """Wire the Postgres-backed repositories, storage, image provider, and task enqueuer."""
  storage = storage or build_storage_client(settings)
  generator = generator or build_image_generator(settings)
  enqueuer = enqueuer or get_task_enqueuer(settings)

  ledger = UsageLedger(PostgresUsageRepository())
  quota = QuotaResolver(PostgresQuotaRepository(), ledger, grant_iterations_limit=settings.grant_iterations_limit)
  catalog = CatalogCache(PostgresCatalogRepository(), ttl_seconds=settings.catalog_cache_ttl_seconds)
  jobs_repo = PostgresJobsRepository()
  assets = AssetService(
    PostgresAssetsRepository(),
    storage,
    generator,
    max_assets_per_class=settings.max_assets_per_class,
    max_attempts=settings.generation_max_attempts,
    base_delay_seconds=settings.generation_base_delay_seconds,
  )
  orchestrator = JobOrchestrator(
    jobs_repo,
    assets,
    ledger,
    ReferenceResolver(PostgresReferenceRepository(), storage),
    catalog,
    generator,
    enqueuer,
    max_attempts=settings.generation_max_attempts,
    base_delay_seconds=settings.generation_base_delay_seconds,
  )
  if isinstance(enqueuer, InProcessEnqueuer):
    enqueuer.bind(orchestrator.process_job)

  logger.info("Generation service ready task_provider=%s model=%s", settings.task_service_provider, settings.gemini_image_model)
  service = GenerationService(quota=quota, orchestrator=orchestrator, assets=assets, jobs=jobs_repo, catalog=catalog)
  return ServiceBundle(service=service, storage=storage, enqueuer=enqueuer)
