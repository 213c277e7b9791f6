"""Repository for asset generation jobs using PostgreSQL."""

from __future__ import annotations

import datetime
import uuid

from sqlalchemy import select, update

from app.core.database import require_session_factory
from app.jobs.models import ACTIVE_STATUSES, GenerationJobRecord, JobStatus
from app.schema.jobs import AssetGenerationJob


class PostgresJobsRepository:
  """Persist and retrieve generation jobs from Postgres using SQLAlchemy."""

  def __init__(self) -> None:
    self._session_factory = require_session_factory()

  async def create_job(self, record: GenerationJobRecord) -> None:
    async with self._session_factory() as session:
      async with session.begin():
        session.add(
          AssetGenerationJob(
            job_id=record.job_id,
            user_id=record.user_id,
            subject_id=record.subject_id,
            output_class=record.output_class,
            status=record.status,
            progress=record.progress,
            current_variant=record.current_variant,
            generated_asset_ids=list(record.generated_asset_ids),
            errors=list(record.errors),
            request_json=record.request,
            created_at=record.created_at,
          )
        )

  async def get_job(self, job_id: str) -> GenerationJobRecord | None:
    async with self._session_factory() as session:
      row = await session.get(AssetGenerationJob, job_id)
      return _to_record(row) if row is not None else None

  async def claim_job(self, job_id: str, *, started_at: datetime.datetime) -> GenerationJobRecord | None:
    async with self._session_factory() as session:
      async with session.begin():
        # Conditional update: only one caller can move a job out of pending.
        stmt = update(AssetGenerationJob).where(AssetGenerationJob.job_id == job_id, AssetGenerationJob.status == "pending").values(status="processing", started_at=started_at).returning(AssetGenerationJob)
        row = (await session.execute(stmt)).scalars().first()
        return _to_record(row) if row is not None else None

  async def update_job(
    self,
    job_id: str,
    *,
    status: JobStatus | None = None,
    progress: int | None = None,
    current_variant: str | None = None,
    generated_asset_ids: list[int] | None = None,
    errors: list[dict[str, str]] | None = None,
    completed_at: datetime.datetime | None = None,
  ) -> GenerationJobRecord | None:
    values: dict[str, object] = {}
    if status is not None:
      values["status"] = status
    if progress is not None:
      values["progress"] = progress
    if current_variant is not None:
      values["current_variant"] = current_variant
    if generated_asset_ids is not None:
      values["generated_asset_ids"] = list(generated_asset_ids)
    if errors is not None:
      values["errors"] = list(errors)
    if completed_at is not None:
      values["completed_at"] = completed_at

    async with self._session_factory() as session:
      async with session.begin():
        if not values:
          row = await session.get(AssetGenerationJob, job_id)
          return _to_record(row) if row is not None else None
        stmt = update(AssetGenerationJob).where(AssetGenerationJob.job_id == job_id).values(**values).returning(AssetGenerationJob)
        row = (await session.execute(stmt)).scalars().first()
        return _to_record(row) if row is not None else None

  async def find_active_job(self, *, user_id: uuid.UUID, subject_id: str, output_class: str) -> GenerationJobRecord | None:
    async with self._session_factory() as session:
      stmt = (
        select(AssetGenerationJob)
        .where(AssetGenerationJob.user_id == user_id, AssetGenerationJob.subject_id == subject_id, AssetGenerationJob.output_class == output_class, AssetGenerationJob.status.in_(tuple(ACTIVE_STATUSES)))
        .order_by(AssetGenerationJob.created_at.desc())
        .limit(1)
      )
      row = (await session.execute(stmt)).scalars().first()
      return _to_record(row) if row is not None else None


def _to_record(row: AssetGenerationJob) -> GenerationJobRecord:
  return GenerationJobRecord(
    job_id=row.job_id,
    user_id=row.user_id,
    subject_id=row.subject_id,
    output_class=row.output_class,
    request=dict(row.request_json or {}),
    status=row.status,  # type: ignore[arg-type]
    created_at=row.created_at,
    progress=int(row.progress or 0),
    current_variant=row.current_variant,
    generated_asset_ids=[int(item) for item in row.generated_asset_ids or []],
    errors=list(row.errors or []),
    started_at=row.started_at,
    completed_at=row.completed_at,
    updated_at=row.updated_at,
  )
