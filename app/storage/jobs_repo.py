"""Storage interfaces for background generation jobs."""

from __future__ import annotations

import datetime
import uuid
from typing import Protocol

from app.jobs.models import GenerationJobRecord, JobStatus


class JobsRepository(Protocol):
  """Repository contract for job persistence."""

  async def create_job(self, record: GenerationJobRecord) -> None:
    """Persist an initial job record."""

  async def get_job(self, job_id: str) -> GenerationJobRecord | None:
    """Fetch a job by identifier."""

  async def claim_job(self, job_id: str, *, started_at: datetime.datetime) -> GenerationJobRecord | None:
    """Move a pending job to processing; return None when it was not pending."""

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
    """Apply partial updates to a job."""

  async def find_active_job(self, *, user_id: uuid.UUID, subject_id: str, output_class: str) -> GenerationJobRecord | None:
    """Return a pending or processing job for the key, if any."""
