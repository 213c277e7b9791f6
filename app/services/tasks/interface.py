from __future__ import annotations

from typing import Protocol


class TaskEnqueuer(Protocol):
  """Interface for scheduling detached job execution."""

  async def enqueue(self, job_id: str) -> None:
    """Schedule process_job(job_id) without waiting for it."""
    ...
