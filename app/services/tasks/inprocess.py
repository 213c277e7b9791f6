from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from app.services.tasks.interface import TaskEnqueuer

logger = logging.getLogger(__name__)

JobRunner = Callable[[str], Awaitable[None]]


class InProcessEnqueuer(TaskEnqueuer):
  """Run each job as an asyncio task in the current event loop."""

  def __init__(self, runner: JobRunner | None = None) -> None:
    self._runner = runner
    # The loop only keeps weak references to tasks.
    self._tasks: set[asyncio.Task[None]] = set()

  def bind(self, runner: JobRunner) -> None:
    """Attach the job runner once the orchestrator exists."""
    self._runner = runner

  async def enqueue(self, job_id: str) -> None:
    if self._runner is None:
      raise RuntimeError("InProcessEnqueuer has no job runner bound.")
    task = asyncio.create_task(self._run(job_id), name=f"generation-job-{job_id}")
    self._tasks.add(task)
    task.add_done_callback(self._tasks.discard)
    logger.info("Scheduled job %s in-process (%d running)", job_id, len(self._tasks))

  async def _run(self, job_id: str) -> None:
    try:
      await self._runner(job_id)  # type: ignore[misc]
    except Exception:  # noqa: BLE001
      logger.error("In-process job %s crashed outside the orchestrator.", job_id, exc_info=True)

  @property
  def pending(self) -> int:
    return len(self._tasks)

  async def drain(self, timeout: float | None = None) -> None:
    """Wait for running jobs, e.g. during shutdown or in tests."""
    if not self._tasks:
      return
    await asyncio.wait(set(self._tasks), timeout=timeout)
