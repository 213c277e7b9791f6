from __future__ import annotations

import json
import logging

from google.cloud import tasks_v2
from starlette.concurrency import run_in_threadpool

from app.config import Settings
from app.services.tasks.interface import TaskEnqueuer

logger = logging.getLogger(__name__)


class CloudTasksEnqueuer(TaskEnqueuer):
  """Enqueues jobs to Google Cloud Tasks, which POST back to the internal task route."""

  def __init__(self, settings: Settings) -> None:
    if not settings.cloud_tasks_queue_path:
      raise ValueError("STUDIO_CLOUD_TASKS_QUEUE_PATH must be set for the gcp task provider.")
    if not settings.base_url:
      raise ValueError("STUDIO_BASE_URL must be set for the gcp task provider.")
    if not settings.task_secret:
      raise ValueError("STUDIO_TASK_SECRET must be set for the gcp task provider.")
    self.settings = settings
    self.client = tasks_v2.CloudTasksClient()

  def build_task(self, job_id: str) -> dict:
    url = f"{self.settings.base_url.rstrip('/')}/internal/tasks/process-job"  # type: ignore[union-attr]
    return {
      "http_request": {
        "http_method": tasks_v2.HttpMethod.POST,
        "url": url,
        "headers": {"Content-Type": "application/json", "X-Studio-Task-Secret": self.settings.task_secret},
        "body": json.dumps({"job_id": job_id}).encode(),
      }
    }

  async def enqueue(self, job_id: str) -> None:
    """Enqueue a job to Cloud Tasks; failures propagate so the caller can fail the job."""
    task = self.build_task(job_id)
    response = await run_in_threadpool(self.client.create_task, request={"parent": self.settings.cloud_tasks_queue_path, "task": task})
    logger.info("Enqueued task %s for job %s", response.name, job_id)
