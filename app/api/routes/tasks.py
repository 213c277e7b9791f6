from __future__ import annotations

import logging
import secrets
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, status
from pydantic import BaseModel

from app.api.deps import get_generation_service
from app.config import Settings, get_settings
from app.services.jobs import GenerationService

router = APIRouter(prefix="/tasks", tags=["tasks"])
logger = logging.getLogger(__name__)


class TaskPayload(BaseModel):
  job_id: str


@router.post("/process-job", status_code=status.HTTP_200_OK)
async def process_job_task(
  payload: TaskPayload,
  background_tasks: BackgroundTasks,
  settings: Annotated[Settings, Depends(get_settings)],
  service: Annotated[GenerationService, Depends(get_generation_service)],
  authorization: str | None = Header(default=None),
  x_studio_task_secret: str | None = Header(default=None),
) -> dict[str, str]:
  """
  Handler for Cloud Tasks.
  Accepts the task quickly and processes the job in the background to avoid dispatcher timeouts.
  """
  # Internal task endpoints must be authenticated to avoid arbitrary job execution.
  if not settings.task_secret:
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Task authentication is not configured.")
  expected_auth = f"Bearer {settings.task_secret}"
  # Cloud Tasks OIDC uses Authorization for Cloud Run invoker auth, so check the dedicated secret header first.
  shared_secret_valid = secrets.compare_digest((x_studio_task_secret or ""), settings.task_secret)
  bearer_valid = secrets.compare_digest((authorization or ""), expected_auth)
  if not shared_secret_valid and not bearer_valid:
    logger.warning("Unauthorized access attempt to /process-job")
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid task secret.")

  logger.info("Received task for job %s", payload.job_id)
  background_tasks.add_task(service.orchestrator.process_job, payload.job_id)
  return {"status": "accepted"}
