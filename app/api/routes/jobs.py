import logging

from fastapi import APIRouter, Depends

from app.api.deps import get_generation_service
from app.api.models import JobStatusResponse
from app.core.security import get_current_user
from app.schema.sql import User
from app.services.jobs import GenerationService

router = APIRouter()
logger = logging.getLogger("app.api.routes.jobs")


@router.get("/{job_id}", response_model=JobStatusResponse)
async def get_job_status(  # noqa: B008
  job_id: str,
  current_user: User = Depends(get_current_user),  # noqa: B008
  service: GenerationService = Depends(get_generation_service),  # noqa: B008
) -> JobStatusResponse:
  """Fetch the status, progress, and assets of a generation job."""
  view = await service.get_job_status(job_id, current_user.id)
  return JobStatusResponse.from_view(view)
