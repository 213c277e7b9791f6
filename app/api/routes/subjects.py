import logging

from fastapi import APIRouter, Depends, status

from app.api.deps import get_generation_service
from app.api.models import AssetResponse, GenerateRequest, JobAcceptedResponse
from app.core.security import get_current_user
from app.schema.sql import User
from app.services.jobs import GenerationOptions, GenerationService

router = APIRouter()
logger = logging.getLogger("app.api.routes.subjects")


def _options(subject_id: str, payload: GenerateRequest) -> GenerationOptions:
  return GenerationOptions(
    subject_id=subject_id,
    output_class=payload.output_class,
    style_keys=payload.style_keys,
    reference_ids=payload.reference_ids,
    topic=payload.topic,
    sub_topic=payload.sub_topic,
    expression_key=payload.expression_key,
    category_key=payload.category_key,
    character_anchor=payload.character_anchor,
  )


@router.post("/{subject_id}/generate", response_model=JobAcceptedResponse, status_code=status.HTTP_202_ACCEPTED)
async def generate_assets(  # noqa: B008
  subject_id: str,
  payload: GenerateRequest,
  current_user: User = Depends(get_current_user),  # noqa: B008
  service: GenerationService = Depends(get_generation_service),  # noqa: B008
) -> JobAcceptedResponse:
  """Admit a generation batch and return its job id; poll the job for progress."""
  request = await service.build_request(_options(subject_id, payload))
  job_id = await service.submit_generation(current_user.id, request)
  return JobAcceptedResponse(job_id=job_id)


@router.post("/{subject_id}/regenerate", response_model=JobAcceptedResponse, status_code=status.HTTP_202_ACCEPTED)
async def regenerate_assets(  # noqa: B008
  subject_id: str,
  payload: GenerateRequest,
  current_user: User = Depends(get_current_user),  # noqa: B008
  service: GenerationService = Depends(get_generation_service),  # noqa: B008
) -> JobAcceptedResponse:
  """Replace the subject's assets in one output class with a fresh batch."""
  request = await service.build_request(_options(subject_id, payload))
  job_id = await service.regenerate(current_user.id, request)
  return JobAcceptedResponse(job_id=job_id)


@router.get("/{subject_id}/assets", response_model=list[AssetResponse])
async def list_subject_assets(  # noqa: B008
  subject_id: str,
  current_user: User = Depends(get_current_user),  # noqa: B008
  service: GenerationService = Depends(get_generation_service),  # noqa: B008
) -> list[AssetResponse]:
  assets = await service.list_assets(subject_id, current_user.id)
  return [AssetResponse.from_record(asset) for asset in assets]
