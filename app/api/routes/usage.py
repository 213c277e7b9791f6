from fastapi import APIRouter, Depends

from app.api.deps import get_generation_service
from app.api.models import UsageSummaryResponse
from app.core.security import get_current_user
from app.schema.sql import User
from app.services.jobs import GenerationService

router = APIRouter()


@router.get("", response_model=UsageSummaryResponse)
async def get_usage(  # noqa: B008
  current_user: User = Depends(get_current_user),  # noqa: B008
  service: GenerationService = Depends(get_generation_service),  # noqa: B008
) -> UsageSummaryResponse:
  """Return used, limit, and remaining iterations per output class."""
  summary = await service.get_usage_summary(current_user.id)
  return UsageSummaryResponse.from_summary(summary)
