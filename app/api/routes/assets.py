import logging

from fastapi import APIRouter, Depends

from app.api.deps import get_generation_service
from app.api.models import AssetResponse, OkResponse, RefineRequest
from app.core.security import get_current_user
from app.schema.sql import User
from app.services.jobs import GenerationService

router = APIRouter()
logger = logging.getLogger("app.api.routes.assets")


@router.post("/{asset_id}/refine", response_model=AssetResponse)
async def refine_asset(  # noqa: B008
  asset_id: int,
  payload: RefineRequest,
  current_user: User = Depends(get_current_user),  # noqa: B008
  service: GenerationService = Depends(get_generation_service),  # noqa: B008
) -> AssetResponse:
  """Create a new version of an asset from an edit instruction. Does not consume quota."""
  record = await service.refine_asset(asset_id, current_user.id, payload.instruction)
  return AssetResponse.from_record(record)


@router.post("/{asset_id}/select", response_model=OkResponse)
async def select_asset(  # noqa: B008
  asset_id: int,
  current_user: User = Depends(get_current_user),  # noqa: B008
  service: GenerationService = Depends(get_generation_service),  # noqa: B008
) -> OkResponse:
  await service.select_asset(asset_id, current_user.id)
  return OkResponse()


@router.delete("/{asset_id}", response_model=OkResponse)
async def delete_asset(  # noqa: B008
  asset_id: int,
  current_user: User = Depends(get_current_user),  # noqa: B008
  service: GenerationService = Depends(get_generation_service),  # noqa: B008
) -> OkResponse:
  """Delete an asset; when it was selected, the newest remaining asset takes over."""
  promoted = await service.delete_asset(asset_id, current_user.id)
  return OkResponse(promoted_asset_id=promoted)
