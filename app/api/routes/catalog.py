from fastapi import APIRouter, Depends

from app.api.deps import get_generation_service
from app.api.models import CatalogResponse
from app.core.security import get_current_user
from app.services.jobs import GenerationService

router = APIRouter()


@router.get("", response_model=CatalogResponse, dependencies=[Depends(get_current_user)])
async def get_catalog(service: GenerationService = Depends(get_generation_service)) -> CatalogResponse:  # noqa: B008
  catalog = await service.get_catalog()
  return CatalogResponse.from_catalog(catalog)
