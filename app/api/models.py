from __future__ import annotations

import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr

from app.jobs.models import JobStatus
from app.jobs.orchestrator import JobStatusView
from app.services.quotas import OutputClassUsage, UsageSummary
from app.storage.assets_repo import AssetRecord
from app.storage.catalog_repo import Catalog

OutputClass = Literal["16:9", "9:16"]


def _to_camel(string: str) -> str:
  """Convert snake_case to camelCase so the API accepts frontend-style payloads."""
  parts = string.split("_")
  if not parts:
    return string
  return parts[0] + "".join(part[:1].upper() + part[1:] for part in parts[1:])


class ApiModel(BaseModel):
  model_config = ConfigDict(populate_by_name=True, alias_generator=_to_camel)


class GenerateRequest(ApiModel):
  """Payload for generate and regenerate."""

  model_config = ConfigDict(populate_by_name=True, alias_generator=_to_camel, extra="forbid")

  output_class: OutputClass = Field(description="Aspect class of the batch.")
  topic: StrictStr = Field(default="", max_length=300, description="Subject topic used to theme the prompt.")
  sub_topic: StrictStr | None = Field(default=None, max_length=300)
  style_keys: list[StrictStr] | None = Field(default=None, max_length=10, description="Catalog style keys, one variant each. Omit for every active style.")
  reference_ids: list[StrictInt] = Field(default_factory=list, max_length=5, description="Reference images to generate against.")
  expression_key: StrictStr | None = None
  category_key: StrictStr | None = None
  character_anchor: StrictStr | None = Field(default=None, max_length=1000, description="Overrides the user's default character profile.")


class RefineRequest(ApiModel):
  model_config = ConfigDict(populate_by_name=True, alias_generator=_to_camel, extra="forbid")

  instruction: StrictStr = Field(min_length=1, max_length=1000, description="Edit to apply to the asset image.")


class JobAcceptedResponse(ApiModel):
  job_id: str


class OkResponse(ApiModel):
  ok: bool = True
  promoted_asset_id: int | None = None


class AssetResponse(ApiModel):
  id: int
  subject_id: str
  output_class: str
  style_key: str
  generation_order: int
  version: int
  parent_asset_id: int | None
  refinement_instruction: str | None
  is_selected: bool
  url: str
  secure_url: str
  width: int | None
  height: int | None
  format: str | None
  created_at: datetime.datetime

  @classmethod
  def from_record(cls, record: AssetRecord) -> AssetResponse:
    return cls(
      id=record.id,
      subject_id=record.subject_id,
      output_class=record.output_class,
      style_key=record.style_key,
      generation_order=record.generation_order,
      version=record.version,
      parent_asset_id=record.parent_asset_id,
      refinement_instruction=record.refinement_instruction,
      is_selected=record.is_selected,
      url=record.url,
      secure_url=record.secure_url,
      width=record.width,
      height=record.height,
      format=record.format,
      created_at=record.created_at,
    )


class JobErrorEntry(ApiModel):
  variant: str
  error: str


class JobStatusResponse(ApiModel):
  job_id: str
  status: JobStatus
  progress: int
  current_variant: str | None
  assets: list[AssetResponse]
  errors: list[JobErrorEntry]

  @classmethod
  def from_view(cls, view: JobStatusView) -> JobStatusResponse:
    return cls(
      job_id=view.job_id,
      status=view.status,
      progress=view.progress,
      current_variant=view.current_variant,
      assets=[AssetResponse.from_record(asset) for asset in view.assets],
      errors=[JobErrorEntry(variant=str(entry.get("variant", "")), error=str(entry.get("error", ""))) for entry in view.errors],
    )


class OutputClassUsageResponse(ApiModel):
  used: int
  assets_generated: int
  limit: int | None
  remaining: int | None
  is_unlimited: bool
  resets_monthly: bool

  @classmethod
  def from_usage(cls, usage: OutputClassUsage) -> OutputClassUsageResponse:
    return cls(used=usage.used, assets_generated=usage.assets_generated, limit=usage.limit, remaining=usage.remaining, is_unlimited=usage.is_unlimited, resets_monthly=usage.resets_monthly)


class UsageSummaryResponse(ApiModel):
  subscription_tier: str
  has_grant: bool
  grant_type: str | None
  period_start: datetime.date
  period_end: datetime.date
  by_output_class: dict[str, OutputClassUsageResponse]

  @classmethod
  def from_summary(cls, summary: UsageSummary) -> UsageSummaryResponse:
    return cls(
      subscription_tier=summary.subscription_tier,
      has_grant=summary.has_grant,
      grant_type=summary.grant_type,
      period_start=summary.period_start,
      period_end=summary.period_end,
      by_output_class={key: OutputClassUsageResponse.from_usage(value) for key, value in summary.by_output_class.items()},
    )


class StyleResponse(ApiModel):
  key: str
  name: str
  description: str


class ExpressionResponse(ApiModel):
  key: str
  name: str
  primary_emotion: str
  intensity: int


class CategoryResponse(ApiModel):
  key: str
  name: str
  description: str | None


class CatalogResponse(ApiModel):
  styles: list[StyleResponse]
  expressions: list[ExpressionResponse]
  categories: list[CategoryResponse]

  @classmethod
  def from_catalog(cls, catalog: Catalog) -> CatalogResponse:
    return cls(
      styles=[StyleResponse(key=item.key, name=item.name, description=item.description) for item in catalog.styles],
      expressions=[ExpressionResponse(key=item.key, name=item.name, primary_emotion=item.primary_emotion, intensity=item.intensity) for item in catalog.expressions],
      categories=[CategoryResponse(key=item.key, name=item.name, description=item.description) for item in catalog.categories],
    )
