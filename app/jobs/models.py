"""Domain models for asynchronous asset generation jobs."""

from __future__ import annotations

import datetime
import uuid
from dataclasses import dataclass, field
from typing import Any, Literal

JobStatus = Literal["pending", "processing", "completed", "failed"]
TERMINAL_STATUSES: frozenset[str] = frozenset({"completed", "failed"})
ACTIVE_STATUSES: frozenset[str] = frozenset({"pending", "processing"})


@dataclass(frozen=True)
class VariantSpec:
  """One requested variant: a style tag plus the style text fed to the prompt."""

  key: str
  description: str
  name: str | None = None

  def to_dict(self) -> dict[str, Any]:
    return {"key": self.key, "description": self.description, "name": self.name}

  @classmethod
  def from_dict(cls, raw: dict[str, Any]) -> VariantSpec:
    return cls(key=str(raw["key"]), description=str(raw.get("description") or ""), name=raw.get("name"))


@dataclass(frozen=True)
class GenerationRequest:
  """Everything a job needs to run, persisted with the job so execution can reload it."""

  subject_id: str
  output_class: str
  variant_specs: list[VariantSpec]
  reference_ids: list[int] = field(default_factory=list)
  topic: str = ""
  sub_topic: str | None = None
  expression_key: str | None = None
  category_key: str | None = None
  character_anchor: str | None = None

  def to_json(self) -> dict[str, Any]:
    return {
      "subject_id": self.subject_id,
      "output_class": self.output_class,
      "variant_specs": [spec.to_dict() for spec in self.variant_specs],
      "reference_ids": list(self.reference_ids),
      "topic": self.topic,
      "sub_topic": self.sub_topic,
      "expression_key": self.expression_key,
      "category_key": self.category_key,
      "character_anchor": self.character_anchor,
    }

  @classmethod
  def from_json(cls, raw: dict[str, Any]) -> GenerationRequest:
    return cls(
      subject_id=str(raw["subject_id"]),
      output_class=str(raw["output_class"]),
      variant_specs=[VariantSpec.from_dict(item) for item in raw.get("variant_specs") or []],
      reference_ids=[int(item) for item in raw.get("reference_ids") or []],
      topic=str(raw.get("topic") or ""),
      sub_topic=raw.get("sub_topic"),
      expression_key=raw.get("expression_key"),
      category_key=raw.get("category_key"),
      character_anchor=raw.get("character_anchor"),
    )


@dataclass
class GenerationJobRecord:
  """Represents a background asset generation job."""

  job_id: str
  user_id: uuid.UUID
  subject_id: str
  output_class: str
  request: dict[str, Any]
  status: JobStatus
  created_at: datetime.datetime
  progress: int = 0
  current_variant: str | None = None
  generated_asset_ids: list[int] = field(default_factory=list)
  errors: list[dict[str, str]] = field(default_factory=list)
  started_at: datetime.datetime | None = None
  completed_at: datetime.datetime | None = None
  updated_at: datetime.datetime | None = None
