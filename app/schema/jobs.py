from __future__ import annotations

import datetime
import uuid

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, func, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class AssetGenerationJob(Base):
  __tablename__ = "asset_generation_jobs"
  __table_args__ = (Index("ix_asset_generation_jobs_active_key", "user_id", "subject_id", "output_class", postgresql_where=text("status IN ('pending', 'processing')")),)

  job_id: Mapped[str] = mapped_column(String, primary_key=True)
  user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
  subject_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
  output_class: Mapped[str] = mapped_column(String, nullable=False)
  status: Mapped[str] = mapped_column(String, nullable=False, default="pending", server_default="pending")
  progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
  current_variant: Mapped[str | None] = mapped_column(String, nullable=True)
  generated_asset_ids: Mapped[list] = mapped_column(JSONB, nullable=False, default=list, server_default=text("'[]'::jsonb"))
  errors: Mapped[list] = mapped_column(JSONB, nullable=False, default=list, server_default=text("'[]'::jsonb"))
  request_json: Mapped[dict] = mapped_column(JSONB, nullable=False)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
  started_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
  completed_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
  updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
