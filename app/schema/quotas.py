"""SQLAlchemy models for tier limits, admin grants, and per-period asset usage."""

from __future__ import annotations

import datetime
import uuid

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class AssetTierLimit(Base):
  __tablename__ = "asset_tier_limits"
  __table_args__ = (UniqueConstraint("subscription_tier", "output_class", name="ux_asset_tier_limits_tier_class"),)

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  subscription_tier: Mapped[str] = mapped_column(String, nullable=False, index=True)
  output_class: Mapped[str] = mapped_column(String, nullable=False)
  max_iterations: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  is_unlimited: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
  resets_monthly: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class AdminGrant(Base):
  __tablename__ = "admin_grants"

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
  grant_type: Mapped[str] = mapped_column(String, nullable=False)
  is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
  expires_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class AssetUsagePeriod(Base):
  __tablename__ = "asset_usage_periods"
  __table_args__ = (UniqueConstraint("user_id", "output_class", "period_start", name="ux_asset_usage_periods_user_class_period"),)

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
  output_class: Mapped[str] = mapped_column(String, nullable=False)
  period_start: Mapped[datetime.date] = mapped_column(Date, nullable=False)
  period_end: Mapped[datetime.date] = mapped_column(Date, nullable=False)
  iterations_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
  assets_generated: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
  updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
