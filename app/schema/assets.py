"""SQLAlchemy models for generated assets, reference inputs, and the prompt catalog."""

from __future__ import annotations

import datetime
import uuid

from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Index, Integer, String, Text, func, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class GeneratedAsset(Base):
  __tablename__ = "generated_assets"
  __table_args__ = (
    Index("ix_generated_assets_subject_class", "user_id", "subject_id", "output_class"),
    # At most one selected asset per (owner, subject).
    Index("ux_generated_assets_selected_subject", "user_id", "subject_id", unique=True, postgresql_where=text("is_selected")),
  )

  id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
  subject_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
  user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
  output_class: Mapped[str] = mapped_column(String, nullable=False)
  style_key: Mapped[str] = mapped_column(String, nullable=False)
  generation_order: Mapped[int] = mapped_column(Integer, nullable=False)
  version: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
  parent_asset_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey("generated_assets.id", ondelete="SET NULL"), nullable=True)
  refinement_instruction: Mapped[str | None] = mapped_column(Text, nullable=True)
  is_selected: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
  storage_ref: Mapped[str] = mapped_column(String, nullable=False)
  url: Mapped[str] = mapped_column(String, nullable=False)
  secure_url: Mapped[str] = mapped_column(String, nullable=False)
  byte_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
  width: Mapped[int | None] = mapped_column(Integer, nullable=True)
  height: Mapped[int | None] = mapped_column(Integer, nullable=True)
  format: Mapped[str | None] = mapped_column(String, nullable=True)
  topic: Mapped[str | None] = mapped_column(Text, nullable=True)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class ReferenceImage(Base):
  __tablename__ = "reference_images"

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
  storage_ref: Mapped[str] = mapped_column(String, nullable=False)
  secure_url: Mapped[str] = mapped_column(String, nullable=False)
  mime_type: Mapped[str] = mapped_column(String, nullable=False, default="image/png", server_default="image/png")
  display_name: Mapped[str | None] = mapped_column(String, nullable=True)
  is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class CharacterProfile(Base):
  __tablename__ = "character_profiles"

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
  profile_name: Mapped[str] = mapped_column(String, nullable=False)
  anchor_text: Mapped[str] = mapped_column(Text, nullable=False)
  is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
  is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class AssetStyle(Base):
  __tablename__ = "asset_styles"

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  key: Mapped[str] = mapped_column(String, unique=True, nullable=False)
  name: Mapped[str] = mapped_column(String, nullable=False)
  description: Mapped[str] = mapped_column(Text, nullable=False)
  display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")


class AssetExpression(Base):
  __tablename__ = "asset_expressions"

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  key: Mapped[str] = mapped_column(String, unique=True, nullable=False)
  name: Mapped[str] = mapped_column(String, nullable=False)
  primary_emotion: Mapped[str] = mapped_column(String, nullable=False)
  face_details: Mapped[str] = mapped_column(Text, nullable=False)
  eye_details: Mapped[str] = mapped_column(Text, nullable=False)
  intensity: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
  display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")


class ContentCategory(Base):
  __tablename__ = "asset_content_categories"

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  key: Mapped[str] = mapped_column(String, unique=True, nullable=False)
  name: Mapped[str] = mapped_column(String, nullable=False)
  description: Mapped[str | None] = mapped_column(Text, nullable=True)
  display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
