"""Catalog and reference-input lookups using PostgreSQL."""

from __future__ import annotations

import uuid

from sqlalchemy import select

from app.core.database import require_session_factory
from app.schema.assets import AssetExpression, AssetStyle, CharacterProfile, ContentCategory, ReferenceImage
from app.storage.catalog_repo import Catalog, CategoryRecord, ExpressionRecord, ReferenceImageRecord, StyleRecord


class PostgresCatalogRepository:
  """Load active catalog rows ordered for display."""

  def __init__(self) -> None:
    self._session_factory = require_session_factory()

  async def load_catalog(self) -> Catalog:
    async with self._session_factory() as session:
      styles = (await session.execute(select(AssetStyle).where(AssetStyle.is_active.is_(True)).order_by(AssetStyle.display_order, AssetStyle.id))).scalars().all()
      expressions = (await session.execute(select(AssetExpression).where(AssetExpression.is_active.is_(True)).order_by(AssetExpression.display_order, AssetExpression.id))).scalars().all()
      categories = (await session.execute(select(ContentCategory).where(ContentCategory.is_active.is_(True)).order_by(ContentCategory.display_order, ContentCategory.id))).scalars().all()

    return Catalog(
      styles=[StyleRecord(key=row.key, name=row.name, description=row.description, display_order=row.display_order) for row in styles],
      expressions=[
        ExpressionRecord(key=row.key, name=row.name, primary_emotion=row.primary_emotion, face_details=row.face_details, eye_details=row.eye_details, intensity=row.intensity, display_order=row.display_order)
        for row in expressions
      ],
      categories=[CategoryRecord(key=row.key, name=row.name, description=row.description, display_order=row.display_order) for row in categories],
    )


class PostgresReferenceRepository:
  """Resolve a user's reference images and character anchor."""

  def __init__(self) -> None:
    self._session_factory = require_session_factory()

  async def list_reference_images(self, user_id: uuid.UUID, reference_ids: list[int]) -> list[ReferenceImageRecord]:
    if not reference_ids:
      return []
    async with self._session_factory() as session:
      stmt = select(ReferenceImage).where(ReferenceImage.user_id == user_id, ReferenceImage.id.in_(reference_ids)).order_by(ReferenceImage.id)
      rows = (await session.execute(stmt)).scalars().all()
      return [ReferenceImageRecord(id=row.id, user_id=row.user_id, storage_ref=row.storage_ref, secure_url=row.secure_url, mime_type=row.mime_type) for row in rows]

  async def get_default_anchor(self, user_id: uuid.UUID) -> str | None:
    async with self._session_factory() as session:
      stmt = (
        select(CharacterProfile.anchor_text)
        .where(CharacterProfile.user_id == user_id, CharacterProfile.is_default.is_(True), CharacterProfile.is_active.is_(True))
        .order_by(CharacterProfile.created_at.desc())
        .limit(1)
      )
      return (await session.execute(stmt)).scalar_one_or_none()
