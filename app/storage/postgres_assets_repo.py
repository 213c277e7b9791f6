"""Repository for generated assets using PostgreSQL."""

from __future__ import annotations

import uuid

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import require_session_factory
from app.schema.assets import GeneratedAsset
from app.storage.assets_repo import AssetDeletion, AssetDraft, AssetRecord, ClassClearance


def _subject_scope(user_id: uuid.UUID, subject_id: str) -> tuple:
  return (GeneratedAsset.user_id == user_id, GeneratedAsset.subject_id == subject_id)


class PostgresAssetsRepository:
  """Persist and retrieve generated assets from Postgres using SQLAlchemy."""

  def __init__(self) -> None:
    self._session_factory = require_session_factory()

  async def get_asset(self, asset_id: int) -> AssetRecord | None:
    async with self._session_factory() as session:
      row = await session.get(GeneratedAsset, asset_id)
      return _to_record(row) if row is not None else None

  async def insert_asset(self, draft: AssetDraft, *, select_if_unselected: bool) -> AssetRecord:
    async with self._session_factory() as session:
      async with session.begin():
        is_selected = False
        if select_if_unselected:
          # Lock the subject's selected row (if any) so a concurrent select cannot slip in between check and insert.
          stmt = select(GeneratedAsset.id).where(*_subject_scope(draft.user_id, draft.subject_id), GeneratedAsset.is_selected.is_(True)).with_for_update()
          is_selected = (await session.execute(stmt)).first() is None

        if is_selected:
          try:
            async with session.begin_nested():
              row = _build_row(draft, is_selected=True)
              session.add(row)
              await session.flush()
            await session.refresh(row)
            return _to_record(row)
          except IntegrityError:
            # Another writer selected an asset for this subject first; keep theirs.
            is_selected = False

        row = _build_row(draft, is_selected=False)
        session.add(row)
        await session.flush()
        await session.refresh(row)
        return _to_record(row)

  async def list_for_subject(self, user_id: uuid.UUID, subject_id: str, *, output_class: str | None = None) -> list[AssetRecord]:
    async with self._session_factory() as session:
      stmt = select(GeneratedAsset).where(*_subject_scope(user_id, subject_id))
      if output_class is not None:
        stmt = stmt.where(GeneratedAsset.output_class == output_class)
      stmt = stmt.order_by(GeneratedAsset.created_at.desc(), GeneratedAsset.id.desc())
      result = await session.execute(stmt)
      return [_to_record(row) for row in result.scalars().all()]

  async def list_by_ids(self, asset_ids: list[int]) -> list[AssetRecord]:
    if not asset_ids:
      return []
    async with self._session_factory() as session:
      stmt = select(GeneratedAsset).where(GeneratedAsset.id.in_(asset_ids)).order_by(GeneratedAsset.generation_order.asc(), GeneratedAsset.id.asc())
      result = await session.execute(stmt)
      return [_to_record(row) for row in result.scalars().all()]

  async def select_asset(self, user_id: uuid.UUID, subject_id: str, asset_id: int) -> bool:
    async with self._session_factory() as session:
      async with session.begin():
        scope = _subject_scope(user_id, subject_id)
        # Clear first so the partial unique index never sees two selected rows.
        await session.execute(update(GeneratedAsset).where(*scope, GeneratedAsset.is_selected.is_(True)).values(is_selected=False))
        result = await session.execute(update(GeneratedAsset).where(GeneratedAsset.id == asset_id, *scope).values(is_selected=True))
        return (result.rowcount or 0) > 0

  async def delete_asset(self, asset_id: int) -> AssetDeletion | None:
    async with self._session_factory() as session:
      async with session.begin():
        row = await session.get(GeneratedAsset, asset_id, with_for_update=True)
        if row is None:
          return None
        deleted = _to_record(row)
        await session.delete(row)
        await session.flush()
        promoted_id = None
        if deleted.is_selected:
          promoted_id = await _promote_newest(session, deleted.user_id, deleted.subject_id)
        return AssetDeletion(deleted=deleted, promoted_asset_id=promoted_id)

  async def delete_for_subject_class(self, user_id: uuid.UUID, subject_id: str, output_class: str) -> ClassClearance:
    async with self._session_factory() as session:
      async with session.begin():
        stmt = delete(GeneratedAsset).where(*_subject_scope(user_id, subject_id), GeneratedAsset.output_class == output_class).returning(GeneratedAsset)
        result = await session.execute(stmt)
        removed = [_to_record(row) for row in result.scalars().all()]
        promoted_id = None
        if any(record.is_selected for record in removed):
          promoted_id = await _promote_newest(session, user_id, subject_id)
        return ClassClearance(removed=removed, promoted_asset_id=promoted_id)


async def _promote_newest(session: AsyncSession, user_id: uuid.UUID, subject_id: str) -> int | None:
  """Select the most recently created asset of the owner's subject, returning its id."""
  stmt = select(GeneratedAsset).where(*_subject_scope(user_id, subject_id)).order_by(GeneratedAsset.created_at.desc(), GeneratedAsset.id.desc()).limit(1)
  candidate = (await session.execute(stmt)).scalars().first()
  if candidate is None:
    return None
  candidate.is_selected = True
  return candidate.id


def _build_row(draft: AssetDraft, *, is_selected: bool) -> GeneratedAsset:
  return GeneratedAsset(
    subject_id=draft.subject_id,
    user_id=draft.user_id,
    output_class=draft.output_class,
    style_key=draft.style_key,
    generation_order=draft.generation_order,
    version=draft.version,
    parent_asset_id=draft.parent_asset_id,
    refinement_instruction=draft.refinement_instruction,
    is_selected=is_selected,
    storage_ref=draft.storage_ref,
    url=draft.url,
    secure_url=draft.secure_url,
    byte_size=draft.byte_size,
    width=draft.width,
    height=draft.height,
    format=draft.format,
    topic=draft.topic,
  )


def _to_record(row: GeneratedAsset) -> AssetRecord:
  return AssetRecord(
    id=row.id,
    subject_id=row.subject_id,
    user_id=row.user_id,
    output_class=row.output_class,
    style_key=row.style_key,
    generation_order=row.generation_order,
    version=row.version,
    parent_asset_id=row.parent_asset_id,
    refinement_instruction=row.refinement_instruction,
    is_selected=row.is_selected,
    storage_ref=row.storage_ref,
    url=row.url,
    secure_url=row.secure_url,
    byte_size=row.byte_size,
    width=row.width,
    height=row.height,
    format=row.format,
    topic=row.topic,
    created_at=row.created_at,
  )
