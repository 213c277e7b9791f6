"""Repository for tier limits and admin grants using PostgreSQL."""

from __future__ import annotations

import datetime
import uuid

from sqlalchemy import or_, select

from app.core.database import require_session_factory
from app.schema.quotas import AdminGrant, AssetTierLimit
from app.schema.sql import User
from app.storage.quota_repo import AdminGrantRecord, TierLimitRecord


class PostgresQuotaRepository:
  """Read admission-control configuration from Postgres."""

  def __init__(self) -> None:
    self._session_factory = require_session_factory()

  async def get_user_tier(self, user_id: uuid.UUID) -> str | None:
    async with self._session_factory() as session:
      result = await session.execute(select(User.subscription_tier).where(User.id == user_id))
      tier = result.scalar_one_or_none()
      if tier is None:
        return None
      return tier.strip().lower() or "free"

  async def get_tier_limit(self, tier: str, output_class: str) -> TierLimitRecord | None:
    async with self._session_factory() as session:
      stmt = select(AssetTierLimit).where(AssetTierLimit.subscription_tier == tier, AssetTierLimit.output_class == output_class)
      row = (await session.execute(stmt)).scalars().first()
      if row is None:
        return None
      return TierLimitRecord(subscription_tier=row.subscription_tier, output_class=row.output_class, max_iterations=row.max_iterations, is_unlimited=row.is_unlimited, resets_monthly=row.resets_monthly)

  async def get_active_grant(self, user_id: uuid.UUID, *, now: datetime.datetime) -> AdminGrantRecord | None:
    async with self._session_factory() as session:
      stmt = (
        select(AdminGrant)
        .where(AdminGrant.user_id == user_id, AdminGrant.is_active.is_(True), or_(AdminGrant.expires_at.is_(None), AdminGrant.expires_at > now))
        .order_by(AdminGrant.created_at.desc())
        .limit(1)
      )
      row = (await session.execute(stmt)).scalars().first()
      if row is None:
        return None
      return AdminGrantRecord(id=row.id, user_id=row.user_id, grant_type=row.grant_type, is_active=row.is_active, expires_at=row.expires_at, created_at=row.created_at)
