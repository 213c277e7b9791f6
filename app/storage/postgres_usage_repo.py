"""Repository for asset usage counters using PostgreSQL upserts."""

from __future__ import annotations

import datetime
import uuid

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert

from app.core.database import require_session_factory
from app.schema.quotas import AssetUsagePeriod
from app.storage.usage_repo import UsageTotals


class PostgresUsageRepository:
  """Persist usage counters with INSERT .. ON CONFLICT so concurrent increments accumulate."""

  def __init__(self) -> None:
    self._session_factory = require_session_factory()

  async def increment(self, *, user_id: uuid.UUID, output_class: str, period_start: datetime.date, period_end: datetime.date, iteration_delta: int, asset_delta: int) -> None:
    stmt = insert(AssetUsagePeriod).values(user_id=user_id, output_class=output_class, period_start=period_start, period_end=period_end, iterations_used=iteration_delta, assets_generated=asset_delta)
    # Add to the stored counters instead of overwriting them.
    stmt = stmt.on_conflict_do_update(
      constraint="ux_asset_usage_periods_user_class_period",
      set_={
        "iterations_used": AssetUsagePeriod.iterations_used + stmt.excluded.iterations_used,
        "assets_generated": AssetUsagePeriod.assets_generated + stmt.excluded.assets_generated,
        "updated_at": func.now(),
      },
    )
    async with self._session_factory() as session:
      async with session.begin():
        await session.execute(stmt)

  async def sum_usage(self, *, user_id: uuid.UUID, output_class: str, since: datetime.date | None) -> UsageTotals:
    stmt = select(func.coalesce(func.sum(AssetUsagePeriod.iterations_used), 0), func.coalesce(func.sum(AssetUsagePeriod.assets_generated), 0)).where(AssetUsagePeriod.user_id == user_id, AssetUsagePeriod.output_class == output_class)
    if since is not None:
      stmt = stmt.where(AssetUsagePeriod.period_start >= since)
    async with self._session_factory() as session:
      iterations, assets = (await session.execute(stmt)).one()
      return UsageTotals(iterations_used=int(iterations), assets_generated=int(assets))
