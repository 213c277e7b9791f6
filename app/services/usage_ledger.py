"""Usage ledger: per user / output class / calendar-month counters of generation iterations."""

from __future__ import annotations

import datetime
import logging
import uuid
from collections.abc import Callable

from app.storage.usage_repo import UsageRepository, UsageTotals
from app.utils.db_retry import execute_with_retry

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime.datetime]


def utc_now() -> datetime.datetime:
  """Return timezone-aware current UTC time for deterministic period math."""
  return datetime.datetime.now(datetime.UTC)


def period_bounds(now: datetime.datetime) -> tuple[datetime.date, datetime.date]:
  """Return (first day of the month, first day of the next month) for a UTC timestamp."""
  # Use UTC boundaries so periods are consistent across regions.
  if now.tzinfo is None:
    raise ValueError("now must be timezone-aware (UTC).")
  utc_date = now.astimezone(datetime.UTC).date()
  start = utc_date.replace(day=1)
  if start.month == 12:
    end = start.replace(year=start.year + 1, month=1)
  else:
    end = start.replace(month=start.month + 1)
  return start, end


class UsageLedger:
  """Record and read usage counters; rows are created lazily and never decremented."""

  def __init__(self, repo: UsageRepository, *, clock: Clock = utc_now) -> None:
    self._repo = repo
    self._clock = clock

  async def increment(self, user_id: uuid.UUID, output_class: str, *, iteration_delta: int, asset_delta: int) -> None:
    """Add deltas to the current month's counters, creating the row on first use."""
    if iteration_delta < 0 or asset_delta < 0:
      raise ValueError("Usage deltas must be non-negative.")
    period_start, period_end = period_bounds(self._clock())

    async def _write() -> None:
      await self._repo.increment(user_id=user_id, output_class=output_class, period_start=period_start, period_end=period_end, iteration_delta=iteration_delta, asset_delta=asset_delta)

    await execute_with_retry(operation_name="usage_ledger_increment", func=_write)
    logger.info("Usage recorded user_id=%s output_class=%s period_start=%s iterations=+%d assets=+%d", user_id, output_class, period_start, iteration_delta, asset_delta)

  async def read(self, user_id: uuid.UUID, output_class: str, *, month_only: bool) -> UsageTotals:
    """Sum counters for the current month, or over the user's lifetime."""
    since = period_bounds(self._clock())[0] if month_only else None
    return await self._repo.sum_usage(user_id=user_id, output_class=output_class, since=since)
