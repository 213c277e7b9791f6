"""Storage interfaces for per-period asset usage counters."""

from __future__ import annotations

import datetime
import uuid
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class UsageTotals:
  """Summed usage counters over one or more periods."""

  iterations_used: int = 0
  assets_generated: int = 0


class UsageRepository(Protocol):
  """Repository contract for usage counters keyed by (user, output class, period start)."""

  async def increment(self, *, user_id: uuid.UUID, output_class: str, period_start: datetime.date, period_end: datetime.date, iteration_delta: int, asset_delta: int) -> None:
    """Create the period row if missing, then add the deltas atomically."""

  async def sum_usage(self, *, user_id: uuid.UUID, output_class: str, since: datetime.date | None) -> UsageTotals:
    """Sum counters for periods starting on or after `since`, or all periods when None."""
